from __future__ import annotations

import pytest
from customs_core.config import get_matcher_policy, get_valuation_policy
from customs_core.packs.loader import ReferencePack, clear_pack_cache, load_reference_pack

CUSTOMS_ENV = (
    "CUSTOMS_PACKS_ROOT",
    "CUSTOMS_PACK",
    "CUSTOMS_MIN_SCORE",
    "CUSTOMS_AMBIGUITY_GAP",
    "CUSTOMS_SUGGESTION_FLOOR",
    "CUSTOMS_MAX_CANDIDATES",
    "CUSTOMS_SUBVALUATION_WARNING_PCT",
    "CUSTOMS_SUBVALUATION_BLOCK_PCT",
    "CUSTOMS_BATCH_SIZE",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in CUSTOMS_ENV:
        monkeypatch.delenv(name, raising=False)
    get_matcher_policy.cache_clear()
    get_valuation_policy.cache_clear()
    clear_pack_cache()
    yield
    get_matcher_policy.cache_clear()
    get_valuation_policy.cache_clear()
    clear_pack_cache()


@pytest.fixture()
def pack() -> ReferencePack:
    return load_reference_pack()
