from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

import orjson

from customs_core.classification.matcher import FuzzyMatcher
from customs_core.config import get_matcher_policy, get_pack_name, get_packs_root
from customs_core.errors import PackLoadError
from customs_core.packs.files import read_pack_json
from customs_core.regulatory.rules import RegulatoryRuleEngine
from customs_core.tariffs.store import TariffReferenceStore
from customs_core.taxes.bands import BandPolicy
from customs_core.valuation.detector import SubvaluationDetector

PACK_FILES = (
    "tariffs.json",
    "keywords.json",
    "regulatory_rules.json",
    "bands.json",
    "reference_products.json",
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReferencePack:
    name: str
    fingerprint: str
    store: TariffReferenceStore
    matcher: FuzzyMatcher
    rules: RegulatoryRuleEngine
    bands: BandPolicy
    detector: SubvaluationDetector


def list_packs(root: Path | None = None) -> list[str]:
    root = root or get_packs_root()
    if not root.exists():
        return []
    return sorted(path.name for path in root.iterdir() if (path / "tariffs.json").exists())


def load_reference_pack(name: str | None = None, root: Path | None = None) -> ReferencePack:
    return _load_pack(name or get_pack_name(), root or get_packs_root())


@lru_cache(maxsize=4)
def _load_pack(name: str, root: Path) -> ReferencePack:
    pack_path = root / name
    if not (pack_path / "tariffs.json").exists():
        raise PackLoadError(f"Reference pack {name!r} not found under {root}")
    store = TariffReferenceStore.from_pack(root, name)
    pack = ReferencePack(
        name=name,
        fingerprint=_fingerprint(pack_path),
        store=store,
        matcher=FuzzyMatcher(store, get_matcher_policy()),
        rules=RegulatoryRuleEngine.from_pack(root, name),
        bands=BandPolicy.from_pack(root, name),
        detector=SubvaluationDetector.from_pack(root, name),
    )
    logger.info(
        "Reference pack %s ready: %d tariff entries, fingerprint %s",
        name,
        len(store),
        pack.fingerprint[:12],
    )
    return pack


def clear_pack_cache() -> None:
    _load_pack.cache_clear()


def _fingerprint(pack_path: Path) -> str:
    payload = {
        file_name: read_pack_json(pack_path / file_name)
        for file_name in PACK_FILES
        if (pack_path / file_name).exists()
    }
    return hashlib.sha256(orjson.dumps(payload, option=orjson.OPT_SORT_KEYS)).hexdigest()
