from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

DEFAULT_PACK = "aduana_pa"
_REPO_ROOT = Path(__file__).resolve().parents[4]


@dataclass(frozen=True)
class MatcherPolicy:
    min_score: float = 85.0
    ambiguity_gap: float = 10.0
    suggestion_floor: float = 0.5
    max_candidates: int = 5


@dataclass(frozen=True)
class ValuationPolicy:
    warning_pct: float = 30.0
    block_pct: float = 70.0
    additional_tax_rate_pct: float = 7.0


def get_packs_root() -> Path:
    raw_root = os.getenv("CUSTOMS_PACKS_ROOT")
    if raw_root:
        return Path(raw_root)
    return _REPO_ROOT / "storage" / "packs"


def get_pack_name() -> str:
    return os.getenv("CUSTOMS_PACK", DEFAULT_PACK).strip() or DEFAULT_PACK


def get_batch_size() -> int:
    batch_size = _read_int("CUSTOMS_BATCH_SIZE", 100)
    if batch_size < 1:
        raise ValueError("CUSTOMS_BATCH_SIZE must be a positive integer")
    return batch_size


@lru_cache
def get_matcher_policy() -> MatcherPolicy:
    min_score = _read_float("CUSTOMS_MIN_SCORE", 85.0)
    if not 0 < min_score <= 100:
        raise ValueError("CUSTOMS_MIN_SCORE must be within (0, 100]")
    ambiguity_gap = _read_float("CUSTOMS_AMBIGUITY_GAP", 10.0)
    if ambiguity_gap < 0:
        raise ValueError("CUSTOMS_AMBIGUITY_GAP must be non-negative")
    suggestion_floor = _read_float("CUSTOMS_SUGGESTION_FLOOR", 0.5)
    if not 0 <= suggestion_floor <= 1:
        raise ValueError("CUSTOMS_SUGGESTION_FLOOR must be within [0, 1]")
    max_candidates = _read_int("CUSTOMS_MAX_CANDIDATES", 5)
    if max_candidates < 1:
        raise ValueError("CUSTOMS_MAX_CANDIDATES must be a positive integer")
    return MatcherPolicy(
        min_score=min_score,
        ambiguity_gap=ambiguity_gap,
        suggestion_floor=suggestion_floor,
        max_candidates=max_candidates,
    )


@lru_cache
def get_valuation_policy() -> ValuationPolicy:
    warning_pct = _read_float("CUSTOMS_SUBVALUATION_WARNING_PCT", 30.0)
    block_pct = _read_float("CUSTOMS_SUBVALUATION_BLOCK_PCT", 70.0)
    if warning_pct <= 0:
        raise ValueError("CUSTOMS_SUBVALUATION_WARNING_PCT must be positive")
    if block_pct <= warning_pct:
        raise ValueError(
            "CUSTOMS_SUBVALUATION_BLOCK_PCT must be greater than CUSTOMS_SUBVALUATION_WARNING_PCT"
        )
    return ValuationPolicy(warning_pct=warning_pct, block_pct=block_pct)


def _read_float(name: str, default: float) -> float:
    raw_value = os.getenv(name)
    if raw_value is None or not raw_value.strip():
        return default
    try:
        return float(raw_value)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number") from exc


def _read_int(name: str, default: int) -> int:
    raw_value = os.getenv(name)
    if raw_value is None or not raw_value.strip():
        return default
    try:
        return int(raw_value)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer") from exc
