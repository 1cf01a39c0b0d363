from __future__ import annotations

import logging
from decimal import Decimal
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from customs_core.config import get_pack_name, get_packs_root
from customs_core.errors import PackLoadError
from customs_core.packs.files import read_pack_json
from customs_core.taxes.models import BandAssignment, CustomsBand
from customs_core.utils.money import to_amount
from customs_core.utils.normalize import normalize_text, tokenize

logger = logging.getLogger(__name__)


class BandMatch(BaseModel):
    """Document predicate (categories or description terms) AND a CIF range."""

    model_config = ConfigDict(frozen=True)

    categories: list[str] = Field(default_factory=list)
    description_terms: list[str] = Field(default_factory=list)
    min_cif: Decimal | None = None
    min_inclusive: bool = True
    max_cif: Decimal | None = None
    max_inclusive: bool = False


class BandRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    band: CustomsBand
    label: str
    match: BandMatch
    applies_taxes: bool
    handling_fee: Decimal = Decimal("0")
    requires_broker: bool = False
    reason: str


def load_band_rules(path: Path) -> list[BandRule]:
    if not path.exists():
        logger.warning("Band rules %s not found", path)
        return []
    payload = read_pack_json(path)
    if not isinstance(payload, list):
        raise PackLoadError(f"{path.name} must contain a list of band rules")
    try:
        return [BandRule.model_validate(entry) for entry in payload]
    except ValidationError as exc:
        raise PackLoadError(f"Invalid band rule in {path.name}: {exc}") from exc


def evaluate_band_rules(
    rules: list[BandRule],
    cif_value: Decimal,
    description: str | None = None,
    category: str | None = None,
) -> BandRule | None:
    """Return the first rule, in table order, whose predicate holds."""
    tokens = set(tokenize(description))
    normalized_category = normalize_text(category)
    for rule in rules:
        if _matches(rule.match, cif_value, tokens, normalized_category):
            return rule
    return None


class BandPolicy:
    def __init__(self, rules: list[BandRule]) -> None:
        self._rules = list(rules)

    @classmethod
    def from_pack(cls, root: Path | None = None, pack_name: str | None = None) -> BandPolicy:
        pack_path = (root or get_packs_root()) / (pack_name or get_pack_name())
        return cls(load_band_rules(pack_path / "bands.json"))

    @property
    def rules(self) -> list[BandRule]:
        return list(self._rules)

    def assign(
        self,
        cif_value: Decimal | float | int | str,
        description: str | None = None,
        category: str | None = None,
    ) -> BandAssignment:
        cif = to_amount(cif_value)
        rule = evaluate_band_rules(self._rules, cif, description, category)
        if rule is None:
            raise ValueError(f"No customs band rule matches CIF {cif}")
        return BandAssignment(
            band=rule.band,
            label=rule.label,
            applies_taxes=rule.applies_taxes,
            handling_fee=to_amount(rule.handling_fee),
            requires_broker=rule.requires_broker,
            reason=rule.reason,
        )


def _matches(
    match: BandMatch,
    cif_value: Decimal,
    description_tokens: set[str],
    category: str,
) -> bool:
    if match.categories or match.description_terms:
        is_document = bool(category) and any(
            normalize_text(item) == category for item in match.categories
        )
        if not is_document:
            is_document = any(
                normalize_text(term) in description_tokens for term in match.description_terms
            )
        if not is_document:
            return False
    if match.min_cif is not None:
        if match.min_inclusive and cif_value < match.min_cif:
            return False
        if not match.min_inclusive and cif_value <= match.min_cif:
            return False
    if match.max_cif is not None:
        if match.max_inclusive and cif_value > match.max_cif:
            return False
        if not match.max_inclusive and cif_value >= match.max_cif:
            return False
    return True
