from __future__ import annotations

import logging
import re
from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from customs_core.config import get_pack_name, get_packs_root
from customs_core.errors import PackLoadError
from customs_core.packs.files import read_pack_json
from customs_core.regulatory.models import RegulatoryAlert, Severity
from customs_core.tariffs.codes import matches_prefix, strip_code
from customs_core.tariffs.models import TariffEntry
from customs_core.utils.normalize import normalize_text

logger = logging.getLogger(__name__)


class RuleMatch(BaseModel):
    """Predicate over a tariff entry; populated conditions are OR-ed."""

    model_config = ConfigDict(frozen=True)

    code_prefixes: list[str] = Field(default_factory=list)
    code_pattern: str | None = None
    categories: list[str] = Field(default_factory=list)
    description_terms: list[str] = Field(default_factory=list)
    duty_above: Decimal | None = None

    @field_validator("code_pattern")
    @classmethod
    def _check_pattern(cls, value: str | None) -> str | None:
        if value is not None:
            try:
                re.compile(value)
            except re.error as exc:
                raise ValueError(f"invalid code pattern {value!r}: {exc}") from exc
        return value


class AlertTemplate(BaseModel):
    model_config = ConfigDict(frozen=True)

    entity: str
    entity_code: str
    requirement: str
    description: str


class RegulatoryRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    rule_id: str
    match: RuleMatch
    alerts: list[AlertTemplate]


class RegulatoryRuleSet(BaseModel):
    model_config = ConfigDict(frozen=True)

    severity_by_entity: dict[str, Severity] = Field(default_factory=dict)
    default_severity: Severity = "info"
    rules: list[RegulatoryRule] = Field(default_factory=list)

    def severity_for(self, entity_code: str) -> Severity:
        return self.severity_by_entity.get(entity_code, self.default_severity)


def load_regulatory_rules(path: Path) -> RegulatoryRuleSet:
    if not path.exists():
        return RegulatoryRuleSet()
    payload = read_pack_json(path)
    if isinstance(payload, list):
        payload = {"rules": payload}
    try:
        rule_set = RegulatoryRuleSet.model_validate(payload)
    except ValidationError as exc:
        raise PackLoadError(f"Invalid regulatory rules in {path.name}: {exc}") from exc
    logger.info("Loaded %d regulatory rules from %s", len(rule_set.rules), path.name)
    return rule_set


def evaluate_regulatory_rules(rule_set: RegulatoryRuleSet, entry: TariffEntry) -> list[RegulatoryAlert]:
    alerts: list[RegulatoryAlert] = []
    for rule in rule_set.rules:
        if not _matches(rule.match, entry):
            continue
        for template in rule.alerts:
            alerts.append(
                RegulatoryAlert(
                    entity=template.entity,
                    entity_code=template.entity_code,
                    requirement=template.requirement,
                    severity=rule_set.severity_for(template.entity_code),
                    description=template.description,
                    rule_id=rule.rule_id,
                )
            )
    return alerts


class RegulatoryRuleEngine:
    def __init__(self, rule_set: RegulatoryRuleSet | None = None) -> None:
        self._rule_set = rule_set or RegulatoryRuleSet()

    @classmethod
    def from_pack(cls, root: Path | None = None, pack_name: str | None = None) -> RegulatoryRuleEngine:
        pack_path = (root or get_packs_root()) / (pack_name or get_pack_name())
        return cls(load_regulatory_rules(pack_path / "regulatory_rules.json"))

    @property
    def rule_set(self) -> RegulatoryRuleSet:
        return self._rule_set

    def get_required_permits(self, entry: TariffEntry) -> list[RegulatoryAlert]:
        return evaluate_regulatory_rules(self._rule_set, entry)


def _matches(match: RuleMatch, entry: TariffEntry) -> bool:
    if match.code_prefixes and matches_prefix(entry.code, match.code_prefixes):
        return True
    if match.code_pattern and _compiled(match.code_pattern).search(strip_code(entry.code)):
        return True
    if match.categories:
        category = normalize_text(entry.category)
        if any(normalize_text(item) == category for item in match.categories):
            return True
    if match.description_terms:
        description = normalize_text(entry.description)
        if any(normalize_text(term) in description for term in match.description_terms):
            return True
    if match.duty_above is not None and entry.duty_percent > match.duty_above:
        return True
    return False


@lru_cache(maxsize=64)
def _compiled(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern)
