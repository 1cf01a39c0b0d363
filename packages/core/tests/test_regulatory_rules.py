from __future__ import annotations

from decimal import Decimal

import pytest
from customs_core.errors import PackLoadError
from customs_core.regulatory.rules import (
    RegulatoryRuleEngine,
    RegulatoryRuleSet,
    load_regulatory_rules,
)
from customs_core.tariffs import TariffEntry


def _entry(code: str, category: str, duty: str = "10", description: str = "Producto") -> TariffEntry:
    return TariffEntry(
        code=code,
        description=description,
        category=category,
        duty_percent=Decimal(duty),
        vat_percent=Decimal("7"),
    )


def test_meat_fires_food_safety_and_health(pack) -> None:
    alerts = pack.rules.get_required_permits(pack.store.require("0207.12.00.00"))
    codes = [alert.entity_code for alert in alerts]
    assert "APA" in codes
    assert "MINSA" in codes
    severities = {alert.entity_code: alert.severity for alert in alerts}
    assert severities["MINSA"] == "critical"
    assert severities["APA"] == "info"
    assert severities["ANA"] == "warning"


def test_laptop_needs_spanish_labeling_only(pack) -> None:
    alerts = pack.rules.get_required_permits(pack.store.require("8471.30.00.00"))
    assert len(alerts) == 1
    assert alerts[0].entity_code == "ACODECO"
    assert alerts[0].severity == "info"
    assert alerts[0].rule_id == "electronics-labeling"


def test_all_matching_rules_fire_without_dedup(pack) -> None:
    alerts = pack.rules.get_required_permits(pack.store.require("2936.29.00.00"))
    assert [alert.entity_code for alert in alerts].count("DNFD") == 2


def test_rules_match_by_category_pattern_and_threshold() -> None:
    rule_set = RegulatoryRuleSet.model_validate(
        {
            "severity_by_entity": {"MINSA": "critical"},
            "rules": [
                {
                    "rule_id": "pattern",
                    "match": {"code_pattern": "^0[1-9]"},
                    "alerts": [{"entity": "MIDA", "entity_code": "MIDA", "requirement": "Cert", "description": "d"}],
                },
                {
                    "rule_id": "category",
                    "match": {"categories": ["Médico"]},
                    "alerts": [{"entity": "MINSA", "entity_code": "MINSA", "requirement": "Reg", "description": "d"}],
                },
                {
                    "rule_id": "duty",
                    "match": {"duty_above": 100},
                    "alerts": [{"entity": "ANA", "entity_code": "ANA", "requirement": "Rev", "description": "d"}],
                },
            ],
        }
    )
    engine = RegulatoryRuleEngine(rule_set)
    assert [a.rule_id for a in engine.get_required_permits(_entry("0805.10.00.00", "Frutas"))] == ["pattern"]
    medical = engine.get_required_permits(_entry("9018.90.00.00", "medico"))
    assert [(a.rule_id, a.severity) for a in medical] == [("category", "critical")]
    assert [a.rule_id for a in engine.get_required_permits(_entry("6109.10.00.00", "Textiles", "150"))] == ["duty"]
    assert engine.get_required_permits(_entry("6109.10.00.00", "Textiles", "100")) == []


def test_invalid_pattern_is_rejected(tmp_path) -> None:
    path = tmp_path / "regulatory_rules.json"
    path.write_text('[{"rule_id": "bad", "match": {"code_pattern": "(["}, "alerts": []}]')
    with pytest.raises(PackLoadError):
        load_regulatory_rules(path)


def test_missing_rules_file_is_empty(tmp_path) -> None:
    engine = RegulatoryRuleEngine.from_pack(tmp_path, "none")
    assert engine.get_required_permits(_entry("0207.12.00.00", "Carnes")) == []
