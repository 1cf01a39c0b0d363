from __future__ import annotations

from decimal import Decimal

from customs_core.classification.matcher import FuzzyMatcher
from customs_core.classification.models import ProductClassification
from customs_core.regulatory.rules import RegulatoryRuleEngine
from customs_core.taxes.calculator import calculate_taxes
from customs_core.utils.money import parse_amount


def classify_product(
    description: str,
    cif_value: Decimal | float | int | str | None = None,
    *,
    matcher: FuzzyMatcher,
    rules: RegulatoryRuleEngine,
    min_score: float | None = None,
) -> ProductClassification:
    """Classify a description and, for the best match, derive alerts and taxes.

    Taxes are computed only when a positive CIF value is supplied.
    """
    result = matcher.find_matches(description, min_score)
    best = result.best_match
    if best is None:
        return ProductClassification(description=description, result=result)

    cif = parse_amount(cif_value)
    taxes = calculate_taxes(best.entry, cif) if cif is not None and cif > 0 else None
    return ProductClassification(
        description=description,
        result=result,
        alerts=rules.get_required_permits(best.entry),
        taxes=taxes,
    )
