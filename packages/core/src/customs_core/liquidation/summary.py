from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from decimal import Decimal

from customs_core.liquidation.models import BandTotals, Liquidation, LiquidationSummary
from customs_core.utils.money import ZERO

BANDS = ("A", "B", "C", "D")


def summarize_liquidations(liquidations: Iterable[Liquidation]) -> LiquidationSummary:
    items = list(liquidations)

    def total(attribute: str) -> Decimal:
        return sum((getattr(item, attribute) for item in items), ZERO)

    by_band: dict[str, BandTotals] = {}
    for band in BANDS:
        members = [item for item in items if item.customs_category == band]
        by_band[band] = BandTotals(
            count=len(members),
            cif_value=sum((item.cif_value for item in members), ZERO),
        )

    return LiquidationSummary(
        total_packages=len(items),
        total_fob=total("fob_value"),
        total_freight=total("freight_value"),
        total_insurance=total("insurance_value"),
        total_cif=total("cif_value"),
        total_duty=total("duty_amount"),
        total_consumption=total("consumption_amount"),
        total_vat=total("vat_amount"),
        total_fees=total("customs_fee") + total("additional_fees"),
        total_taxes=total("total_taxes"),
        total_payable=total("total_payable"),
        by_band=by_band,
        by_status=dict(sorted(Counter(item.status for item in items).items())),
        restricted=sum(1 for item in items if item.has_restrictions),
        requires_review=sum(1 for item in items if item.requires_manual_review),
        pending_tariff_code=sum(1 for item in items if not item.tariff_code),
    )
