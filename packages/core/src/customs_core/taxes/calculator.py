from __future__ import annotations

from decimal import Decimal

from customs_core.tariffs.models import TariffEntry
from customs_core.taxes.models import TaxBreakdownLine, TaxCalculation
from customs_core.utils.money import ZERO, format_percent, percent_of, to_amount

FULL_EXEMPTION_REASON = "Producto exento de DAI e ITBMS según legislación panameña"
VAT_EXEMPTION_REASON = "Exento de ITBMS - Solo aplica DAI"


def calculate_taxes(entry: TariffEntry, cif_value: Decimal | float | int | str) -> TaxCalculation:
    return calculate_cascade(
        cif_value,
        duty_percent=entry.duty_percent,
        vat_percent=entry.vat_percent,
        consumption_percent=entry.consumption_percent,
    )


def calculate_cascade(
    cif_value: Decimal | float | int | str,
    *,
    duty_percent: Decimal | float | int,
    vat_percent: Decimal | float | int,
    consumption_percent: Decimal | float | int = 0,
) -> TaxCalculation:
    """Apply DAI, then ISC, then ITBMS, rounding each step to cents.

    Each step's rounded amount is the input of the next one, so the totals
    are exact sums of the displayed lines.
    """
    duty_pct = Decimal(str(duty_percent))
    consumption_pct = Decimal(str(consumption_percent))
    vat_pct = Decimal(str(vat_percent))

    cif = to_amount(cif_value)
    duty = percent_of(cif, duty_pct)
    consumption = percent_of(to_amount(cif + duty), consumption_pct) if consumption_pct else ZERO
    vat_base = to_amount(cif + duty + consumption)
    vat = percent_of(vat_base, vat_pct)
    total_taxes = to_amount(duty + consumption + vat)
    total_payable = to_amount(cif + total_taxes)

    is_exempt = duty_pct == 0 and vat_pct == 0
    vat_exempt_only = vat_pct == 0 and duty_pct != 0
    exemption_reason = None
    if is_exempt:
        exemption_reason = FULL_EXEMPTION_REASON
    elif vat_exempt_only:
        exemption_reason = VAT_EXEMPTION_REASON

    return TaxCalculation(
        cif_value=cif,
        duty_percent=duty_pct,
        duty_amount=duty,
        consumption_percent=consumption_pct,
        consumption_amount=consumption,
        vat_base=vat_base,
        vat_percent=vat_pct,
        vat_amount=vat,
        total_taxes=total_taxes,
        total_payable=total_payable,
        is_exempt=is_exempt,
        vat_exempt_only=vat_exempt_only,
        exemption_reason=exemption_reason,
        breakdown=_breakdown(
            cif,
            duty_pct,
            duty,
            consumption_pct,
            consumption,
            vat_base,
            vat_pct,
            vat,
            total_taxes,
            total_payable,
        ),
    )


def _breakdown(
    cif: Decimal,
    duty_pct: Decimal,
    duty: Decimal,
    consumption_pct: Decimal,
    consumption: Decimal,
    vat_base: Decimal,
    vat_pct: Decimal,
    vat: Decimal,
    total_taxes: Decimal,
    total_payable: Decimal,
) -> list[TaxBreakdownLine]:
    lines = [
        TaxBreakdownLine(label="Valor CIF", amount=cif, formula="FOB + Flete + Seguro"),
        TaxBreakdownLine(
            label=f"DAI ({format_percent(duty_pct)})",
            amount=duty,
            formula=f"CIF × {format_percent(duty_pct)}",
        ),
    ]
    base_formula = "CIF + DAI"
    taxes_formula = "DAI + ITBMS"
    if consumption_pct:
        lines.append(
            TaxBreakdownLine(
                label=f"ISC ({format_percent(consumption_pct)})",
                amount=consumption,
                formula=f"(CIF + DAI) × {format_percent(consumption_pct)}",
            )
        )
        base_formula = "CIF + DAI + ISC"
        taxes_formula = "DAI + ISC + ITBMS"
    lines.extend(
        [
            TaxBreakdownLine(label="Base ITBMS", amount=vat_base, formula=base_formula),
            TaxBreakdownLine(
                label=f"ITBMS ({format_percent(vat_pct)})",
                amount=vat,
                formula=f"Base × {format_percent(vat_pct)}",
            ),
            TaxBreakdownLine(label="Total Tributos", amount=total_taxes, formula=taxes_formula),
            TaxBreakdownLine(label="Total a Pagar", amount=total_payable, formula="CIF + Tributos"),
        ]
    )
    return lines
