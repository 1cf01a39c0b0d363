from __future__ import annotations

from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

CustomsBand = Literal["A", "B", "C", "D"]


class TaxBreakdownLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str
    amount: Decimal
    formula: str


class TaxCalculation(BaseModel):
    model_config = ConfigDict(frozen=True)

    cif_value: Decimal
    duty_percent: Decimal
    duty_amount: Decimal
    consumption_percent: Decimal = Decimal("0")
    consumption_amount: Decimal = Decimal("0.00")
    vat_base: Decimal
    vat_percent: Decimal
    vat_amount: Decimal
    total_taxes: Decimal
    total_payable: Decimal
    is_exempt: bool
    vat_exempt_only: bool = False
    exemption_reason: str | None = None
    breakdown: list[TaxBreakdownLine] = Field(default_factory=list)


class BandAssignment(BaseModel):
    model_config = ConfigDict(frozen=True)

    band: CustomsBand
    label: str
    applies_taxes: bool
    handling_fee: Decimal
    requires_broker: bool
    reason: str
