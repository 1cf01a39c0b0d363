from __future__ import annotations

from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from customs_core.regulatory.models import RegulatoryAlert
from customs_core.taxes.models import CustomsBand
from customs_core.utils.money import ZERO

LiquidationStatus = Literal["pending", "calculated", "requires_manual_review", "paid"]
RestrictionType = Literal["restricted", "notice", "permit"]
BatchStatus = Literal["completed", "cancelled"]

_RESTRICTION_TYPES: dict[str, RestrictionType] = {"critical": "restricted", "warning": "notice", "info": "permit"}


class Restriction(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: RestrictionType
    authority: str
    message: str

    @classmethod
    def from_alert(cls, alert: RegulatoryAlert) -> Restriction:
        return cls(
            type=_RESTRICTION_TYPES[alert.severity],
            authority=alert.entity_code,
            message=f"{alert.requirement}: {alert.description}",
        )


class Liquidation(BaseModel):
    """Per-package liquidation; updates go through ``model_copy``."""

    manifest_id: str
    tracking_guide: str
    row_number: int | None = None
    recipient: str = ""
    description: str = ""
    customs_category: CustomsBand | None = None
    tariff_code: str | None = None
    tariff_description: str | None = None
    match_score: int | None = None
    fob_value: Decimal = ZERO
    freight_value: Decimal = ZERO
    insurance_value: Decimal = ZERO
    cif_value: Decimal = ZERO
    duty_percent: Decimal = Decimal("0")
    duty_amount: Decimal = ZERO
    consumption_percent: Decimal = Decimal("0")
    consumption_amount: Decimal = ZERO
    vat_percent: Decimal = Decimal("0")
    vat_amount: Decimal = ZERO
    customs_fee: Decimal = ZERO
    additional_fees: Decimal = ZERO
    total_taxes: Decimal = ZERO
    total_payable: Decimal = ZERO
    status: LiquidationStatus = "pending"
    has_restrictions: bool = False
    restrictions: list[Restriction] = Field(default_factory=list)
    requires_manual_review: bool = False
    manual_review_reason: str | None = None
    observations: list[str] = Field(default_factory=list)
    processed_at: str | None = None

    @property
    def total_charges(self) -> Decimal:
        return self.total_taxes + self.customs_fee + self.additional_fees

    def mark_paid(self) -> Liquidation:
        if self.status != "calculated":
            raise ValueError(
                f"Liquidation {self.tracking_guide} cannot be paid from status {self.status}"
            )
        return self.model_copy(update={"status": "paid"})

    def flag_for_review(self, reason: str, observation: str | None = None) -> Liquidation:
        reasons = [self.manual_review_reason] if self.manual_review_reason else []
        observations = [*self.observations, observation] if observation else list(self.observations)
        return self.model_copy(
            update={
                "status": "requires_manual_review",
                "requires_manual_review": True,
                "manual_review_reason": "; ".join([*reasons, reason]),
                "observations": observations,
            }
        )


class BandTotals(BaseModel):
    model_config = ConfigDict(frozen=True)

    count: int = 0
    cif_value: Decimal = ZERO


class LiquidationSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_packages: int
    total_fob: Decimal
    total_freight: Decimal
    total_insurance: Decimal
    total_cif: Decimal
    total_duty: Decimal
    total_consumption: Decimal
    total_vat: Decimal
    total_fees: Decimal
    total_taxes: Decimal
    total_payable: Decimal
    by_band: dict[str, BandTotals] = Field(default_factory=dict)
    by_status: dict[str, int] = Field(default_factory=dict)
    restricted: int = 0
    requires_review: int = 0
    pending_tariff_code: int = 0


class BatchResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    manifest_id: str
    status: BatchStatus
    total_rows: int
    processed_rows: int
    liquidations: list[Liquidation] = Field(default_factory=list)
    summary: LiquidationSummary
    pack_fingerprint: str | None = None
    started_at: str
    finished_at: str
    message: str | None = None
