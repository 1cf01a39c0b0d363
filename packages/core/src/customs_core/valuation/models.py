from __future__ import annotations

from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

ValuationState = Literal["ok", "suspicious", "underdeclared", "requires_manual_review"]
AlertLevel = Literal["none", "warning", "critical"]


class ReferenceProduct(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_name: str
    category: str
    min_price: Decimal = Field(ge=0)
    max_price: Decimal = Field(ge=0)
    keywords: tuple[str, ...] = Field(default_factory=tuple)


class SubvaluationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    package_id: str
    tracking_number: str
    declared_value: Decimal
    description: str
    detected_product: str | None = None
    reference_min_price: Decimal | None = None
    reference_max_price: Decimal | None = None
    difference_percent: Decimal | None = None
    difference_amount: Decimal = Decimal("0.00")
    valuation_state: ValuationState
    alert_level: AlertLevel
    message: str
    required_action: str
    is_blocked: bool = False


class UndervaluedProduct(BaseModel):
    model_config = ConfigDict(frozen=True)

    product: str
    count: int
    difference: Decimal


class SubvaluationSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int
    ok: int
    suspicious: int
    underdeclared: int
    requires_manual_review: int
    blocked: int
    total_declared: Decimal
    total_reference: Decimal
    total_difference: Decimal
    estimated_additional_tax: Decimal
    top_products: list[UndervaluedProduct] = Field(default_factory=list)
