from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from customs_core.regulatory.models import RegulatoryAlert
from customs_core.tariffs.models import TariffEntry
from customs_core.taxes.models import TaxCalculation

MatchKind = Literal["exact", "fuzzy", "synonym", "partial"]
ConfidenceBand = Literal["high", "medium", "low"]


class MatchCandidate(BaseModel):
    model_config = ConfigDict(frozen=True)

    entry: TariffEntry
    score: int = Field(ge=0, le=100)
    match_kind: MatchKind
    confidence: ConfidenceBand
    matched_terms: list[str] = Field(default_factory=list)


class ClassificationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    candidates: list[MatchCandidate] = Field(default_factory=list)
    best_match: MatchCandidate | None = None
    is_ambiguous: bool = False
    needs_manual_review: bool = True
    suggestions: list[str] = Field(default_factory=list)


class ProductClassification(BaseModel):
    model_config = ConfigDict(frozen=True)

    description: str
    result: ClassificationResult
    alerts: list[RegulatoryAlert] = Field(default_factory=list)
    taxes: TaxCalculation | None = None


class ValidationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
