from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field


class ClassifyRequest(BaseModel):
    description: str
    cif: str | float | None = None
    min_score: float | None = Field(default=None, ge=0.0, le=100.0)


class TariffAmountRequest(BaseModel):
    code: str
    cif: str | float


class SubvaluationRequest(BaseModel):
    rows: list[dict[str, Any]]


class ManifestRequest(BaseModel):
    manifest_id: str | None = None
    rows: list[dict[str, Any]]
    mode: Literal["sync", "async"] = "sync"


class ManifestAsyncResponse(BaseModel):
    job_id: str
    manifest_id: str
    status: str


class ManifestStatusRequest(BaseModel):
    status: str


class ReviewRequest(BaseModel):
    code: str
    cif: str | float | None = None
    observations: str | None = None


class JobStatusResponse(BaseModel):
    job_id: str
    status: str
    manifest_id: str
    total_rows: int
    processed_rows: int
    cancel_requested: bool
    error: str | None = None
