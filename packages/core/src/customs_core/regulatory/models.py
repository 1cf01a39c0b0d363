from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict

Severity = Literal["info", "warning", "critical"]


class RegulatoryAlert(BaseModel):
    model_config = ConfigDict(frozen=True)

    entity: str
    entity_code: str
    requirement: str
    severity: Severity
    description: str
    rule_id: str | None = None
