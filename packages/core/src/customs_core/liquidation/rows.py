from __future__ import annotations

import re
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from customs_core.utils.money import ZERO, parse_amount

_WHITESPACE = re.compile(r"\s+")
_IDENTIFICATION = re.compile(r"[^0-9A-Za-z-]")
_PHONE = re.compile(r"[^0-9+\-() ]")

TEXT_FIELDS = ("recipient", "description", "province", "city", "address")
AMOUNT_FIELDS = {
    "fob_value": "valor declarado",
    "freight_value": "flete",
    "insurance_value": "seguro",
    "weight": "peso",
}


class ManifestRow(BaseModel):
    """One package line of an air-cargo manifest, cleaned on construction.

    Non-numeric amounts become zero and leave a note in ``notes`` so the
    liquidation can surface the substitution to the operator.
    """

    model_config = ConfigDict(frozen=True)

    tracking_guide: str = ""
    recipient: str = ""
    identification: str = ""
    phone: str = ""
    description: str = ""
    fob_value: Decimal = ZERO
    freight_value: Decimal = ZERO
    insurance_value: Decimal = ZERO
    weight: Decimal = ZERO
    province: str = ""
    city: str = ""
    address: str = ""
    row_number: int | None = None
    notes: list[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _clean(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        cleaned = dict(data)
        notes = list(cleaned.get("notes") or [])

        guide = cleaned.get("tracking_guide")
        cleaned["tracking_guide"] = "".join(str(guide or "").split()).upper()
        for field in TEXT_FIELDS:
            cleaned[field] = _WHITESPACE.sub(" ", str(cleaned.get(field) or "")).strip()
        cleaned["identification"] = _IDENTIFICATION.sub("", str(cleaned.get("identification") or "")).upper()
        cleaned["phone"] = _WHITESPACE.sub(" ", _PHONE.sub("", str(cleaned.get("phone") or ""))).strip()

        for field, label in AMOUNT_FIELDS.items():
            raw_value = cleaned.get(field)
            amount = parse_amount(raw_value)
            if amount is None:
                if raw_value not in (None, ""):
                    notes.append(f"Valor no numérico en {label} ({raw_value!r}); se usó 0.00")
                amount = ZERO
            cleaned[field] = amount

        cleaned["notes"] = notes
        return cleaned

    @property
    def cif_value(self) -> Decimal:
        return self.fob_value + self.freight_value + self.insurance_value
