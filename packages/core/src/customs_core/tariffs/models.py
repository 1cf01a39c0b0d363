from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from customs_core.tariffs.codes import is_canonical_code

VALID_UNITS = ("u", "kg", "l", "par", "m2", "m3", "gal", "g")


class TariffEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    description: str
    category: str
    duty_percent: Decimal = Field(ge=0)
    consumption_percent: Decimal = Field(default=Decimal("0"), ge=0)
    vat_percent: Decimal = Field(ge=0)
    unit: str = "u"
    keywords: tuple[str, ...] = Field(default_factory=tuple)

    @field_validator("code")
    @classmethod
    def _check_code(cls, value: str) -> str:
        value = value.strip()
        if not is_canonical_code(value):
            raise ValueError(f"tariff code {value!r} is not in dddd.dd.dd.dd form")
        return value

    @property
    def heading(self) -> str:
        return self.code.replace(".", "")[:4]
