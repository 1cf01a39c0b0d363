from __future__ import annotations


class CustomsError(Exception):
    """Base error for liquidation engine failures."""


class PackLoadError(CustomsError):
    """Raised when a reference pack file exists but cannot be parsed."""


class UnknownTariffCodeError(CustomsError, KeyError):
    """Raised when a tariff code is not present in the reference store."""

    def __init__(self, code: str) -> None:
        super().__init__(code)
        self.code = code

    def __str__(self) -> str:
        return f"Unknown tariff code: {self.code}"
