from __future__ import annotations

from decimal import Decimal

from customs_core.classification.models import ValidationResult
from customs_core.tariffs.codes import is_canonical_code
from customs_core.tariffs.models import VALID_UNITS, TariffEntry
from customs_core.tariffs.store import TariffReferenceStore
from customs_core.utils.money import parse_amount
from customs_core.utils.normalize import normalize_text

MAX_DUTY_PERCENT = Decimal("300")
MAX_VAT_PERCENT = Decimal("15")
ELEVATED_DUTY_PERCENT = Decimal("100")
BROKER_CIF_THRESHOLD = Decimal("50000")


def validate_tariff_code(code: str | None, store: TariffReferenceStore) -> ValidationResult:
    errors: list[str] = []
    if not is_canonical_code(code):
        errors.append(f"Código arancelario inválido: {code!r} (formato esperado 0000.00.00.00)")
    elif store.get(code or "") is None:
        errors.append(f"Código arancelario {code} no existe en el arancel")
    return ValidationResult(is_valid=not errors, errors=errors)


def validate_classification(
    entry: TariffEntry,
    cif_value: Decimal | float | int | str | None,
    store: TariffReferenceStore | None = None,
) -> ValidationResult:
    errors: list[str] = []
    warnings: list[str] = []

    if store is not None:
        errors.extend(validate_tariff_code(entry.code, store).errors)
    if not Decimal("0") <= entry.duty_percent <= MAX_DUTY_PERCENT:
        errors.append(f"DAI fuera de rango: {entry.duty_percent}% (permitido 0-300%)")
    if not Decimal("0") <= entry.vat_percent <= MAX_VAT_PERCENT:
        errors.append(f"ITBMS fuera de rango: {entry.vat_percent}% (permitido 0-15%)")

    cif = parse_amount(cif_value)
    if cif is None:
        errors.append(f"Valor CIF no numérico: {cif_value!r}")
    elif cif < 0:
        errors.append("El valor CIF no puede ser negativo")

    if normalize_text(entry.category) == "tabaco":
        warnings.append("Producto de tabaco: sujeto a regulación especial del MINSA")
    if entry.duty_percent > ELEVATED_DUTY_PERCENT:
        warnings.append(f"DAI elevado ({entry.duty_percent}%): verificar clasificación")
    if entry.unit not in VALID_UNITS:
        warnings.append(f"Unidad de medida no estándar: {entry.unit}")
    if cif is not None and cif > BROKER_CIF_THRESHOLD:
        warnings.append("Valor CIF superior a 50,000: se recomienda corredor de aduanas")

    return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)
