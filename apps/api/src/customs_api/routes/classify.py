from __future__ import annotations

from customs_core.classification.service import classify_product
from customs_core.classification.validation import validate_classification, validate_tariff_code
from customs_core.packs.loader import ReferencePack
from customs_core.taxes.calculator import calculate_taxes
from fastapi import APIRouter, Depends, HTTPException

from customs_api.deps import get_pack
from customs_api.routes.utils import parse_cif, require_entry
from customs_api.schemas import ClassifyRequest, TariffAmountRequest

router = APIRouter()


@router.post("/v1/classify")
def classify(body: ClassifyRequest, pack: ReferencePack = Depends(get_pack)) -> dict:
    if not body.description.strip():
        raise HTTPException(status_code=400, detail="Description is required")
    classification = classify_product(
        body.description,
        body.cif,
        matcher=pack.matcher,
        rules=pack.rules,
        min_score=body.min_score,
    )
    return classification.model_dump(mode="json")


@router.post("/v1/taxes")
def taxes(body: TariffAmountRequest, pack: ReferencePack = Depends(get_pack)) -> dict:
    entry = require_entry(pack.store, body.code)
    calculation = calculate_taxes(entry, parse_cif(body.cif))
    return {"tariff": entry.model_dump(mode="json"), "taxes": calculation.model_dump(mode="json")}


@router.post("/v1/validate")
def validate(body: TariffAmountRequest, pack: ReferencePack = Depends(get_pack)) -> dict:
    code_result = validate_tariff_code(body.code.strip(), pack.store)
    if not code_result.is_valid:
        return code_result.model_dump(mode="json")
    entry = pack.store.require(body.code.strip())
    return validate_classification(entry, body.cif, pack.store).model_dump(mode="json")
