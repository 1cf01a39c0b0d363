from __future__ import annotations

from customs_core.liquidation.rows import ManifestRow
from customs_core.packs.loader import ReferencePack
from fastapi import APIRouter, Depends, HTTPException
from pydantic import ValidationError

from customs_api.deps import get_pack
from customs_api.schemas import SubvaluationRequest

router = APIRouter()


@router.post("/v1/subvaluation")
def subvaluation(body: SubvaluationRequest, pack: ReferencePack = Depends(get_pack)) -> dict:
    try:
        rows = [ManifestRow.model_validate(row) for row in body.rows]
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.errors(include_url=False, include_context=False)) from exc
    results = pack.detector.analyze(rows)
    return {
        "results": [result.model_dump(mode="json") for result in results],
        "summary": pack.detector.summarize(results).model_dump(mode="json"),
    }
