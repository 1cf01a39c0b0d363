from __future__ import annotations

from customs_core.review.search import DEFAULT_LIMIT
from customs_core.review.workflow import ManualReviewWorkflow
from fastapi import APIRouter, Depends, Query

from customs_api.deps import get_review_workflow

router = APIRouter()


@router.get("/v1/tariffs/search")
def search(
    q: str = Query(default=""),
    limit: int = Query(default=DEFAULT_LIMIT, ge=1, le=100),
    review: ManualReviewWorkflow = Depends(get_review_workflow),
) -> dict:
    entries = review.search(q, limit)
    return {"query": q, "results": [entry.model_dump(mode="json") for entry in entries]}
