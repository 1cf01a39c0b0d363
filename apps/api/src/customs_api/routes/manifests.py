from __future__ import annotations

import logging
from typing import Any
from uuid import uuid4

import orjson
from customs_core.liquidation.pipeline import LiquidationService
from customs_core.review.workflow import ManualReviewWorkflow
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from customs_api.deps import get_db, get_liquidation_service, get_queue, get_review_workflow
from customs_api.queue.rq import enqueue_manifest_batch
from customs_api.routes.utils import dump_liquidation, manifest_header, manifest_payload, require_entry
from customs_api.schemas import ManifestAsyncResponse, ManifestRequest, ManifestStatusRequest, ReviewRequest
from customs_api.services.job_store import ManifestJobStore
from customs_api.services.manifest_store import ManifestStore

logger = logging.getLogger(__name__)

router = APIRouter()


def _new_manifest_id() -> str:
    return f"MAN-{uuid4().hex[:12].upper()}"


@router.post("/v1/manifests", response_model=None)
def create_manifest(
    body: ManifestRequest,
    db: Session = Depends(get_db),
    queue: Any = Depends(get_queue),
    service: LiquidationService = Depends(get_liquidation_service),
) -> dict[str, Any]:
    if not body.rows:
        raise HTTPException(status_code=400, detail="Manifest has no rows")
    manifest_id = (body.manifest_id or "").strip() or _new_manifest_id()
    pack = service.pack.name

    if body.mode == "async":
        job_id = str(uuid4())
        payload = {"manifest_id": manifest_id, "pack": pack, "rows": body.rows}
        ManifestJobStore().create(
            db,
            job_id=job_id,
            manifest_id=manifest_id,
            pack=pack,
            total_rows=len(body.rows),
            payload_json=orjson.dumps(payload).decode(),
        )
        enqueue_manifest_batch(queue, job_id=job_id, payload=payload)
        logger.info("Queued manifest %s as job %s (%d rows)", manifest_id, job_id, len(body.rows))
        return ManifestAsyncResponse(job_id=job_id, manifest_id=manifest_id, status="queued").model_dump()

    result = service.process_batch(body.rows, manifest_id)
    store = ManifestStore()
    manifest = store.save(db, result, pack)
    return manifest_payload(manifest, list(result.liquidations))


@router.get("/v1/manifests")
def list_manifests(db: Session = Depends(get_db)) -> dict:
    return {"manifests": [manifest_header(manifest) for manifest in ManifestStore().list(db)]}


@router.get("/v1/manifests/{manifest_id}")
def get_manifest(manifest_id: str, db: Session = Depends(get_db)) -> dict:
    store = ManifestStore()
    manifest = store.get(db, manifest_id)
    if manifest is None:
        raise HTTPException(status_code=404, detail="Manifest not found")
    return manifest_payload(manifest, store.liquidations_for(db, manifest_id))


@router.delete("/v1/manifests/{manifest_id}")
def delete_manifest(manifest_id: str, db: Session = Depends(get_db)) -> dict:
    if not ManifestStore().delete(db, manifest_id):
        raise HTTPException(status_code=404, detail="Manifest not found")
    return {"manifest_id": manifest_id, "deleted": True}


@router.patch("/v1/manifests/{manifest_id}/status")
def update_manifest_status(
    manifest_id: str,
    body: ManifestStatusRequest,
    db: Session = Depends(get_db),
) -> dict:
    try:
        manifest = ManifestStore().update_status(db, manifest_id, body.status)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if manifest is None:
        raise HTTPException(status_code=404, detail="Manifest not found")
    return manifest_header(manifest)


def _find_liquidation(
    db: Session,
    store: ManifestStore,
    manifest_id: str,
    tracking_guide: str,
    row: int | None = None,
):
    if store.get(db, manifest_id) is None:
        raise HTTPException(status_code=404, detail="Manifest not found")
    guide = "".join(tracking_guide.split()).upper()
    matches = [
        liquidation
        for liquidation in store.liquidations_for(db, manifest_id)
        if liquidation.tracking_guide == guide and (row is None or liquidation.row_number == row)
    ]
    if not matches:
        raise HTTPException(status_code=404, detail="Liquidation not found")
    if len(matches) > 1:
        rows = ", ".join(str(item.row_number) for item in matches)
        raise HTTPException(
            status_code=409,
            detail=f"Tracking guide {guide} appears in rows {rows}; pass ?row= to choose one",
        )
    return matches[0]


@router.post("/v1/manifests/{manifest_id}/liquidations/{tracking_guide}/review")
def review_liquidation(
    manifest_id: str,
    tracking_guide: str,
    body: ReviewRequest,
    row: int | None = Query(default=None, ge=1),
    db: Session = Depends(get_db),
    review: ManualReviewWorkflow = Depends(get_review_workflow),
) -> dict:
    store = ManifestStore()
    liquidation = _find_liquidation(db, store, manifest_id, tracking_guide, row)
    if liquidation.status == "paid":
        raise HTTPException(status_code=409, detail="Liquidation already paid")
    entry = require_entry(review.store, body.code)
    updated = review.recalculate(liquidation, entry.code, body.cif, body.observations)
    store.update_liquidation(db, manifest_id, updated)
    return dump_liquidation(updated)


@router.post("/v1/manifests/{manifest_id}/liquidations/{tracking_guide}/pay")
def pay_liquidation(
    manifest_id: str,
    tracking_guide: str,
    row: int | None = Query(default=None, ge=1),
    db: Session = Depends(get_db),
) -> dict:
    store = ManifestStore()
    liquidation = _find_liquidation(db, store, manifest_id, tracking_guide, row)
    try:
        updated = liquidation.mark_paid()
    except ValueError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    store.update_liquidation(db, manifest_id, updated)
    return dump_liquidation(updated)


@router.get("/v1/stats")
def stats(db: Session = Depends(get_db)) -> dict:
    payload = ManifestStore().stats(db)
    payload["total_cif"] = str(payload["total_cif"])
    payload["total_payable"] = str(payload["total_payable"])
    return payload
