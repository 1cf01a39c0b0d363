from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from customs_api.db.models import ManifestJob
from customs_api.deps import get_db
from customs_api.schemas import JobStatusResponse
from customs_api.services.job_store import ManifestJobStore

router = APIRouter()


def _job_payload(job: ManifestJob) -> dict:
    return {
        "job_id": job.job_id,
        "status": job.status,
        "manifest_id": job.manifest_id,
        "total_rows": job.total_rows,
        "processed_rows": job.processed_rows,
        "cancel_requested": job.cancel_requested,
        "error": job.error,
    }


@router.get("/v1/jobs/{job_id}", response_model=JobStatusResponse, response_model_exclude_none=True)
def get_job(job_id: str, db: Session = Depends(get_db)) -> dict:
    job = ManifestJobStore().get(db, job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return _job_payload(job)


@router.post("/v1/jobs/{job_id}/cancel", response_model=JobStatusResponse, response_model_exclude_none=True)
def cancel_job(job_id: str, db: Session = Depends(get_db)) -> dict:
    job_store = ManifestJobStore()
    job = job_store.get(db, job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return _job_payload(job_store.request_cancel(db, job))
