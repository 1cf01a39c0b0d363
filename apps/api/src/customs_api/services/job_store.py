from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from customs_api.db.models import ManifestJob

FINISHED_STATUSES = frozenset({"completed", "cancelled", "failed"})


class ManifestJobStore:
    def create(
        self,
        session: Session,
        job_id: str,
        manifest_id: str,
        pack: str,
        total_rows: int,
        payload_json: str | None = None,
    ) -> ManifestJob:
        job = ManifestJob(
            job_id=job_id,
            status="queued",
            manifest_id=manifest_id,
            pack=pack,
            total_rows=total_rows,
            payload_json=payload_json,
        )
        session.add(job)
        session.commit()
        session.refresh(job)
        return job

    def get(self, session: Session, job_id: str) -> ManifestJob | None:
        return session.get(ManifestJob, job_id)

    def set_running(self, session: Session, job: ManifestJob) -> ManifestJob:
        return self._update(session, job, status="running")

    def update_progress(self, session: Session, job: ManifestJob, processed_rows: int) -> ManifestJob:
        return self._update(session, job, processed_rows=processed_rows)

    def set_completed(self, session: Session, job: ManifestJob, processed_rows: int) -> ManifestJob:
        return self._update(session, job, status="completed", processed_rows=processed_rows)

    def set_cancelled(self, session: Session, job: ManifestJob, processed_rows: int) -> ManifestJob:
        return self._update(session, job, status="cancelled", processed_rows=processed_rows)

    def set_failed(self, session: Session, job: ManifestJob, error: str) -> ManifestJob:
        return self._update(session, job, status="failed", error=error)

    def request_cancel(self, session: Session, job: ManifestJob) -> ManifestJob:
        if job.status in FINISHED_STATUSES:
            return job
        return self._update(session, job, cancel_requested=True)

    def cancel_requested(self, session: Session, job_id: str) -> bool:
        statement = select(ManifestJob.cancel_requested).where(ManifestJob.job_id == job_id)
        return bool(session.scalar(statement))

    def _update(self, session: Session, job: ManifestJob, **fields: object) -> ManifestJob:
        for name, value in fields.items():
            setattr(job, name, value)
        job.updated_at = datetime.utcnow()
        session.add(job)
        session.commit()
        session.refresh(job)
        return job
