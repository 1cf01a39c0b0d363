from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any

from customs_api.db.models import Base
from customs_api.db.session import create_engine_from_url, create_sessionmaker
from customs_api.services.job_store import ManifestJobStore
from customs_api.services.manifest_store import ManifestStore
from customs_api.settings import get_settings
from customs_core.liquidation.pipeline import CancellationToken, LiquidationService
from customs_core.packs.loader import load_reference_pack
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


@lru_cache
def _sessionmaker():
    settings = get_settings()
    engine = create_engine_from_url(settings.database_url)
    if settings.auto_create_tables:
        Base.metadata.create_all(bind=engine)
    return create_sessionmaker(engine)


@lru_cache
def _liquidation_service(pack_name: str) -> LiquidationService:
    return LiquidationService(load_reference_pack(pack_name, get_settings().packs_root))


def _get_session() -> Session:
    session_local = _sessionmaker()
    return session_local()


def run_manifest_batch(job_id: str, payload: dict[str, Any]) -> None:
    session = _get_session()
    job_store = ManifestJobStore()
    job = job_store.get(session, job_id)
    if not job:
        logger.warning("Manifest job %s not found", job_id)
        session.close()
        return
    if job.cancel_requested:
        job_store.set_cancelled(session, job, processed_rows=0)
        logger.info("Manifest job %s cancelled before start", job_id)
        session.close()
        return
    job_store.set_running(session, job)
    try:
        pack_name = payload.get("pack") or job.pack
        service = _liquidation_service(pack_name)
        token = CancellationToken(check=lambda: job_store.cancel_requested(session, job_id))

        def on_progress(processed: int, total: int) -> None:
            job_store.update_progress(session, job, processed)

        result = service.process_batch(
            payload.get("rows") or [],
            payload.get("manifest_id") or job.manifest_id,
            cancel_token=token,
            on_progress=on_progress,
        )
        ManifestStore().save(session, result, pack_name)
        if result.status == "cancelled":
            job_store.set_cancelled(session, job, processed_rows=result.processed_rows)
        else:
            job_store.set_completed(session, job, processed_rows=result.processed_rows)
    except Exception as exc:  # pragma: no cover - safety net
        logger.exception("Manifest job %s failed", job_id)
        session.rollback()
        job_store.set_failed(session, job, error=str(exc))
    finally:
        session.close()
