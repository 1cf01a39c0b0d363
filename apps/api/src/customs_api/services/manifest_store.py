from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime
from decimal import Decimal
from typing import Any

import orjson
from customs_core.liquidation.models import BatchResult, Liquidation
from customs_core.liquidation.summary import summarize_liquidations
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from customs_api.db.models import LiquidationRecord, Manifest

logger = logging.getLogger(__name__)

MANIFEST_STATUSES = ("procesado", "revisado", "exportado", "archivado")


def _dumps(payload: Any) -> str:
    return orjson.dumps(payload, option=orjson.OPT_SORT_KEYS).decode()


def _record(position: int, liquidation: Liquidation) -> LiquidationRecord:
    return LiquidationRecord(
        position=position,
        tracking_guide=liquidation.tracking_guide,
        status=liquidation.status,
        customs_category=liquidation.customs_category,
        tariff_code=liquidation.tariff_code,
        requires_manual_review=liquidation.requires_manual_review,
        payload_json=_dumps(liquidation.model_dump(mode="json")),
    )


def _apply(record: LiquidationRecord, liquidation: Liquidation) -> None:
    record.tracking_guide = liquidation.tracking_guide
    record.status = liquidation.status
    record.customs_category = liquidation.customs_category
    record.tariff_code = liquidation.tariff_code
    record.requires_manual_review = liquidation.requires_manual_review
    record.payload_json = _dumps(liquidation.model_dump(mode="json"))


def load_liquidation(record: LiquidationRecord) -> Liquidation:
    return Liquidation.model_validate(orjson.loads(record.payload_json))


class ManifestStore:
    """Persists batch results; every write is one transaction."""

    def save(self, session: Session, result: BatchResult, pack: str) -> Manifest:
        try:
            existing = session.get(Manifest, result.manifest_id)
            if existing is not None:
                session.delete(existing)
                session.flush()
            manifest = Manifest(
                manifest_id=result.manifest_id,
                status="procesado",
                batch_status=result.status,
                pack=pack,
                pack_fingerprint=result.pack_fingerprint,
                total_rows=result.total_rows,
                processed_rows=result.processed_rows,
                summary_json=_dumps(result.summary.model_dump(mode="json")),
                message=result.message,
                liquidations=[
                    _record(position, liquidation)
                    for position, liquidation in enumerate(result.liquidations)
                ],
            )
            session.add(manifest)
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            logger.exception("Saving manifest %s failed; rolled back", result.manifest_id)
            raise
        session.refresh(manifest)
        logger.info(
            "Saved manifest %s with %d liquidations",
            manifest.manifest_id,
            len(result.liquidations),
        )
        return manifest

    def get(self, session: Session, manifest_id: str) -> Manifest | None:
        return session.get(Manifest, manifest_id)

    def list(self, session: Session) -> list[Manifest]:
        statement = select(Manifest).order_by(Manifest.created_at.desc(), Manifest.manifest_id)
        return list(session.scalars(statement))

    def liquidations_for(self, session: Session, manifest_id: str) -> list[Liquidation]:
        statement = (
            select(LiquidationRecord)
            .where(LiquidationRecord.manifest_id == manifest_id)
            .order_by(LiquidationRecord.position)
        )
        return [load_liquidation(record) for record in session.scalars(statement)]

    def update_status(self, session: Session, manifest_id: str, status: str) -> Manifest | None:
        if status not in MANIFEST_STATUSES:
            raise ValueError(f"Invalid manifest status {status!r}; expected one of {MANIFEST_STATUSES}")
        manifest = self.get(session, manifest_id)
        if manifest is None:
            return None
        manifest.status = status
        manifest.updated_at = datetime.utcnow()
        session.add(manifest)
        session.commit()
        session.refresh(manifest)
        return manifest

    def update_liquidation(
        self,
        session: Session,
        manifest_id: str,
        liquidation: Liquidation,
    ) -> Liquidation | None:
        manifest = self.get(session, manifest_id)
        if manifest is None:
            return None
        record = _find_record(manifest.liquidations, liquidation)
        if record is None:
            return None
        try:
            _apply(record, liquidation)
            manifest.summary_json = _dumps(
                summarize_liquidations(
                    load_liquidation(item) for item in manifest.liquidations
                ).model_dump(mode="json")
            )
            manifest.updated_at = datetime.utcnow()
            session.add(manifest)
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            raise
        return liquidation

    def delete(self, session: Session, manifest_id: str) -> bool:
        manifest = self.get(session, manifest_id)
        if manifest is None:
            return False
        session.delete(manifest)
        session.commit()
        logger.info("Deleted manifest %s", manifest_id)
        return True

    def stats(self, session: Session) -> dict[str, Any]:
        manifests = self.list(session)
        total_cif = Decimal("0.00")
        total_payable = Decimal("0.00")
        for manifest in manifests:
            summary = orjson.loads(manifest.summary_json)
            total_cif += Decimal(summary["total_cif"])
            total_payable += Decimal(summary["total_payable"])
        review_statement = (
            select(func.count())
            .select_from(LiquidationRecord)
            .where(LiquidationRecord.requires_manual_review.is_(True))
        )
        return {
            "manifests": len(manifests),
            "by_status": dict(sorted(Counter(manifest.status for manifest in manifests).items())),
            "total_rows": sum(manifest.processed_rows for manifest in manifests),
            "requires_review": session.scalar(review_statement) or 0,
            "total_cif": total_cif,
            "total_payable": total_payable,
        }


def _find_record(records: list[LiquidationRecord], liquidation: Liquidation) -> LiquidationRecord | None:
    for record in records:
        if record.tracking_guide != liquidation.tracking_guide:
            continue
        if liquidation.row_number is None or load_liquidation(record).row_number == liquidation.row_number:
            return record
    return None
