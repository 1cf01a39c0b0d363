"""Per-package liquidation pipeline and chunked batch processing.

Each row runs classify, then regulatory alerts, then taxes, then band
assignment. Rows are independent, so a chunk may fan out over a thread pool;
results are gathered in row order and a Liquidation is only appended once its
whole pipeline has finished.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from contextlib import nullcontext
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from customs_core.config import get_batch_size
from customs_core.liquidation.models import BatchResult, Liquidation, Restriction
from customs_core.liquidation.rows import ManifestRow
from customs_core.liquidation.summary import summarize_liquidations
from customs_core.packs.loader import ReferencePack, load_reference_pack
from customs_core.taxes.calculator import calculate_taxes
from customs_core.utils.money import ZERO, to_amount

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]

DUPLICATE_GUIDE_REASON = "Guía de rastreo duplicada en el manifiesto"


class CancellationToken:
    """Cooperative stop signal checked between rows and chunks.

    ``check`` lets a caller back the token with external state, e.g. a flag
    stored on a job record.
    """

    def __init__(self, check: Callable[[], bool] | None = None) -> None:
        self._event = threading.Event()
        self._check = check

    def cancel(self) -> None:
        self._event.set()

    def is_cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._check is not None and self._check():
            self._event.set()
            return True
        return False


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class LiquidationService:
    def __init__(self, pack: ReferencePack) -> None:
        self._pack = pack

    @classmethod
    def from_pack(cls, name: str | None = None, root: Path | None = None) -> LiquidationService:
        return cls(load_reference_pack(name, root))

    @property
    def pack(self) -> ReferencePack:
        return self._pack

    def liquidate_row(
        self,
        row: ManifestRow,
        manifest_id: str,
        processed_at: str,
        row_number: int | None = None,
    ) -> Liquidation:
        cif = to_amount(row.cif_value)
        observations = list(row.notes)
        review_reasons: list[str] = []
        if not row.tracking_guide:
            review_reasons.append("Guía de rastreo vacía")
        if not row.recipient:
            observations.append("Destinatario vacío")
        if row.fob_value <= 0:
            observations.append("Valor declarado igual a cero")

        classification = self._pack.matcher.find_matches(row.description)
        best = classification.best_match
        entry = best.entry if best else None
        band = self._pack.bands.assign(cif, row.description, entry.category if entry else None)

        fields: dict[str, Any] = {
            "manifest_id": manifest_id,
            "tracking_guide": row.tracking_guide,
            "row_number": row_number if row_number is not None else row.row_number,
            "recipient": row.recipient,
            "description": row.description,
            "customs_category": band.band,
            "fob_value": row.fob_value,
            "freight_value": row.freight_value,
            "insurance_value": row.insurance_value,
            "cif_value": cif,
            "customs_fee": band.handling_fee,
            "total_payable": cif,
            "processed_at": processed_at,
        }

        if entry is not None:
            fields["tariff_code"] = entry.code
            fields["tariff_description"] = entry.description
            fields["match_score"] = best.score
            alerts = self._pack.rules.get_required_permits(entry)
            fields["restrictions"] = [Restriction.from_alert(alert) for alert in alerts]
            fields["has_restrictions"] = bool(alerts)
            if classification.needs_manual_review:
                review_reasons.append(_classification_reason(classification.is_ambiguous))
        elif band.band != "A":
            review_reasons.append("Sin clasificación arancelaria confiable")

        if band.requires_broker:
            review_reasons.append(band.reason)
        elif band.applies_taxes and entry is not None:
            taxes = calculate_taxes(entry, cif)
            fields.update(
                {
                    "duty_percent": taxes.duty_percent,
                    "duty_amount": taxes.duty_amount,
                    "consumption_percent": taxes.consumption_percent,
                    "consumption_amount": taxes.consumption_amount,
                    "vat_percent": taxes.vat_percent,
                    "vat_amount": taxes.vat_amount,
                    "total_taxes": taxes.total_taxes,
                    "total_payable": taxes.total_payable,
                }
            )
            if taxes.exemption_reason:
                observations.append(taxes.exemption_reason)
        elif not band.applies_taxes:
            observations.append(band.reason)

        fields["observations"] = observations
        if review_reasons:
            fields["status"] = "requires_manual_review"
            fields["requires_manual_review"] = True
            fields["manual_review_reason"] = "; ".join(review_reasons)
            logger.warning("Row %s needs manual review: %s", row.tracking_guide or row_number, fields["manual_review_reason"])
        else:
            fields["status"] = "calculated"
        return Liquidation(**fields)

    def process_batch(
        self,
        rows: Iterable[ManifestRow | Mapping[str, Any]],
        manifest_id: str,
        processed_at: str | None = None,
        *,
        chunk_size: int | None = None,
        cancel_token: CancellationToken | None = None,
        on_progress: ProgressCallback | None = None,
        max_workers: int | None = None,
    ) -> BatchResult:
        items = list(rows)
        total = len(items)
        size = chunk_size or get_batch_size()
        token = cancel_token or CancellationToken()
        started_at = _timestamp()
        stamp = processed_at or started_at
        liquidations: list[Liquidation] = []
        cancelled = False

        logger.info("Processing manifest %s: %d rows in chunks of %d", manifest_id, total, size)
        pool = ThreadPoolExecutor(max_workers=max_workers) if max_workers and max_workers > 1 else nullcontext()
        with pool as executor:
            for start in range(0, total, size):
                if token.is_cancelled():
                    cancelled = True
                    break
                chunk = items[start : start + size]
                numbers = range(start + 1, start + 1 + len(chunk))
                if executor is not None:
                    liquidations.extend(
                        executor.map(
                            lambda number, item: self._liquidate_item(item, manifest_id, stamp, number),
                            numbers,
                            chunk,
                        )
                    )
                else:
                    for number, item in zip(numbers, chunk):
                        if token.is_cancelled():
                            cancelled = True
                            break
                        liquidations.append(self._liquidate_item(item, manifest_id, stamp, number))
                if on_progress is not None:
                    on_progress(len(liquidations), total)
                logger.debug("Manifest %s: %d/%d rows processed", manifest_id, len(liquidations), total)
                if cancelled:
                    break

        liquidations = _flag_duplicate_guides(liquidations)
        message = None
        if cancelled:
            message = f"Procesamiento cancelado tras {len(liquidations)} de {total} filas"
            logger.info("Manifest %s cancelled after %d/%d rows", manifest_id, len(liquidations), total)
        else:
            logger.info("Manifest %s completed: %d rows", manifest_id, total)

        return BatchResult(
            manifest_id=manifest_id,
            status="cancelled" if cancelled else "completed",
            total_rows=total,
            processed_rows=len(liquidations),
            liquidations=liquidations,
            summary=summarize_liquidations(liquidations),
            pack_fingerprint=self._pack.fingerprint,
            started_at=started_at,
            finished_at=_timestamp(),
            message=message,
        )

    def _liquidate_item(
        self,
        item: ManifestRow | Mapping[str, Any],
        manifest_id: str,
        processed_at: str,
        row_number: int,
    ) -> Liquidation:
        if isinstance(item, ManifestRow):
            return self.liquidate_row(item, manifest_id, processed_at, row_number)
        try:
            row = ManifestRow.model_validate(dict(item))
        except ValidationError as exc:
            return _unreadable_row(item, manifest_id, processed_at, row_number, exc)
        return self.liquidate_row(row, manifest_id, processed_at, row_number)


def _flag_duplicate_guides(liquidations: list[Liquidation]) -> list[Liquidation]:
    """Send every row sharing a tracking guide with another row to manual review."""
    rows_by_guide: dict[str, list[int]] = {}
    for item in liquidations:
        if item.tracking_guide:
            rows_by_guide.setdefault(item.tracking_guide, []).append(item.row_number or 0)
    repeated = {guide: rows for guide, rows in rows_by_guide.items() if len(rows) > 1}
    if not repeated:
        return liquidations
    logger.warning("Repeated tracking guides: %s", repeated)
    flagged: list[Liquidation] = []
    for item in liquidations:
        rows = repeated.get(item.tracking_guide)
        if rows:
            item = item.flag_for_review(
                DUPLICATE_GUIDE_REASON,
                f"Guía de rastreo repetida en las filas {', '.join(str(row) for row in rows)}",
            )
        flagged.append(item)
    return flagged


def _classification_reason(is_ambiguous: bool) -> str:
    if is_ambiguous:
        return "Clasificación ambigua entre varias partidas"
    return "Clasificación con confianza insuficiente"


def _unreadable_row(
    item: Mapping[str, Any],
    manifest_id: str,
    processed_at: str,
    row_number: int,
    error: ValidationError,
) -> Liquidation:
    guide = "".join(str(item.get("tracking_guide") or "").split()).upper()
    logger.warning("Row %d of manifest %s could not be read: %s", row_number, manifest_id, error)
    return Liquidation(
        manifest_id=manifest_id,
        tracking_guide=guide,
        row_number=row_number,
        description=str(item.get("description") or ""),
        total_payable=ZERO,
        status="requires_manual_review",
        requires_manual_review=True,
        manual_review_reason="Fila ilegible en el manifiesto",
        observations=[f"{err['loc']}: {err['msg']}" for err in error.errors()],
        processed_at=processed_at,
    )
