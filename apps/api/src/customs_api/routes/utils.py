from __future__ import annotations

from decimal import Decimal
from typing import Any

import orjson
from customs_core.errors import UnknownTariffCodeError
from customs_core.liquidation.models import Liquidation
from customs_core.tariffs.models import TariffEntry
from customs_core.tariffs.store import TariffReferenceStore
from customs_core.utils.money import parse_amount
from fastapi import HTTPException

from customs_api.db.models import Manifest


def parse_cif(value: object) -> Decimal:
    amount = parse_amount(value)
    if amount is None or amount < 0:
        raise HTTPException(status_code=400, detail=f"Invalid CIF value: {value!r}")
    return amount


def require_entry(store: TariffReferenceStore, code: str) -> TariffEntry:
    try:
        return store.require(code.strip())
    except UnknownTariffCodeError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def dump_liquidation(liquidation: Liquidation) -> dict[str, Any]:
    payload = liquidation.model_dump(mode="json")
    payload["total_charges"] = str(liquidation.total_charges)
    return payload


def manifest_header(manifest: Manifest) -> dict[str, Any]:
    return {
        "manifest_id": manifest.manifest_id,
        "status": manifest.status,
        "batch_status": manifest.batch_status,
        "pack": manifest.pack,
        "pack_fingerprint": manifest.pack_fingerprint,
        "total_rows": manifest.total_rows,
        "processed_rows": manifest.processed_rows,
        "created_at": manifest.created_at.isoformat(),
        "updated_at": manifest.updated_at.isoformat(),
        "message": manifest.message,
        "summary": orjson.loads(manifest.summary_json),
    }


def manifest_payload(manifest: Manifest, liquidations: list[Liquidation]) -> dict[str, Any]:
    payload = manifest_header(manifest)
    payload["liquidations"] = [dump_liquidation(liquidation) for liquidation in liquidations]
    return payload
