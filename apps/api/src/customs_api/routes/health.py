from __future__ import annotations

from customs_core.packs.loader import ReferencePack
from fastapi import APIRouter, Depends

from customs_api.deps import get_pack

router = APIRouter()


@router.get("/health")
def health(pack: ReferencePack = Depends(get_pack)) -> dict:
    return {"status": "ok", "pack": pack.name, "tariff_entries": len(pack.store)}
