from __future__ import annotations

from customs_core.packs.loader import ReferencePack, list_packs
from fastapi import APIRouter, Depends

from customs_api.deps import get_pack, get_settings_dep
from customs_api.settings import Settings

router = APIRouter()


@router.get("/v1/packs")
def packs(
    settings: Settings = Depends(get_settings_dep),
    pack: ReferencePack = Depends(get_pack),
) -> dict:
    return {
        "packs": list_packs(settings.packs_root),
        "active": pack.name,
        "fingerprint": pack.fingerprint,
    }
