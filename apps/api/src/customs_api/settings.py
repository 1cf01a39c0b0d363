from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from customs_core.config import get_pack_name, get_packs_root

DEFAULT_CORS_ORIGINS = ("http://localhost:3000", "http://127.0.0.1:3000")


@dataclass(frozen=True)
class Settings:
    database_url: str
    redis_url: str
    packs_root: Path
    pack_name: str
    auto_create_tables: bool
    cors_origins: tuple[str, ...]


def _normalize_database_url(database_url: str) -> str:
    if database_url.startswith("postgres://"):
        return f"postgresql://{database_url[len('postgres://'):]}"
    return database_url


def _read_flag(name: str, default: str) -> bool:
    raw_value = os.getenv(name, default).strip()
    if raw_value not in {"0", "1"}:
        raise ValueError(f"{name} must be '0' or '1'")
    return raw_value == "1"


@lru_cache
def get_settings() -> Settings:
    raw_database_url = os.getenv("DATABASE_URL")
    if not raw_database_url:
        raw_database_url = "sqlite:///./customs_dev.db"
    database_url = _normalize_database_url(raw_database_url)
    redis_url = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    raw_origins = os.getenv("CUSTOMS_CORS_ORIGINS", "")
    configured_origins = [origin.strip() for origin in raw_origins.split(",") if origin.strip()]
    return Settings(
        database_url=database_url,
        redis_url=redis_url,
        packs_root=get_packs_root(),
        pack_name=get_pack_name(),
        auto_create_tables=_read_flag("CUSTOMS_DB_AUTOCREATE", "1"),
        cors_origins=tuple(dict.fromkeys([*DEFAULT_CORS_ORIGINS, *configured_origins])),
    )
