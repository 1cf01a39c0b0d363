from __future__ import annotations

from pathlib import Path
from typing import Any

import orjson

from customs_core.errors import PackLoadError


def read_pack_json(path: Path) -> Any:
    try:
        return orjson.loads(path.read_bytes())
    except orjson.JSONDecodeError as exc:
        raise PackLoadError(f"{path.name} is not valid JSON: {exc}") from exc
