from __future__ import annotations

import re

CANONICAL_CODE_PATTERN = re.compile(r"^\d{4}\.\d{2}\.\d{2}\.\d{2}$")


def is_canonical_code(value: str | None) -> bool:
    if not value:
        return False
    return bool(CANONICAL_CODE_PATTERN.match(value.strip()))


def strip_code(value: str) -> str:
    return value.replace(".", "").strip()


def matches_prefix(code: str, prefixes: list[str] | tuple[str, ...]) -> bool:
    stripped = strip_code(code)
    for prefix in prefixes:
        if stripped.startswith(strip_code(prefix)):
            return True
    return False
