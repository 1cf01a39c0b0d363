from __future__ import annotations

from customs_core.tariffs.models import TariffEntry
from customs_core.tariffs.store import TariffReferenceStore
from customs_core.utils.normalize import normalize_text

MIN_QUERY_LENGTH = 2
DEFAULT_LIMIT = 10


def search_tariffs(
    query: str,
    store: TariffReferenceStore,
    limit: int = DEFAULT_LIMIT,
) -> list[TariffEntry]:
    """Substring search over description, code and category, then keywords."""
    needle = normalize_text(query)
    if len(needle) < MIN_QUERY_LENGTH:
        return []

    results: dict[str, TariffEntry] = {}
    for entry in store.list_entries():
        if len(results) >= limit:
            break
        haystacks = (entry.description, entry.code, entry.category)
        if any(needle in normalize_text(value) for value in haystacks):
            results[entry.code] = entry

    for entry in store.list_entries():
        if len(results) >= limit:
            break
        if entry.code in results:
            continue
        if any(needle in normalize_text(keyword) for keyword in store.keywords_for(entry.code)):
            results[entry.code] = entry

    return list(results.values())[:limit]
