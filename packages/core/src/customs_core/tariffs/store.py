from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from functools import lru_cache
from pathlib import Path

from pydantic import ValidationError

from customs_core.config import get_pack_name, get_packs_root
from customs_core.errors import PackLoadError, UnknownTariffCodeError
from customs_core.packs.files import read_pack_json
from customs_core.tariffs.models import TariffEntry
from customs_core.utils.normalize import normalize_text

logger = logging.getLogger(__name__)


class TariffReferenceStore:
    """Read-only tariff table plus the keyword dictionary keyed by code."""

    def __init__(
        self,
        entries: Iterable[TariffEntry],
        keyword_index: Mapping[str, Iterable[str]] | None = None,
    ) -> None:
        self._entries = tuple(sorted(entries, key=lambda item: item.code))
        self._by_code = {entry.code: entry for entry in self._entries}
        self._keyword_index = {
            code: tuple(keywords) for code, keywords in sorted((keyword_index or {}).items())
        }
        codes = sorted(set(self._by_code) | set(self._keyword_index))
        self._normalized_groups = {
            code: tuple(
                dict.fromkeys(
                    term for term in (normalize_text(word) for word in self.keywords_for(code)) if term
                )
            )
            for code in codes
        }
        self._code_forms = {code: (normalize_text(code), code.replace(".", "")) for code in codes}

    @classmethod
    def from_pack(cls, root: Path | None = None, pack_name: str | None = None) -> TariffReferenceStore:
        pack_path = (root or get_packs_root()) / (pack_name or get_pack_name())
        return cls(
            _load_entries(pack_path / "tariffs.json"),
            _load_keyword_index(pack_path / "keywords.json"),
        )

    def __len__(self) -> int:
        return len(self._entries)

    def list_entries(self) -> list[TariffEntry]:
        return list(self._entries)

    @property
    def keyword_index(self) -> dict[str, tuple[str, ...]]:
        return dict(self._keyword_index)

    def get(self, code: str) -> TariffEntry | None:
        return self._by_code.get(code.strip())

    def require(self, code: str) -> TariffEntry:
        entry = self.get(code)
        if entry is None:
            raise UnknownTariffCodeError(code)
        return entry

    def keywords_for(self, code: str) -> list[str]:
        keywords: list[str] = []
        entry = self.get(code)
        if entry:
            keywords.extend(entry.keywords)
        keywords.extend(self._keyword_index.get(code, ()))
        return list(dict.fromkeys(keywords))

    def expand_terms(self, text: str) -> set[str]:
        """Return every synonym group term triggered by the text.

        A group is triggered when its tariff code (dotted or compact) or one
        of its terms occurs in the normalized text as a whole word (or word
        sequence).
        """
        padded = f" {normalize_text(text)} "
        if not padded.strip():
            return set()
        expanded: set[str] = set()
        for code, terms in self._normalized_groups.items():
            triggers = (*self._code_forms[code], *terms)
            if any(f" {trigger} " in padded for trigger in triggers):
                expanded.update(terms)
        return expanded


@lru_cache(maxsize=8)
def _load_entries(path: Path) -> tuple[TariffEntry, ...]:
    if not path.exists():
        logger.warning("Tariff table %s not found; store is empty", path)
        return tuple()
    payload = read_pack_json(path)
    if not isinstance(payload, list):
        raise PackLoadError(f"{path.name} must contain a list of tariff entries")
    try:
        entries = tuple(TariffEntry.model_validate(item) for item in payload)
    except ValidationError as exc:
        raise PackLoadError(f"Invalid tariff entry in {path.name}: {exc}") from exc
    codes = [entry.code for entry in entries]
    if len(set(codes)) != len(codes):
        raise PackLoadError(f"Duplicate tariff codes in {path.name}")
    logger.info("Loaded %d tariff entries from %s", len(entries), path.name)
    return entries


@lru_cache(maxsize=8)
def _load_keyword_index(path: Path) -> dict[str, tuple[str, ...]]:
    if not path.exists():
        return {}
    payload = read_pack_json(path)
    if not isinstance(payload, dict):
        raise PackLoadError(f"{path.name} must map tariff codes to keyword lists")
    return {
        str(code): tuple(str(word) for word in words)
        for code, words in payload.items()
        if isinstance(words, list)
    }
