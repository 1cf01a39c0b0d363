"""Deterministic product-description to tariff-code matching.

Scoring combines token coverage, token strength (exact, containment or
edit-distance similarity) and three boosts: a code anchor when the
description quotes the tariff heading, a synonym boost from the keyword
dictionary, and a whole-description similarity boost.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable

from rapidfuzz.distance import Levenshtein

from customs_core.classification.models import (
    ClassificationResult,
    ConfidenceBand,
    MatchCandidate,
    MatchKind,
)
from customs_core.config import MatcherPolicy, get_matcher_policy
from customs_core.tariffs.models import TariffEntry
from customs_core.tariffs.store import TariffReferenceStore
from customs_core.utils.normalize import normalize_text, string_similarity, tokenize

logger = logging.getLogger(__name__)

NO_MATCH_SUGGESTIONS = (
    "Intente con términos más específicos",
    "Use el código arancelario si lo conoce",
    "Busque por categoría de producto",
)

CONTAINMENT_SCORE = 0.9
FUZZY_TOKEN_THRESHOLD = 0.7
FUZZY_TOKEN_WEIGHT = 0.8
MATCHED_TOKEN_THRESHOLD = 0.5
CODE_ANCHOR_SCORE = 95
SYNONYM_BOOST = 10
DESCRIPTION_SIMILARITY_THRESHOLD = 0.8

_KIND_RANK = {"exact": 0, "synonym": 1, "fuzzy": 2, "partial": 3}


def best_token_score(token: str, targets: Iterable[str]) -> float:
    best = 0.0
    for target in targets:
        if token == target:
            return 1.0
        if token in target or target in token:
            score = CONTAINMENT_SCORE
        else:
            similarity = 1.0 - Levenshtein.distance(token, target) / max(len(token), len(target))
            score = similarity * FUZZY_TOKEN_WEIGHT if similarity > FUZZY_TOKEN_THRESHOLD else 0.0
        best = max(best, score)
    return best


def token_score(query_tokens: list[str], target_tokens: list[str]) -> tuple[float, int]:
    """Return coverage times average strength, and the matched token count."""
    if not query_tokens or not target_tokens:
        return 0.0, 0
    total = 0.0
    matched = 0
    for token in query_tokens:
        score = best_token_score(token, target_tokens)
        total += score
        if score > MATCHED_TOKEN_THRESHOLD:
            matched += 1
    count = len(query_tokens)
    return (matched / count) * (total / count), matched


def confidence_for(score: float) -> ConfidenceBand:
    if score >= 90:
        return "high"
    if score >= 75:
        return "medium"
    return "low"


def _round_score(value: float) -> int:
    return int(math.floor(value + 0.5))


class FuzzyMatcher:
    def __init__(
        self,
        store: TariffReferenceStore,
        policy: MatcherPolicy | None = None,
    ) -> None:
        self._store = store
        self._policy = policy or get_matcher_policy()
        self._targets = [
            (entry, tokenize(f"{entry.description} {entry.category}"))
            for entry in store.list_entries()
        ]

    @property
    def policy(self) -> MatcherPolicy:
        return self._policy

    def find_by_code(self, code: str) -> TariffEntry | None:
        return self._store.get(code)

    def find_matches(self, description: str, min_score: float | None = None) -> ClassificationResult:
        threshold = self._policy.min_score if min_score is None else min_score
        normalized = normalize_text(description)
        query_tokens = tokenize(description)
        if not query_tokens:
            return self.resolve([], threshold)

        expanded_terms = sorted(self._store.expand_terms(description))
        floor = threshold * self._policy.suggestion_floor

        candidates: list[MatchCandidate] = []
        for entry, target_tokens in self._targets:
            candidate = self._score_entry(
                entry,
                target_tokens,
                normalized,
                query_tokens,
                expanded_terms,
            )
            if candidate.score >= floor:
                candidates.append(candidate)

        candidates.sort(key=lambda item: (-item.score, _KIND_RANK[item.match_kind], item.entry.code))
        result = self.resolve(candidates, threshold)
        logger.debug(
            "Matched %r against %d entries: %d candidates, best=%s",
            description,
            len(self._targets),
            len(result.candidates),
            result.best_match.entry.code if result.best_match else None,
        )
        return result

    def resolve(self, candidates: list[MatchCandidate], min_score: float) -> ClassificationResult:
        """Build the classification verdict from candidates sorted best first."""
        top = candidates[: self._policy.max_candidates]
        best = top[0] if top and top[0].score >= min_score else None
        is_ambiguous = (
            len(top) >= 2
            and top[0].score >= min_score
            and top[1].score >= min_score
            and top[0].score - top[1].score < self._policy.ambiguity_gap
        )
        needs_manual_review = best is None or is_ambiguous or best.confidence != "high"
        suggestions = list(NO_MATCH_SUGGESTIONS) if best is None else []
        return ClassificationResult(
            candidates=top,
            best_match=best,
            is_ambiguous=is_ambiguous,
            needs_manual_review=needs_manual_review,
            suggestions=suggestions,
        )

    def _score_entry(
        self,
        entry: TariffEntry,
        target_tokens: list[str],
        normalized_description: str,
        query_tokens: list[str],
        expanded_terms: list[str],
    ) -> MatchCandidate:
        base, matched = token_score(query_tokens, target_tokens)
        score = base * 100
        kind: MatchKind = "fuzzy" if query_tokens and matched == len(query_tokens) else "partial"

        if entry.heading in normalized_description:
            score = max(score, CODE_ANCHOR_SCORE)
            kind = "exact"

        matched_terms = [
            term
            for term in expanded_terms
            if any(term in target or target in term for target in target_tokens)
        ]
        if matched_terms:
            score = min(100, score + SYNONYM_BOOST)
            if kind != "exact":
                kind = "synonym"

        similarity = string_similarity(normalized_description, entry.description)
        if similarity > DESCRIPTION_SIMILARITY_THRESHOLD:
            score = max(score, similarity * 100)
            kind = "exact"

        rounded = _round_score(score)
        return MatchCandidate(
            entry=entry,
            score=rounded,
            match_kind=kind,
            confidence=confidence_for(rounded),
            matched_terms=matched_terms,
        )
