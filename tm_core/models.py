from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from tm_core.constants import EXACT_MATCH_SIMILARITY


class MatchType(str, Enum):
    EXACT = "exact"
    FUZZY = "fuzzy"


@dataclass(slots=True, frozen=True)
class TMEntry:
    id: str
    source_text: str
    target_text: str
    source_language: str
    target_language: str
    game_context: str | None = None
    category: str | None = None
    usage_count: int = 0
    last_used_at: str | None = None
    quality_score: float | None = None
    created_at: str = ""
    updated_at: str = ""


@dataclass(slots=True, frozen=True)
class NormalizedQuery:
    raw_text: str
    text: str
    target_language: str
    context: str | None = None
    category: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.text


@dataclass(slots=True, frozen=True)
class SimilarityScore:
    distance_similarity: float
    affix_similarity: float
    token_similarity: float
    context_boost: float
    category_boost: float
    composite: float

    @classmethod
    def exact(cls) -> "SimilarityScore":
        return cls(
            distance_similarity=EXACT_MATCH_SIMILARITY,
            affix_similarity=EXACT_MATCH_SIMILARITY,
            token_similarity=EXACT_MATCH_SIMILARITY,
            context_boost=0.0,
            category_boost=0.0,
            composite=EXACT_MATCH_SIMILARITY,
        )


@dataclass(slots=True, frozen=True)
class MatchCandidate:
    entry: TMEntry
    score: SimilarityScore
    was_exact_match: bool = False

    @property
    def composite(self) -> float:
        return self.score.composite

    @property
    def match_type(self) -> MatchType:
        return MatchType.EXACT if self.was_exact_match else MatchType.FUZZY


def rank_candidates(candidates: list[MatchCandidate]) -> list[MatchCandidate]:
    """Order by composite descending, most recently used first, then id.

    ``last_used_at`` values are ISO-8601 UTC strings and order
    lexicographically; entries never used sort after used ones. Each pass is
    a stable sort, so earlier passes break ties of later ones.
    """

    ordered = sorted(candidates, key=lambda candidate: candidate.entry.id)
    ordered.sort(key=lambda candidate: candidate.entry.last_used_at or "", reverse=True)
    ordered.sort(key=lambda candidate: candidate.composite, reverse=True)
    return ordered
