from __future__ import annotations

from collections.abc import Hashable, Sequence
import logging

from rapidfuzz.distance import OSA, Levenshtein

from tm_core.match_cache import CacheStatistics, MatchCache

logger = logging.getLogger(__name__)


def _ratio(distance: int, left_length: int, right_length: int) -> float:
    longest = max(left_length, right_length)
    if longest == 0:
        return 1.0
    return 1.0 - (distance / longest)


class DistanceEngine:
    """Character-level edit distance and the similarity derived from it.

    ``distance`` is plain Levenshtein (insert, delete, substitute);
    ``transposition_distance`` additionally counts an adjacent swap as a
    single edit (optimal string alignment). Both come from rapidfuzz.

    Comparison folds case unless ``case_sensitive`` is set. Lengths used for
    normalization are those of the folded text, since folding can change
    them. When ``memo_size`` is positive, plain distances are memoized per
    folded pair in an instance-owned LRU; ``close()`` or leaving the context
    manager drops it.
    """

    def __init__(self, *, case_sensitive: bool = False, memo_size: int = 0) -> None:
        self.case_sensitive = case_sensitive
        self._memo: MatchCache[tuple[str, str], int] | None = (
            MatchCache(memo_size) if memo_size > 0 else None
        )

    def __enter__(self) -> "DistanceEngine":
        return self

    def __exit__(self, *_exc_info: object) -> None:
        self.close()

    def _fold(self, text: str) -> str:
        return text if self.case_sensitive else text.lower()

    def _folded_distance(self, left: str, right: str) -> int:
        if self._memo is None:
            return Levenshtein.distance(left, right)

        key = (left, right) if left <= right else (right, left)
        cached = self._memo.get(key)
        if cached is not None:
            return cached
        result = Levenshtein.distance(left, right)
        self._memo.put(key, result)
        return result

    def distance(self, left: str, right: str) -> int:
        return self._folded_distance(self._fold(left), self._fold(right))

    def similarity(self, left: str, right: str) -> float:
        """Return ``1 - distance / max(len)`` over the folded strings.

        Identical strings score 1.0 (two empty strings included); a single
        empty side scores 0.0.
        """

        left = self._fold(left)
        right = self._fold(right)
        if left == right:
            return 1.0
        if not left or not right:
            return 0.0
        return _ratio(self._folded_distance(left, right), len(left), len(right))

    def transposition_distance(self, left: str, right: str) -> int:
        return OSA.distance(self._fold(left), self._fold(right))

    def transposition_similarity(self, left: str, right: str) -> float:
        left = self._fold(left)
        right = self._fold(right)
        if left == right:
            return 1.0
        if not left or not right:
            return 0.0
        return _ratio(OSA.distance(left, right), len(left), len(right))

    def normalized_distance(self, left: str, right: str) -> float:
        return 1.0 - self.similarity(left, right)

    def similarity_percentage(self, left: str, right: str) -> float:
        return self.similarity(left, right) * 100.0

    def are_similar(self, left: str, right: str, threshold: float = 0.85) -> bool:
        return self.similarity(left, right) >= threshold

    def sequence_distance(
        self, left: Sequence[Hashable], right: Sequence[Hashable]
    ) -> int:
        """Edit distance over arbitrary atoms, e.g. word tokens or n-grams."""

        return Levenshtein.distance(list(left), list(right))

    def sequence_similarity(
        self, left: Sequence[Hashable], right: Sequence[Hashable]
    ) -> float:
        left = list(left)
        right = list(right)
        if left == right:
            return 1.0
        if not left or not right:
            return 0.0
        return _ratio(Levenshtein.distance(left, right), len(left), len(right))

    def memo_statistics(self) -> CacheStatistics | None:
        return self._memo.statistics() if self._memo is not None else None

    def clear_memo(self) -> None:
        if self._memo is not None:
            self._memo.clear()

    def close(self) -> None:
        if self._memo is not None:
            logger.debug("Releasing distance memo with %d entries", len(self._memo))
            self._memo.clear()
            self._memo = None
