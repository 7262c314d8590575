from __future__ import annotations

import re

from tm_core.constants import NGRAM_SIZE
from tm_core.project.config import TokenGranularity
from tm_core.similarity.distance import DistanceEngine

_TOKEN_PATTERN = re.compile(r"\w+", re.UNICODE)


def tokenize(text: str) -> list[str]:
    return _TOKEN_PATTERN.findall(text)


def ngrams(text: str, n: int = NGRAM_SIZE) -> list[str]:
    if n <= 0:
        raise ValueError("n-gram size must be positive")
    if not text:
        return []
    if len(text) <= n:
        return [text]
    return [text[index : index + n] for index in range(len(text) - n + 1)]


class TokenOverlapScorer:
    """Sequence-alignment similarity over word tokens or character n-grams.

    Both sides are split into units and aligned with the same edit distance
    the character scorer uses, so word order still matters.
    """

    def __init__(
        self,
        distance_engine: DistanceEngine | None = None,
        *,
        granularity: TokenGranularity = "ngram",
        ngram_size: int = NGRAM_SIZE,
    ) -> None:
        if granularity not in ("word", "ngram"):
            raise ValueError(f"Unsupported token granularity: {granularity}")
        self.distance_engine = distance_engine or DistanceEngine()
        self.granularity = granularity
        self.ngram_size = ngram_size

    def units(self, text: str) -> list[str]:
        if not self.distance_engine.case_sensitive:
            text = text.lower()
        if self.granularity == "word":
            return tokenize(text)
        return ngrams(text, self.ngram_size)

    def similarity(self, left: str, right: str) -> float:
        if left == right:
            return 1.0
        left_units = self.units(left)
        right_units = self.units(right)
        # Distinct texts with no units (punctuation only) share nothing.
        if not left_units or not right_units:
            return 0.0
        return self.distance_engine.sequence_similarity(left_units, right_units)

    def jaccard(self, left: str, right: str) -> float:
        """Order-independent overlap: ``|A & B| / |A | B|`` of the unit sets."""

        if left == right:
            return 1.0
        left_units = set(self.units(left))
        right_units = set(self.units(right))
        if not left_units or not right_units:
            return 0.0
        return len(left_units & right_units) / len(left_units | right_units)
