"""Edit-distance, token-overlap and composite similarity scoring."""

from tm_core.similarity.composite import CompositeScorer, clamp
from tm_core.similarity.distance import DistanceEngine
from tm_core.similarity.tokens import TokenOverlapScorer, ngrams, tokenize

__all__ = [
    "CompositeScorer",
    "DistanceEngine",
    "TokenOverlapScorer",
    "clamp",
    "ngrams",
    "tokenize",
]
