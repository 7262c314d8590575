from __future__ import annotations

from tm_core.models import NormalizedQuery, SimilarityScore, TMEntry
from tm_core.project.config import MatchingConfig
from tm_core.similarity.distance import DistanceEngine
from tm_core.similarity.tokens import TokenOverlapScorer


def clamp(value: float, lower: float = 0.0, upper: float = 1.0) -> float:
    return max(lower, min(upper, value))


def _same_label(query_value: str | None, candidate_value: str | None) -> bool:
    if not query_value or not candidate_value:
        return False
    query_value = query_value.strip().lower()
    return bool(query_value) and query_value == candidate_value.strip().lower()


class CompositeScorer:
    """Weighted blend of distance, affix and token similarity plus boosts.

    composite = clamp(w1*distance + w2*affix + w3*token + context + category)

    Boosts are added after the weighted sum and before clamping, so they can
    lift a candidate over a threshold or reorder near-equal candidates but
    never push the composite past 1.0. Boosts read the query's context and
    category only, which makes the composite asymmetric by construction.
    """

    def __init__(
        self,
        config: MatchingConfig | None = None,
        *,
        distance_engine: DistanceEngine | None = None,
        token_scorer: TokenOverlapScorer | None = None,
    ) -> None:
        self.config = config or MatchingConfig()
        self.distance_engine = distance_engine or DistanceEngine(
            case_sensitive=self.config.case_sensitive,
            memo_size=self.config.distance_memo_size,
        )
        self.token_scorer = token_scorer or TokenOverlapScorer(
            self.distance_engine,
            granularity=self.config.token_granularity,
            ngram_size=self.config.ngram_size,
        )

    def common_prefix_length(self, left: str, right: str) -> int:
        if not self.distance_engine.case_sensitive:
            left = left.lower()
            right = right.lower()
        cap = self.config.affix_prefix_cap
        length = 0
        for left_char, right_char in zip(left[:cap], right[:cap]):
            if left_char != right_char:
                break
            length += 1
        return length

    def affix_similarity(
        self, left: str, right: str, distance_similarity: float | None = None
    ) -> float:
        if distance_similarity is None:
            distance_similarity = self.distance_engine.similarity(left, right)
        prefix = self.common_prefix_length(left, right)
        boosted = distance_similarity + (
            prefix * self.config.affix_scaling_factor * (1.0 - distance_similarity)
        )
        return clamp(boosted)

    def combine(
        self,
        distance_similarity: float,
        affix_similarity: float,
        token_similarity: float,
        *,
        context_boost: float = 0.0,
        category_boost: float = 0.0,
    ) -> SimilarityScore:
        weighted = (
            self.config.distance_weight * distance_similarity
            + self.config.affix_weight * affix_similarity
            + self.config.token_weight * token_similarity
        )
        return SimilarityScore(
            distance_similarity=distance_similarity,
            affix_similarity=affix_similarity,
            token_similarity=token_similarity,
            context_boost=context_boost,
            category_boost=category_boost,
            composite=clamp(weighted + context_boost + category_boost),
        )

    def score(
        self,
        query: NormalizedQuery,
        candidate_text: str,
        *,
        candidate_context: str | None = None,
        candidate_category: str | None = None,
    ) -> SimilarityScore:
        """Score one normalized candidate text against a normalized query."""

        distance_similarity = self.distance_engine.similarity(query.text, candidate_text)
        affix_similarity = self.affix_similarity(
            query.text, candidate_text, distance_similarity
        )
        token_similarity = self.token_scorer.similarity(query.text, candidate_text)
        context_boost = (
            self.config.context_boost if _same_label(query.context, candidate_context) else 0.0
        )
        category_boost = (
            self.config.category_boost
            if _same_label(query.category, candidate_category)
            else 0.0
        )
        return self.combine(
            distance_similarity,
            affix_similarity,
            token_similarity,
            context_boost=context_boost,
            category_boost=category_boost,
        )

    def score_entry(
        self, query: NormalizedQuery, entry: TMEntry, normalized_source: str
    ) -> SimilarityScore:
        return self.score(
            query,
            normalized_source,
            candidate_context=entry.game_context,
            candidate_category=entry.category,
        )

    def close(self) -> None:
        self.distance_engine.close()
