from __future__ import annotations

from collections.abc import Awaitable, Iterable
import logging
import threading
from typing import Protocol, TypeVar

from tm_core.errors import LookupFailure
from tm_core.match_cache import CacheStatistics, MatchCache
from tm_core.models import (
    MatchCandidate,
    NormalizedQuery,
    SimilarityScore,
    TMEntry,
    rank_candidates,
)
from tm_core.project.config import MatchingConfig
from tm_core.similarity.composite import CompositeScorer
from tm_core.tm.normalize import TextNormalizer, normalized_source_hash
from tm_core.tm.store import TMStore

logger = logging.getLogger(__name__)

T = TypeVar("T")
CacheKey = tuple[str, str, str, str]


class MatchObserver(Protocol):
    def candidate_skipped(self, entry: TMEntry, reason: str) -> None: ...


class LoggingMatchObserver:
    """Default observer: logs and counts records the scan had to skip."""

    def __init__(self) -> None:
        self.skipped = 0

    def candidate_skipped(self, entry: TMEntry, reason: str) -> None:
        self.skipped += 1
        logger.warning("Skipping TM entry %s: %s", getattr(entry, "id", "?"), reason)


class LookupGeneration:
    """Monotonic ticket counter for interactive lookups.

    A scan is never aborted midway; callers that retype before a lookup
    resolves take a new ticket and results carrying an older one are dropped.
    """

    def __init__(self) -> None:
        self._current = 0
        self._lock = threading.Lock()

    def begin(self) -> int:
        with self._lock:
            self._current += 1
            return self._current

    def is_current(self, ticket: int) -> bool:
        with self._lock:
            return ticket == self._current


def _label(value: str | None) -> str:
    return (value or "").strip().lower()


class TMMatchingService:
    """Ranks translation-memory entries against a new source string.

    Each instance owns its configuration, scorer and match cache, so several
    independently configured services (one per project, say) can share a
    process. The store fetch is the only await point; scoring is
    synchronous.
    """

    def __init__(
        self,
        store: TMStore,
        config: MatchingConfig | None = None,
        *,
        normalizer: TextNormalizer | None = None,
        scorer: CompositeScorer | None = None,
        cache: MatchCache[CacheKey, str] | None = None,
        observer: MatchObserver | None = None,
    ) -> None:
        self.store = store
        self.config = config or MatchingConfig()
        self.normalizer = normalizer or TextNormalizer()
        self.scorer = scorer or CompositeScorer(self.config)
        self.cache: MatchCache[CacheKey, str] = (
            cache if cache is not None else MatchCache(self.config.cache_capacity)
        )
        self.observer: MatchObserver = observer or LoggingMatchObserver()
        self.generation = LookupGeneration()

    async def __aenter__(self) -> "TMMatchingService":
        return self

    async def __aexit__(self, *_exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self.cache.clear()
        self.scorer.close()

    def normalize_query(
        self,
        query: str,
        target_language: str,
        *,
        context: str | None = None,
        category: str | None = None,
    ) -> NormalizedQuery:
        return NormalizedQuery(
            raw_text=query,
            text=self.normalizer.normalize(query),
            target_language=target_language,
            context=context,
            category=category,
        )

    def should_auto_accept(self, candidate: MatchCandidate) -> bool:
        return candidate.composite >= self.config.auto_accept_threshold

    def clear_cache(self) -> None:
        self.cache.clear()

    def cache_statistics(self) -> CacheStatistics:
        return self.cache.statistics()

    def preload_cache(self, entries: Iterable[TMEntry]) -> int:
        """Warm the cache so a lookup of an entry's own source resolves to it.

        Entries are keyed without context or category. Returns the number of
        keys added; loading stops once the cache is full.
        """

        items: list[tuple[CacheKey, str]] = []
        for entry in entries:
            if not isinstance(entry.source_text, str):
                continue
            text = self.normalizer.normalize(entry.source_text)
            if text:
                items.append(((text, entry.target_language, "", ""), entry.id))
        added = self.cache.preload(items)
        logger.debug("Preloaded %d of %d TM entries into the match cache", added, len(items))
        return added

    def begin_lookup(self) -> int:
        return self.generation.begin()

    def _threshold(self, min_similarity: float | None) -> float:
        if min_similarity is None:
            return self.config.min_similarity
        min_similarity = float(min_similarity)
        if not 0.0 <= min_similarity <= 1.0:
            raise ValueError("min_similarity must be between 0.0 and 1.0")
        return min_similarity

    async def find_best_match(
        self,
        query: str,
        target_language: str,
        *,
        context: str | None = None,
        category: str | None = None,
        min_similarity: float | None = None,
    ) -> MatchCandidate | None:
        threshold = self._threshold(min_similarity)
        normalized = self.normalize_query(
            query, target_language, context=context, category=category
        )
        if normalized.is_empty:
            return None

        exact = await self._find_exact(normalized)
        if exact is not None:
            return exact

        cached = await self._cached_best(normalized, threshold)
        if cached is not None:
            return cached

        matches = await self._scan(normalized, limit=1, threshold=threshold)
        return matches[0] if matches else None

    async def find_fuzzy_matches(
        self,
        query: str,
        target_language: str,
        limit: int | None = None,
        *,
        context: str | None = None,
        category: str | None = None,
        min_similarity: float | None = None,
    ) -> list[MatchCandidate]:
        """Return up to ``limit`` candidates scoring at least the threshold.

        ``min_similarity`` overrides the configured threshold for this call.
        """

        limit = self.config.max_fuzzy_results if limit is None else int(limit)
        if limit <= 0:
            raise ValueError("limit must be positive")
        threshold = self._threshold(min_similarity)

        normalized = self.normalize_query(
            query, target_language, context=context, category=category
        )
        if normalized.is_empty:
            return []

        if limit == 1:
            cached = await self._cached_best(normalized, threshold)
            if cached is not None:
                return [cached]

        return await self._scan(normalized, limit=limit, threshold=threshold)

    async def find_fuzzy_matches_latest(
        self,
        ticket: int,
        query: str,
        target_language: str,
        limit: int | None = None,
        *,
        context: str | None = None,
        category: str | None = None,
        min_similarity: float | None = None,
    ) -> list[MatchCandidate] | None:
        """Like ``find_fuzzy_matches`` but returns None once ``ticket`` is stale."""

        matches = await self.find_fuzzy_matches(
            query,
            target_language,
            limit,
            context=context,
            category=category,
            min_similarity=min_similarity,
        )
        if not self.generation.is_current(ticket):
            logger.debug("Discarding stale lookup result for ticket %d", ticket)
            return None
        return matches

    async def find_best_matches_batch(
        self,
        queries: Iterable[str],
        target_language: str,
        *,
        context: str | None = None,
        category: str | None = None,
        min_similarity: float | None = None,
    ) -> dict[str, MatchCandidate | None]:
        self._threshold(min_similarity)
        results: dict[str, MatchCandidate | None] = {}
        for query in queries:
            if query in results:
                continue
            results[query] = await self.find_best_match(
                query,
                target_language,
                context=context,
                category=category,
                min_similarity=min_similarity,
            )
        logger.debug(
            "Batch lookup for %s resolved %d/%d queries",
            target_language,
            sum(1 for match in results.values() if match is not None),
            len(results),
        )
        return results

    async def record_use(
        self,
        candidate: MatchCandidate,
        query: str | None = None,
        *,
        context: str | None = None,
        category: str | None = None,
    ) -> None:
        """Report that ``candidate`` was used; remember it as ``query``'s best hit."""

        await self._call_store(
            self.store.record_use(candidate.entry.id),
            f"Failed to record use of TM entry {candidate.entry.id}",
            query=query or candidate.entry.source_text,
            target_language=candidate.entry.target_language,
        )
        if query is None:
            return
        normalized = self.normalize_query(
            query, candidate.entry.target_language, context=context, category=category
        )
        if not normalized.is_empty:
            self.cache.put(self._cache_key(normalized), candidate.entry.id)

    def _cache_key(self, query: NormalizedQuery) -> CacheKey:
        return (query.text, query.target_language, _label(query.context), _label(query.category))

    async def _call_store(
        self,
        awaitable: Awaitable[T],
        message: str,
        *,
        query: str,
        target_language: str,
    ) -> T:
        try:
            return await awaitable
        except LookupFailure:
            raise
        except Exception as exc:
            raise LookupFailure(
                f"{message}: {exc}", query=query, target_language=target_language
            ) from exc

    async def _find_exact(self, query: NormalizedQuery) -> MatchCandidate | None:
        entry = await self._call_store(
            self.store.find_exact(query.target_language, normalized_source_hash(query.raw_text)),
            f"Exact TM lookup failed for '{query.target_language}'",
            query=query.raw_text,
            target_language=query.target_language,
        )
        if entry is None or not isinstance(entry.source_text, str):
            return None
        if self.normalizer.normalize(entry.source_text) != query.text:
            return None
        logger.debug("Exact TM match %s for %s", entry.id, query.target_language)
        return MatchCandidate(entry=entry, score=SimilarityScore.exact(), was_exact_match=True)

    async def _cached_best(
        self, query: NormalizedQuery, threshold: float
    ) -> MatchCandidate | None:
        key = self._cache_key(query)
        entry_id = self.cache.get(key)
        if entry_id is None:
            return None

        entry = await self._call_store(
            self.store.entry_by_id(entry_id),
            f"TM entry lookup failed for {entry_id}",
            query=query.raw_text,
            target_language=query.target_language,
        )
        candidate = self._score_candidate(query, entry) if entry is not None else None
        if candidate is None or candidate.composite < self.config.min_similarity:
            logger.debug("Cached TM entry %s no longer qualifies; rescanning", entry_id)
            self.cache.invalidate(key)
            return None
        if candidate.composite < threshold:
            return None
        return candidate

    async def _fetch_candidates(self, query: NormalizedQuery) -> list[TMEntry]:
        language = query.target_language
        message = f"Failed to fetch TM candidates for '{language}'"
        if self.config.narrow_by_context and query.context:
            narrowed = await self._call_store(
                self.store.entries_for_language(language, query.context),
                message,
                query=query.raw_text,
                target_language=language,
            )
            if narrowed:
                return list(narrowed)
            logger.debug("No TM entries for context %r; widening to %s", query.context, language)
        entries = await self._call_store(
            self.store.entries_for_language(language),
            message,
            query=query.raw_text,
            target_language=language,
        )
        return list(entries)

    def _score_candidate(self, query: NormalizedQuery, entry: TMEntry) -> MatchCandidate | None:
        source_text = getattr(entry, "source_text", None)
        if not isinstance(source_text, str) or not source_text.strip():
            self.observer.candidate_skipped(entry, "missing source text")
            return None
        if entry.target_language != query.target_language:
            self.observer.candidate_skipped(entry, "target language mismatch")
            return None

        normalized_source = self.normalizer.normalize(source_text)
        if not normalized_source:
            self.observer.candidate_skipped(entry, "source text empty after normalization")
            return None
        if normalized_source == query.text:
            return MatchCandidate(entry=entry, score=SimilarityScore.exact(), was_exact_match=True)

        score = self.scorer.score_entry(query, entry, normalized_source)
        return MatchCandidate(entry=entry, score=score)

    async def _scan(
        self, query: NormalizedQuery, *, limit: int, threshold: float
    ) -> list[MatchCandidate]:
        entries = await self._fetch_candidates(query)
        if not entries:
            return []

        matches: list[MatchCandidate] = []
        for entry in entries:
            candidate = self._score_candidate(query, entry)
            if candidate is None or candidate.composite < threshold:
                continue
            matches.append(candidate)

        ranked = rank_candidates(matches)[:limit]
        logger.debug(
            "Scanned %d TM entries for %s: %d above %.2f",
            len(entries),
            query.target_language,
            len(matches),
            threshold,
        )
        if ranked:
            self.cache.put(self._cache_key(query), ranked[0].entry.id)
        return ranked
