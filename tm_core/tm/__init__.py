"""Translation memory storage and retrieval helpers."""

from tm_core.tm.normalize import (
    NormalizationOptions,
    TextNormalizer,
    normalize_source_text,
    normalized_source_hash,
)
from tm_core.tm.store import InMemoryTMStore, TMStore
from tm_core.tm.tm_search import (
    LoggingMatchObserver,
    LookupGeneration,
    MatchObserver,
    TMMatchingService,
)
from tm_core.tm.tm_store import SqliteTMStore, record_tm_use, upsert_tm_entry

__all__ = [
    "InMemoryTMStore",
    "LoggingMatchObserver",
    "LookupGeneration",
    "MatchObserver",
    "NormalizationOptions",
    "SqliteTMStore",
    "TMMatchingService",
    "TMStore",
    "TextNormalizer",
    "normalize_source_text",
    "normalized_source_hash",
    "record_tm_use",
    "upsert_tm_entry",
]
