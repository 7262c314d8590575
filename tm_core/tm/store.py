from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime, timezone
from typing import Protocol, runtime_checkable

from tm_core.models import TMEntry
from tm_core.tm.normalize import normalized_source_hash


def utc_now_iso() -> str:
    return (
        datetime.now(timezone.utc)
        .replace(microsecond=0)
        .isoformat()
        .replace("+00:00", "Z")
    )


def _same_context(entry_context: str | None, context: str) -> bool:
    return bool(entry_context) and entry_context.strip().lower() == context.strip().lower()


@runtime_checkable
class TMStore(Protocol):
    """Read contract the matching service needs from a translation memory.

    Implementations own persistence. Corpora are partitioned by target
    language, so fetches for different languages need no coordination.
    """

    async def entries_for_language(
        self, language_code: str, context: str | None = None
    ) -> list[TMEntry]: ...

    async def entry_by_id(self, entry_id: str) -> TMEntry | None: ...

    async def find_exact(self, language_code: str, source_hash: str) -> TMEntry | None: ...

    async def record_use(self, entry_id: str) -> None: ...


class InMemoryTMStore:
    def __init__(self, entries: Iterable[TMEntry] = ()) -> None:
        self._entries: dict[str, TMEntry] = {}
        self._hashes: dict[str, str] = {}
        self.fetch_count = 0
        for entry in entries:
            self.add(entry)

    def add(self, entry: TMEntry) -> None:
        self._entries[entry.id] = entry
        self._hashes[entry.id] = normalized_source_hash(entry.source_text or "")

    def remove(self, entry_id: str) -> None:
        self._entries.pop(entry_id, None)
        self._hashes.pop(entry_id, None)

    @property
    def entries(self) -> list[TMEntry]:
        return list(self._entries.values())

    async def entries_for_language(
        self, language_code: str, context: str | None = None
    ) -> list[TMEntry]:
        self.fetch_count += 1
        entries = [
            entry for entry in self._entries.values() if entry.target_language == language_code
        ]
        if context:
            entries = [entry for entry in entries if _same_context(entry.game_context, context)]
        return entries

    async def entry_by_id(self, entry_id: str) -> TMEntry | None:
        return self._entries.get(entry_id)

    async def find_exact(self, language_code: str, source_hash: str) -> TMEntry | None:
        matches = [
            entry
            for entry in self._entries.values()
            if entry.target_language == language_code and self._hashes[entry.id] == source_hash
        ]
        if not matches:
            return None
        return max(matches, key=lambda entry: (entry.updated_at, entry.id))

    async def record_use(self, entry_id: str) -> None:
        entry = self._entries.get(entry_id)
        if entry is None:
            return
        self._entries[entry_id] = replace(
            entry,
            usage_count=entry.usage_count + 1,
            last_used_at=utc_now_iso(),
        )
