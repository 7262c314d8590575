from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from uuid import uuid4

from sqlalchemy import func, text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select

from tm_core.db.models import TMEntryRecord
from tm_core.db.schema import initialize_database
from tm_core.db.session import session_for_engine
from tm_core.errors import LookupFailure
from tm_core.models import TMEntry
from tm_core.tm.normalize import normalized_source_hash
from tm_core.tm.store import utc_now_iso

logger = logging.getLogger(__name__)


def _to_entry(record: TMEntryRecord) -> TMEntry:
    return TMEntry(
        id=str(record.id),
        source_text=record.source_text,
        target_text=record.target_text,
        source_language=record.source_language,
        target_language=record.target_language,
        game_context=record.game_context,
        category=record.category,
        usage_count=int(record.usage_count or 0),
        last_used_at=record.last_used_at,
        quality_score=record.quality_score,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


class SqliteTMStore:
    """Translation memory kept in a SQLite file.

    Queries are blocking SQLAlchemy calls; the async methods hand them to a
    worker thread. Driver errors surface as ``LookupFailure``.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self.engine = initialize_database(self.db_path)

    def close(self) -> None:
        self.engine.dispose()

    def __enter__(self) -> "SqliteTMStore":
        return self

    def __exit__(self, *_exc_info: object) -> None:
        self.close()

    def _fetch_for_language(self, language_code: str, context: str | None) -> list[TMEntry]:
        statement = select(TMEntryRecord).where(TMEntryRecord.target_language == language_code)
        if context:
            statement = statement.where(
                func.lower(TMEntryRecord.game_context) == context.strip().lower()
            )
        with session_for_engine(self.engine) as session:
            return [_to_entry(record) for record in session.exec(statement).all()]

    def _fetch_by_id(self, entry_id: str) -> TMEntry | None:
        with session_for_engine(self.engine) as session:
            record = session.get(TMEntryRecord, entry_id)
            return _to_entry(record) if record is not None else None

    def _fetch_exact(self, language_code: str, source_hash: str) -> TMEntry | None:
        statement = (
            select(TMEntryRecord)
            .where(TMEntryRecord.target_language == language_code)
            .where(TMEntryRecord.normalized_source_hash == source_hash)
            .order_by(TMEntryRecord.updated_at.desc(), TMEntryRecord.id.desc())
            .limit(1)
        )
        with session_for_engine(self.engine) as session:
            record = session.exec(statement).first()
            return _to_entry(record) if record is not None else None

    async def _run(self, description: str, function, *args):  # type: ignore[no-untyped-def]
        try:
            return await asyncio.to_thread(function, *args)
        except SQLAlchemyError as exc:
            logger.error("TM store %s failed for %s: %s", description, self.db_path, exc)
            raise LookupFailure(f"TM store {description} failed: {exc}") from exc

    async def entries_for_language(
        self, language_code: str, context: str | None = None
    ) -> list[TMEntry]:
        return await self._run("candidate fetch", self._fetch_for_language, language_code, context)

    async def entry_by_id(self, entry_id: str) -> TMEntry | None:
        return await self._run("entry lookup", self._fetch_by_id, entry_id)

    async def find_exact(self, language_code: str, source_hash: str) -> TMEntry | None:
        return await self._run("exact lookup", self._fetch_exact, language_code, source_hash)

    async def record_use(self, entry_id: str) -> None:
        await self._run("usage update", self._record_use, entry_id)

    def _record_use(self, entry_id: str) -> None:
        with self.engine.begin() as connection:
            record_tm_use(connection=connection, tm_id=entry_id)

    def upsert(self, **fields) -> str:  # type: ignore[no-untyped-def]
        with self.engine.begin() as connection:
            return upsert_tm_entry(connection=connection, **fields)


def _upsert_tm_entry_on_connection(
    connection: Connection,
    *,
    source_language: str,
    target_language: str,
    source_text: str,
    target_text: str,
    game_context: str | None = None,
    category: str | None = None,
    quality_score: float | None = None,
) -> str:
    now = utc_now_iso()
    normalized_hash = normalized_source_hash(source_text)
    existing = connection.execute(
        text(
            """
            SELECT id
            FROM tm_entries
            WHERE source_language = :source_language
              AND target_language = :target_language
              AND normalized_source_hash = :normalized_source_hash
            ORDER BY updated_at DESC, id DESC
            LIMIT 1
            """
        ),
        {
            "source_language": source_language,
            "target_language": target_language,
            "normalized_source_hash": normalized_hash,
        },
    ).first()

    if existing is None:
        tm_id = str(uuid4())
        connection.execute(
            text(
                """
                INSERT INTO tm_entries(
                    id,
                    source_language,
                    target_language,
                    source_text,
                    target_text,
                    normalized_source_hash,
                    game_context,
                    category,
                    usage_count,
                    last_used_at,
                    quality_score,
                    created_at,
                    updated_at
                ) VALUES (
                    :id,
                    :source_language,
                    :target_language,
                    :source_text,
                    :target_text,
                    :normalized_source_hash,
                    :game_context,
                    :category,
                    0,
                    NULL,
                    :quality_score,
                    :created_at,
                    :updated_at
                )
                """
            ),
            {
                "id": tm_id,
                "source_language": source_language,
                "target_language": target_language,
                "source_text": source_text,
                "target_text": target_text,
                "normalized_source_hash": normalized_hash,
                "game_context": game_context,
                "category": category,
                "quality_score": quality_score,
                "created_at": now,
                "updated_at": now,
            },
        )
        return tm_id

    tm_id = str(existing[0])
    connection.execute(
        text(
            """
            UPDATE tm_entries
            SET
                source_text = :source_text,
                target_text = :target_text,
                game_context = :game_context,
                category = :category,
                quality_score = :quality_score,
                updated_at = :updated_at
            WHERE id = :id
            """
        ),
        {
            "id": tm_id,
            "source_text": source_text,
            "target_text": target_text,
            "game_context": game_context,
            "category": category,
            "quality_score": quality_score,
            "updated_at": now,
        },
    )
    return tm_id


def upsert_tm_entry(
    *,
    db_path: Path | None = None,
    connection: Connection | None = None,
    source_language: str,
    target_language: str,
    source_text: str,
    target_text: str,
    game_context: str | None = None,
    category: str | None = None,
    quality_score: float | None = None,
) -> str:
    fields = {
        "source_language": source_language,
        "target_language": target_language,
        "source_text": source_text,
        "target_text": target_text,
        "game_context": game_context,
        "category": category,
        "quality_score": quality_score,
    }
    if connection is not None:
        return _upsert_tm_entry_on_connection(connection, **fields)

    if db_path is None:
        raise ValueError("db_path is required when connection is not provided")

    engine = initialize_database(Path(db_path))
    try:
        with engine.begin() as local_connection:
            return _upsert_tm_entry_on_connection(local_connection, **fields)
    finally:
        engine.dispose()


def record_tm_use(
    *,
    db_path: Path | None = None,
    connection: Connection | None = None,
    tm_id: str,
) -> None:
    statement = text(
        """
        UPDATE tm_entries
        SET
            usage_count = usage_count + 1,
            last_used_at = :last_used_at
        WHERE id = :tm_id
        """
    )
    parameters = {"tm_id": tm_id, "last_used_at": utc_now_iso()}

    if connection is not None:
        connection.execute(statement, parameters)
        return

    if db_path is None:
        raise ValueError("db_path is required when connection is not provided")

    engine = initialize_database(Path(db_path))
    try:
        with engine.begin() as local_connection:
            local_connection.execute(statement, parameters)
    finally:
        engine.dispose()
