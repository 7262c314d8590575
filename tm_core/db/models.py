from __future__ import annotations

from sqlmodel import Field, SQLModel

# Row mappings only. Tables and indexes are created by tm_core.db.migrations.


class SchemaMeta(SQLModel, table=True):
    __tablename__ = "schema_meta"

    key: str = Field(primary_key=True)
    value: str


class TMEntryRecord(SQLModel, table=True):
    __tablename__ = "tm_entries"

    id: str = Field(primary_key=True)
    source_language: str
    target_language: str
    source_text: str
    target_text: str
    normalized_source_hash: str
    game_context: str | None = None
    category: str | None = None
    usage_count: int = Field(default=0)
    last_used_at: str | None = None
    quality_score: float | None = None
    created_at: str
    updated_at: str
