from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.engine import Engine
from sqlmodel import Session


@contextmanager
def session_for_engine(engine: Engine) -> Iterator[Session]:
    """Yield a read session bound to an already-migrated TM database."""

    with Session(engine) as session:
        yield session
