"""Engine and session factory bound to the configured connection string."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import create_engine
from sqlalchemy.exc import ArgumentError
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..exceptions import ConfigurationError


@dataclass(slots=True)
class Database:
    """Engine plus the session factory handed out to units of work."""

    engine: Engine
    session_factory: sessionmaker[Session]

    def dispose(self) -> None:
        self.engine.dispose()


def create_db_engine(connection_string: str) -> Engine:
    """Create an engine; SQLite URLs get settings usable across threads."""
    try:
        url = make_url(connection_string)
    except ArgumentError as exc:
        raise ConfigurationError(f"invalid connection string: {exc}") from exc
    if url.get_backend_name() != "sqlite":
        return create_engine(url, future=True, pool_pre_ping=True)
    kwargs: dict = {"connect_args": {"check_same_thread": False}}
    if url.database in (None, "", ":memory:"):
        kwargs["poolclass"] = StaticPool
    return create_engine(url, future=True, **kwargs)


def build_database(connection_string: str) -> Database:
    engine = create_db_engine(connection_string)
    session_factory: sessionmaker[Session] = sessionmaker(bind=engine, expire_on_commit=False)
    return Database(engine=engine, session_factory=session_factory)
