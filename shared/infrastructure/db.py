"""
Database configuration and session management.
Uses SQLAlchemy 2.0 sync sessions; async handlers go through SessionRunner.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Callable, Generator
from contextlib import contextmanager
from typing import TypeVar

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from shared.config.settings import DATABASE_URL
from shared.config.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def _calculate_pool_size() -> int:
    """
    Calculate pool size based on CPU cores.
    Formula: (2 * CPU cores) + 1, capped at 20.
    """
    cores = os.cpu_count() or 4
    return min(cores * 2 + 1, 20)


def build_engine(url: str = DATABASE_URL) -> Engine:
    """
    Create an engine for the given URL.

    Pool sizing and connect timeouts only apply to server databases;
    SQLite URLs get a plain engine usable across threads.
    """
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})

    return create_engine(
        url,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=_calculate_pool_size(),
        max_overflow=15,
        pool_timeout=30,  # Wait max 30s for connection from pool
        pool_recycle=1800,  # Recycle connections after 30 minutes
        connect_args={"connect_timeout": 10},
        echo=False,
    )


def build_session_factory(bind: Engine) -> sessionmaker[Session]:
    """
    Session factory for an engine.

    expire_on_commit is off so values loaded inside a unit of work stay
    readable after the worker thread commits.
    """
    return sessionmaker(
        bind=bind,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )


# Engine creation does not open a connection
engine = build_engine()

# Session factory
SessionLocal = build_session_factory(engine)


@contextmanager
def get_db_context(
    session_factory: sessionmaker[Session] | None = None,
) -> Generator[Session, None, None]:
    """
    Context manager for database sessions outside of FastAPI.

    Usage:
        with get_db_context() as db:
            db.scalar(select(Chat).where(Chat.id == chat_id))
    """
    db = (session_factory or SessionLocal)()
    try:
        yield db
    finally:
        db.close()


class SessionRunner:
    """
    Runs synchronous units of work from async code.

    Each call to run() opens a session in a worker thread, hands it to the
    work function, commits on success and rolls back on error. Work
    functions must return plain data (schemas, ints, tuples), not live ORM
    objects bound to the closed session.

    Usage:
        runner = SessionRunner(SessionLocal)
        count = await runner.run(lambda db: repo.count_unread(db, user_id))
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    @property
    def session_factory(self) -> sessionmaker[Session]:
        return self._session_factory

    async def run(self, fn: Callable[[Session], T]) -> T:
        return await asyncio.to_thread(self.run_sync, fn)

    def run_sync(self, fn: Callable[[Session], T]) -> T:
        with get_db_context(self._session_factory) as db:
            try:
                result = fn(db)
                db.commit()
                return result
            except Exception:
                db.rollback()
                raise
