"""
Database utilities and SQLAlchemy session management.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from kanban.errors import KanbanError

logger = logging.getLogger(__name__)

Base = declarative_base()


def _is_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:")


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create the engine for ``database_url``.

    SQLite gets ``check_same_thread`` disabled (Flask may serve requests from
    several threads) and foreign keys switched on so ON DELETE CASCADE works
    the same way it does on PostgreSQL.
    """
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    elif database_url.startswith("postgresql"):
        # Fail fast when the database is unreachable
        connect_args["connect_timeout"] = 10

    if _is_memory_sqlite(database_url):
        # One shared connection, otherwise every checkout sees an empty database
        engine = create_engine(
            database_url,
            poolclass=StaticPool,
            echo=echo,
            connect_args=connect_args,
        )
    elif database_url.startswith("sqlite"):
        engine = create_engine(database_url, echo=echo, connect_args=connect_args)
    else:
        engine = create_engine(
            database_url,
            poolclass=QueuePool,
            pool_pre_ping=True,
            pool_recycle=3600,  # Recycle connections after 1 hour
            pool_timeout=10,    # Timeout when getting connection from pool
            echo=echo,
            connect_args=connect_args,
        )

    if database_url.startswith("sqlite"):
        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


class Database:
    """
    Storage engine handle: owns the engine and session factory.

    Passed explicitly to every service so tests can build an isolated
    instance per app.
    """

    def __init__(self, database_url: str, echo: bool = False):
        self.url = database_url
        self.engine = build_engine(database_url, echo=echo)
        self.session_factory = sessionmaker(
            bind=self.engine,
            autoflush=False,
            expire_on_commit=False,
        )

    def init_db(self) -> None:
        """
        Import models and create tables. Should be invoked once during startup.
        """
        try:
            from kanban import models  # noqa: F401  (side-effect import)
            Base.metadata.create_all(bind=self.engine)
        except Exception as e:
            logger.error(f"Error initializing database: {e}", exc_info=True)
            raise

    def drop_all(self) -> None:
        Base.metadata.drop_all(bind=self.engine)

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """
        Context manager that yields a SQLAlchemy session and guarantees cleanup.

        Commits when the block exits normally; any exception rolls the whole
        transaction back before it propagates, and the connection is always
        returned to the pool.
        """
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except Exception as exc:
            session.rollback()
            if not isinstance(exc, KanbanError):
                logger.warning(f"Transaction rolled back: {exc}")
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        self.engine.dispose()
