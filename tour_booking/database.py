"""
Persistence gateway: connection pool, sessions and unit-of-work helpers.

A single ``Database`` is created when the application starts and is stored on
``app.state.database``. Request handlers receive a ``Session`` through the
``get_db`` dependency; services wrap multi-step writes in ``transaction()``.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from fastapi import Request
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

logger = logging.getLogger(__name__)

Base = declarative_base()


class Database:
    """Owns the engine (connection pool) and the session factory"""

    def __init__(
        self,
        url: str,
        pool_size: int = 15,
        max_overflow: int = 5,
        pool_timeout: int = 10,
        statement_timeout_ms: Optional[int] = None,
        echo: bool = False
    ):
        self.url = url
        self.engine = self._create_engine(
            url, pool_size, max_overflow, pool_timeout, statement_timeout_ms, echo
        )
        self.SessionLocal = sessionmaker(bind=self.engine, autoflush=False, autocommit=False)

    @classmethod
    def from_settings(cls, settings) -> "Database":
        return cls(
            settings.database_url,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
            statement_timeout_ms=settings.DB_STATEMENT_TIMEOUT_MS,
        )

    @staticmethod
    def _create_engine(url, pool_size, max_overflow, pool_timeout, statement_timeout_ms, echo) -> Engine:
        if url.startswith("sqlite"):
            connect_args = {"check_same_thread": False}
            if statement_timeout_ms:
                # sqlite has no statement timeout; bound lock waits instead
                connect_args["timeout"] = statement_timeout_ms / 1000
            engine = create_engine(url, connect_args=connect_args, echo=echo)

            @event.listens_for(engine, "connect")
            def _enable_foreign_keys(dbapi_connection, connection_record):
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

            return engine

        connect_args = {}
        if statement_timeout_ms and url.startswith("postgresql"):
            connect_args["options"] = f"-c statement_timeout={int(statement_timeout_ms)}"

        return create_engine(
            url,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_timeout=pool_timeout,
            pool_pre_ping=True,
            connect_args=connect_args,
            echo=echo
        )

    def create_all(self):
        # Models register themselves on Base when imported
        import tour_booking.models  # noqa: F401
        Base.metadata.create_all(bind=self.engine)

    def session(self) -> Session:
        return self.SessionLocal()

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Session that commits on success and rolls back on any failure"""
        db = self.SessionLocal()
        try:
            with transaction(db):
                yield db
        finally:
            db.close()

    def ping(self) -> bool:
        with self.engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return True

    def dispose(self):
        logger.info("Closing database connection pool")
        self.engine.dispose()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """Commit the work done inside the block, or roll all of it back"""
    try:
        yield db
        db.commit()
    except Exception:
        try:
            db.rollback()
        except Exception:
            logger.exception("Rollback failed")
        raise


def get_db(request: Request) -> Iterator[Session]:
    database: Database = request.app.state.database
    db = database.session()
    try:
        yield db
    finally:
        db.close()
