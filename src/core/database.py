"""SQLAlchemy engine, session factory and transaction scope.

The engine and session factory are built once in the application lifespan
and handed to services explicitly; nothing here is a module-level singleton.
"""

import logging
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import Engine, create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from src.api.middleware.error_handler import TransactionError
from src.core.config import Settings

logger = logging.getLogger(__name__)

SessionFactory = sessionmaker[Session]


def create_db_engine(settings: Settings) -> Engine:
    """Create the SQLAlchemy engine for the configured database.

    PostgreSQL gets a bounded pool with pre-ping; the pool timeout bounds how
    long a request waits for a connection. SQLite (tests, local runs) shares a
    single in-process connection.

    Args:
        settings: Application settings.

    Returns:
        Engine: Configured SQLAlchemy engine.
    """
    url = settings.database_url
    if url.startswith("sqlite"):
        return create_engine(
            url,
            echo=settings.db_echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    return create_engine(
        url,
        echo=settings.db_echo,
        pool_pre_ping=True,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
        pool_recycle=1800,
    )


def create_session_factory(engine: Engine) -> SessionFactory:
    """Create a session factory bound to the engine."""
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@contextmanager
def transaction_scope(session_factory: SessionFactory) -> Generator[Session, None, None]:
    """Run one unit of work in a single transaction.

    Commits on success, rolls back on any exception, and always returns the
    connection to the pool. Database errors are re-raised as TransactionError.

    Args:
        session_factory: Factory producing new sessions.

    Yields:
        Session: Session with an open transaction.

    Raises:
        TransactionError: If the database fails mid-transaction.
    """
    session = session_factory()
    try:
        yield session
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        raise TransactionError(f"Transaction rolled back: {e}") from e
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def check_database_connection(engine: Engine) -> dict[str, Any]:
    """Check if database connection is healthy.

    Returns:
        dict: Connection status with 'healthy' boolean and optional 'error' message.
    """
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return {"healthy": True}
    except Exception as e:
        return {"healthy": False, "error": str(e)}
