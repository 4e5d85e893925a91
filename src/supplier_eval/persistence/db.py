"""Database connectivity and store selection.

Environment Variables:
    SUPPLIER_EVAL_DATABASE_URL: SQLAlchemy URL for the evaluation store. When
        unset the process-wide in-memory store is used.
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Final

from sqlalchemy import create_engine

from supplier_eval.persistence.memory import InMemoryEvaluationStore
from supplier_eval.persistence.protocols import EvaluationStore
from supplier_eval.persistence.sql_store import SqlEvaluationStore

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

SUPPLIER_EVAL_DATABASE_URL_ENV: Final[str] = "SUPPLIER_EVAL_DATABASE_URL"

_engine: Engine | None = None
_in_memory_store = InMemoryEvaluationStore()


class DatabaseConfigError(Exception):
    """Raised when database configuration is missing or invalid.

    Operations requiring the database do not proceed without it.
    """

    pass


def is_database_configured() -> bool:
    """Check if a database is configured via environment.

    Returns:
        True if SUPPLIER_EVAL_DATABASE_URL is set, False otherwise.
    """
    return bool(os.environ.get(SUPPLIER_EVAL_DATABASE_URL_ENV))


def get_database_url() -> str:
    """Get the database URL from environment.

    ``postgres://`` URLs are rewritten to the ``postgresql://`` scheme that
    SQLAlchemy expects.

    Raises:
        DatabaseConfigError: If the environment variable is not set.
    """
    url = os.environ.get(SUPPLIER_EVAL_DATABASE_URL_ENV)
    if not url:
        raise DatabaseConfigError(
            f"Database URL not configured. Set {SUPPLIER_EVAL_DATABASE_URL_ENV} "
            "environment variable."
        )
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql://", 1)
    return url


def get_engine() -> Engine:
    """Get or create the process-wide engine.

    Raises:
        DatabaseConfigError: If no database URL is configured.
    """
    global _engine

    if _engine is None:
        url = get_database_url()
        _engine = create_engine(url, pool_pre_ping=True, echo=False)
        logger.info("Created evaluation database engine")
    return _engine


def reset_engine() -> None:
    """Dispose the cached engine. For testing only."""
    global _engine

    if _engine is not None:
        _engine.dispose()
        _engine = None


def get_evaluation_store() -> EvaluationStore:
    """Return the SQL store when a database is configured, else the in-memory store."""
    if is_database_configured():
        store = SqlEvaluationStore(get_engine())
        store.ensure_schema()
        return store
    return _in_memory_store


def clear_in_memory_evaluation_store() -> None:
    """Clear the process-wide in-memory store. For testing only."""
    _in_memory_store.clear()
