"""Persistence for evaluation state: repository protocols, in-memory and SQL stores."""

from supplier_eval.persistence.db import (
    DatabaseConfigError,
    clear_in_memory_evaluation_store,
    get_evaluation_store,
    is_database_configured,
)
from supplier_eval.persistence.memory import InMemoryEvaluationSource, InMemoryEvaluationStore
from supplier_eval.persistence.protocols import EvaluationSource, EvaluationStore
from supplier_eval.persistence.serialization import SCHEMA_VERSION, SchemaVersionError
from supplier_eval.persistence.sql_store import SqlEvaluationStore

__all__ = [
    "DatabaseConfigError",
    "EvaluationSource",
    "EvaluationStore",
    "InMemoryEvaluationSource",
    "InMemoryEvaluationStore",
    "SCHEMA_VERSION",
    "SchemaVersionError",
    "SqlEvaluationStore",
    "clear_in_memory_evaluation_store",
    "get_evaluation_store",
    "is_database_configured",
]
