"""Tests for database URL handling and evaluation store selection."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from supplier_eval.persistence.db import (
    DatabaseConfigError,
    get_database_url,
    get_engine,
    get_evaluation_store,
    is_database_configured,
    reset_engine,
)
from supplier_eval.persistence.memory import InMemoryEvaluationStore
from supplier_eval.persistence.sql_store import SqlEvaluationStore


@pytest.fixture(autouse=True)
def fresh_engine() -> Iterator[None]:
    reset_engine()
    yield
    reset_engine()


class TestDatabaseUrl:
    def test_not_configured(self) -> None:
        assert is_database_configured() is False
        with pytest.raises(DatabaseConfigError, match="SUPPLIER_EVAL_DATABASE_URL"):
            get_database_url()

    def test_postgres_scheme_rewritten(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SUPPLIER_EVAL_DATABASE_URL", "postgres://eval:secret@db:5432/eval")

        assert get_database_url() == "postgresql://eval:secret@db:5432/eval"

    def test_other_urls_unchanged(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SUPPLIER_EVAL_DATABASE_URL", "sqlite:///eval.db")

        assert get_database_url() == "sqlite:///eval.db"


class TestStoreSelection:
    def test_in_memory_store_without_database(self) -> None:
        store = get_evaluation_store()

        assert isinstance(store, InMemoryEvaluationStore)
        assert get_evaluation_store() is store

    def test_sql_store_with_database(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("SUPPLIER_EVAL_DATABASE_URL", f"sqlite:///{tmp_path / 'eval.db'}")

        store = get_evaluation_store()

        assert isinstance(store, SqlEvaluationStore)
        assert store.get_matrix("tenant-a", "opp-1") is None

    def test_engine_is_cached(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SUPPLIER_EVAL_DATABASE_URL", f"sqlite:///{tmp_path / 'eval.db'}")

        assert get_engine() is get_engine()
