"""Migration consistency tests.

The migration is plain PostgreSQL DDL, so instead of running it against the
SQLite test database these tests capture the statements it issues and check
them against the ORM metadata.
"""

from __future__ import annotations

import importlib.util
import re
from pathlib import Path

import pytest

from codeclub.db import models  # noqa: F401
from codeclub.db.base import Base

_VERSIONS = Path(__file__).resolve().parent.parent / "alembic" / "versions"


class _RecordingOp:
    def __init__(self) -> None:
        self.statements: list[str] = []

    def execute(self, sql: str) -> None:
        self.statements.append(" ".join(sql.split()))


@pytest.fixture
def initial_sql() -> str:
    path = _VERSIONS / "001_initial_schema.py"
    spec = importlib.util.spec_from_file_location("migration_001", path)
    assert spec is not None and spec.loader is not None
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    recorder = _RecordingOp()
    module.op = recorder
    module.upgrade()
    return "\n".join(recorder.statements)


def test_single_head() -> None:
    assert sorted(p.name for p in _VERSIONS.glob("*.py")) == ["001_initial_schema.py"]


def test_every_table_created(initial_sql: str) -> None:
    created = set(re.findall(r"CREATE TABLE IF NOT EXISTS (\w+)", initial_sql))
    assert created == set(Base.metadata.tables)


def test_every_model_column_present(initial_sql: str) -> None:
    for table in Base.metadata.sorted_tables:
        block = re.search(rf"CREATE TABLE IF NOT EXISTS {table.name} \((.*?)\) ?$", initial_sql, re.MULTILINE)
        assert block is not None, table.name
        for column in table.columns:
            assert re.search(rf"\b{column.name}\b", block.group(1)), f"{table.name}.{column.name}"


def test_named_indexes_and_constraints(initial_sql: str) -> None:
    names: set[str] = set()
    for table in Base.metadata.tables.values():
        names.update(index.name for index in table.indexes if index.name)
        names.update(c.name for c in table.constraints if isinstance(c.name, str) and c.name.startswith(("uq_", "ck_")))
    assert "ix_submissions_user_problem_status" in names
    assert "ix_submissions_problem_status_time" in names
    for name in names:
        assert name in initial_sql, name


def test_user_references_never_cascade(initial_sql: str) -> None:
    """Users are only ever deactivated, so deleting one must fail rather than wipe dependents."""
    user_fks = [
        fk
        for table in Base.metadata.tables.values()
        for fk in table.foreign_keys
        if fk.column.table.name == "users"
    ]
    assert len(user_fks) == 10
    for fk in user_fks:
        assert fk.ondelete in (None, "RESTRICT"), fk.parent
    assert initial_sql.count("REFERENCES users(id) ON DELETE RESTRICT") == 5
    assert "REFERENCES users(id) ON DELETE CASCADE" not in initial_sql
