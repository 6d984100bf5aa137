"""Tests for the Dialect abstraction layer."""

from __future__ import annotations

import pytest

from tessera.core.dialect import (
    Dialect,
    MySQLDialect,
    PostgreSQLDialect,
    SQLiteDialect,
    get_dialect,
    register_dialect,
)


@pytest.fixture(params=["sqlite", "postgresql", "mysql"])
def dialect(request: pytest.FixtureRequest) -> Dialect:
    """Parametric fixture: run each test against every dialect."""
    return get_dialect(request.param)


class TestProtocol:
    def test_isinstance(self, dialect: Dialect) -> None:
        assert isinstance(dialect, Dialect)

    def test_placeholder_count(self, dialect: Dialect) -> None:
        assert dialect.placeholders(3).count(dialect.placeholder(0)) == 3

    def test_last_insert_id_is_select(self, dialect: Dialect) -> None:
        assert dialect.last_insert_id().startswith("SELECT")


class TestFragments:
    def test_sqlite(self) -> None:
        d = SQLiteDialect()
        assert d.placeholders(2) == "?, ?"
        assert d.limit_clause(100, 20) == "LIMIT 100 OFFSET 20"
        assert d.supports_lastrowid

    def test_postgresql(self) -> None:
        d = PostgreSQLDialect()
        assert d.placeholders(2) == "%s, %s"
        assert d.limit_clause(10, 0) == "LIMIT 10 OFFSET 0"
        assert d.last_insert_id() == "SELECT LASTVAL()"
        assert not d.supports_lastrowid

    def test_mysql_offset_first(self) -> None:
        assert MySQLDialect().limit_clause(10, 30) == "LIMIT 30, 10"


class TestRegistry:
    def test_alias_and_case(self) -> None:
        assert get_dialect("POSTGRES").name == "postgresql"

    def test_unknown_raises(self) -> None:
        with pytest.raises(ValueError, match="Unknown dialect"):
            get_dialect("cobol")

    def test_register_custom(self) -> None:
        custom = SQLiteDialect()
        register_dialect("Custom", custom)
        assert get_dialect("custom") is custom
