"""SQL dialect fragments for the relational driver.

The relational driver writes one SQL template for every backend; a
``Dialect`` supplies the handful of fragments that differ between them
(parameter placeholders, pagination, reading back a generated identity).

Manifesto:
    - **One interface:** Dialect protocol for every backend-specific fragment
    - **Zero coupling:** The driver never imports a database module
    - **Testable:** SQLiteDialect for tests, PostgreSQLDialect for prod

Architecture::

    ┌──────────┐ ┌──────────────┐ ┌─────────────────┐
    │ SQLite   │ │ PostgreSQL   │ │ MySQL           │
    │ ?, ?     │ │ %s, %s       │ │ %s, %s          │
    │ last_    │ │ LASTVAL()    │ │ LAST_INSERT_ID()│
    │ insert_  │ │              │ │                 │
    │ rowid()  │ │              │ │                 │
    └──────────┘ └──────────────┘ └─────────────────┘

Examples:
    >>> from tessera.core.dialect import get_dialect
    >>> d = get_dialect("sqlite")
    >>> d.placeholders(3)
    '?, ?, ?'
    >>> d.limit_clause(100, 20)
    'LIMIT 100 OFFSET 20'

Tags:
    dialect, sql, portability, database, tessera
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class Dialect(Protocol):
    """SQL dialect contract.

    Every method returns a **SQL fragment** (string) valid for the target
    database.
    """

    @property
    def name(self) -> str:
        """Human-readable dialect name (e.g. ``'sqlite'``)."""
        ...

    def placeholder(self, index: int) -> str:
        """Single positional placeholder (0-based index)."""
        ...

    def placeholders(self, count: int) -> str:
        """Comma-separated placeholder list."""
        ...

    def limit_clause(self, limit: int, offset: int) -> str:
        """Pagination suffix appended after ``ORDER BY``."""
        ...

    def last_insert_id(self) -> str:
        """Query returning the identity generated by the last insert on
        the same connection."""
        ...

    @property
    def supports_lastrowid(self) -> bool:
        """Whether ``cursor.lastrowid`` after an INSERT is the generated identity."""
        ...


class SQLiteDialect:
    """SQLite dialect: ``?`` placeholders."""

    @property
    def name(self) -> str:
        return "sqlite"

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "?"

    def placeholders(self, count: int) -> str:
        return ", ".join("?" for _ in range(count))

    def limit_clause(self, limit: int, offset: int) -> str:
        return f"LIMIT {int(limit)} OFFSET {int(offset)}"

    def last_insert_id(self) -> str:
        return "SELECT last_insert_rowid()"

    @property
    def supports_lastrowid(self) -> bool:
        return True


class PostgreSQLDialect:
    """PostgreSQL dialect: ``%s`` placeholders (psycopg2)."""

    @property
    def name(self) -> str:
        return "postgresql"

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "%s"

    def placeholders(self, count: int) -> str:
        return ", ".join("%s" for _ in range(count))

    def limit_clause(self, limit: int, offset: int) -> str:
        return f"LIMIT {int(limit)} OFFSET {int(offset)}"

    def last_insert_id(self) -> str:
        return "SELECT LASTVAL()"

    @property
    def supports_lastrowid(self) -> bool:
        return False


class MySQLDialect:
    """MySQL dialect: ``%s`` placeholders, ``LIMIT offset, count``."""

    @property
    def name(self) -> str:
        return "mysql"

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "%s"

    def placeholders(self, count: int) -> str:
        return ", ".join("%s" for _ in range(count))

    def limit_clause(self, limit: int, offset: int) -> str:
        return f"LIMIT {int(offset)}, {int(limit)}"

    def last_insert_id(self) -> str:
        return "SELECT LAST_INSERT_ID()"

    @property
    def supports_lastrowid(self) -> bool:
        return True


# =========================================================================
# Registry / Factory
# =========================================================================

# Dialects are stateless
_DIALECTS: dict[str, Dialect] = {
    "sqlite": SQLiteDialect(),
    "postgresql": PostgreSQLDialect(),
    "postgres": PostgreSQLDialect(),  # alias
    "mysql": MySQLDialect(),
}


def get_dialect(db_type: str) -> Dialect:
    """Get a dialect by database type name.

    Raises:
        ValueError: If ``db_type`` is not recognised.
    """
    key = db_type.lower()
    if key not in _DIALECTS:
        raise ValueError(
            f"Unknown dialect '{db_type}'. "
            f"Supported: {sorted(set(_DIALECTS) - {'postgres'})}"
        )
    return _DIALECTS[key]


def register_dialect(name: str, dialect: Dialect) -> None:
    """Register a custom dialect implementation (third-party backends, test doubles)."""
    _DIALECTS[name.lower()] = dialect


__all__ = [
    "Dialect",
    "SQLiteDialect",
    "PostgreSQLDialect",
    "MySQLDialect",
    "get_dialect",
    "register_dialect",
]
