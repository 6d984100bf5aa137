"""
Structural protocols shared across tessera.

Architecture:
    ::

        protocols.py
        ├── Cursor: result of Connection.execute (DB-API 2.0 shape)
        └── Connection: sync DB protocol (sqlite3, SessionConnection, ...)

    Consumers:
        drivers/connections.py, drivers/relational.py, drivers/session.py

Guardrails:
    ❌ DON'T: Import sqlite3 or SQLAlchemy in the relational driver
    ✅ DO: Depend on Connection; let the connection manager lend one

Tags:
    protocol, connection, database, contracts, tessera
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Cursor(Protocol):
    """What ``Connection.execute`` hands back.

    ``description`` follows DB-API 2.0: a sequence of 7-tuples whose first
    element is the column name, or ``None`` for statements without rows.
    """

    @property
    def description(self) -> Any:
        ...

    def fetchone(self) -> Any:
        ...

    def fetchall(self) -> list:
        ...


@runtime_checkable
class Connection(Protocol):
    """
    Minimal SYNCHRONOUS connection interface for database operations.

    Satisfied by ``sqlite3.Connection`` and by
    :class:`~tessera.drivers.session.SessionConnection`.

    Architecture:
        ::

            Connection Protocol:
            ┌────────────────────────────────────────────────────────┐
            │ execute(sql, params)   → Cursor                        │
            │ commit()               → Commit transaction            │
            │ rollback()             → Rollback transaction          │
            │ close()                → Release the connection        │
            └────────────────────────────────────────────────────────┘
    """

    def execute(self, sql: str, params: tuple = ()) -> Any:
        """Execute SQL statement with optional parameters. SYNC."""
        ...

    def commit(self) -> None:
        """Commit current transaction. SYNC."""
        ...

    def rollback(self) -> None:
        """Rollback current transaction. SYNC."""
        ...

    def close(self) -> None:
        """Close the connection. SYNC."""
        ...


__all__ = [
    "Cursor",
    "Connection",
]
