"""SQLAlchemy engine factory and Connection bridge.

This module provides:

* ``create_engine``      -- Create a SA engine from a URL with sane defaults.
* ``SessionConnection``  -- Wraps a SA ``Session`` to satisfy the
  ``tessera.core.protocols.Connection`` protocol, so the relational driver
  can run its qmark SQL over any SQLAlchemy-supported database.

Tags:
    sqlalchemy, session, engine, bridge, connection, tessera
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from sqlalchemy import create_engine as _sa_create_engine
from sqlalchemy import event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool


def create_engine(url: str, *, echo: bool = False, **kwargs: Any) -> Engine:
    """Create a SQLAlchemy engine.

    In-memory SQLite gets a ``StaticPool`` so every session sees the same
    database; SQLite also gets foreign keys enabled.
    """
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
        if ":memory:" in url or url.rstrip("/") == "sqlite:":
            kwargs.setdefault("poolclass", StaticPool)

        engine = _sa_create_engine(url, echo=echo, **kwargs)

        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_connection: Any, _rec: Any) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    return _sa_create_engine(url, echo=echo, **kwargs)


def _bind_positional(sql: str, parameters: Sequence[Any]) -> tuple[str, dict[str, Any]]:
    """Rewrite ``?`` placeholders as ``:p0, :p1`` for ``text()``.

    Question marks inside single-quoted literals are left alone. Every colon
    already in the SQL is escaped so ``text()`` binds only the generated names.
    """
    rewritten: list[str] = []
    in_literal = False
    idx = 0
    for ch in sql:
        if ch == "'":
            in_literal = not in_literal
        if ch == "?" and not in_literal:
            rewritten.append(f":p{idx}")
            idx += 1
        elif ch == ":":
            rewritten.append("\\:")
        else:
            rewritten.append(ch)
    return "".join(rewritten), {f"p{i}": v for i, v in enumerate(parameters)}


class _ResultCursor:
    """DB-API-shaped view over a SQLAlchemy ``Result``."""

    def __init__(self, result: Any) -> None:
        self._result = result
        # read before the session commits and the DBAPI cursor is released
        self._lastrowid = None if result.returns_rows else result.lastrowid

    @property
    def description(self) -> list[tuple[Any, ...]] | None:
        if not self._result.returns_rows:
            return None
        return [(k, None, None, None, None, None, None) for k in self._result.keys()]

    @property
    def rowcount(self) -> int:
        return self._result.rowcount

    @property
    def lastrowid(self) -> Any:
        return self._lastrowid

    def fetchone(self) -> tuple[Any, ...] | None:
        if not self._result.returns_rows:
            return None
        row = self._result.fetchone()
        return tuple(row) if row is not None else None

    def fetchall(self) -> list[tuple[Any, ...]]:
        if not self._result.returns_rows:
            return []
        return [tuple(r) for r in self._result.fetchall()]


class SessionConnection:
    """Adapter that makes a SQLAlchemy ``Session`` look like
    ``tessera.core.protocols.Connection``.

    The SQL it receives uses ``?`` placeholders (SQLite dialect style).
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def execute(self, sql: str, parameters: Sequence[Any] = ()) -> _ResultCursor:
        rewritten, mapping = _bind_positional(sql, parameters)
        result = self._session.execute(text(rewritten), mapping)
        return _ResultCursor(result)

    def commit(self) -> None:
        self._session.commit()

    def rollback(self) -> None:
        self._session.rollback()

    def close(self) -> None:
        self._session.close()

    @property
    def session(self) -> Session:
        """Access the underlying SA session."""
        return self._session


__all__ = [
    "create_engine",
    "SessionConnection",
]
