"""Named connections for the relational driver.

The relational driver never opens or closes connections; it asks a
``ConnectionManager`` for the handle registered under an entity type's
connection identifier (``Entity.__connection__``), or for the default.

Supported sources
-----------------
=======================  ==============================================
Source                   Registered with
=======================  ==============================================
stdlib ``sqlite3``       ``add(name, sqlite_connection(path), "sqlite")``
any SQLAlchemy URL       ``from_url("postgresql://...", name)``
anything else            ``add(name, conn, dialect)``
=======================  ==============================================

Usage::

    manager = ConnectionManager()
    manager.from_url("sqlite:///shop.db")            # becomes the default
    manager.add("audit", sqlite_connection("audit.db"), "sqlite")

    handle = manager.get()          # default
    handle = manager.get("audit")   # named

Tags:
    connection, manager, sqlite, sqlalchemy, tessera
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker

from tessera.core.dialect import Dialect, get_dialect
from tessera.core.errors import ConnectionNotFoundError, MissingConfigError
from tessera.core.logging import get_logger
from tessera.core.protocols import Connection
from tessera.drivers.session import SessionConnection, create_engine

logger = get_logger(__name__)


def sqlite_connection(path: str = ":memory:", *, timeout: float = 30.0) -> sqlite3.Connection:
    """Open a stdlib SQLite connection with ``Row`` factory and foreign keys on."""
    uri = path.startswith("file:")
    conn = sqlite3.connect(path, timeout=timeout, check_same_thread=False, uri=uri)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


class BridgedDialect:
    """Backend dialect as seen through :class:`SessionConnection`.

    The bridge only understands ``?`` placeholders, so those are used
    whatever the backend; pagination and identity retrieval still come
    from the backend's own dialect.
    """

    def __init__(self, backend: Dialect):
        self._backend = backend

    @property
    def name(self) -> str:
        return self._backend.name

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "?"

    def placeholders(self, count: int) -> str:
        return ", ".join("?" for _ in range(count))

    def limit_clause(self, limit: int, offset: int) -> str:
        return self._backend.limit_clause(limit, offset)

    def last_insert_id(self) -> str:
        return self._backend.last_insert_id()

    @property
    def supports_lastrowid(self) -> bool:
        return self._backend.supports_lastrowid


@dataclass
class ConnectionHandle:
    """A connection plus the dialect its SQL must be written in.

    ``depth`` counts nested :meth:`RelationalDriver.transaction` blocks;
    writes commit on their own only while it is zero.
    """

    name: str
    conn: Connection
    dialect: Dialect
    depth: int = 0
    engine: Engine | None = field(default=None, repr=False)

    @property
    def in_transaction(self) -> bool:
        return self.depth > 0


class ConnectionManager:
    """Registry of named connections with an optional default."""

    def __init__(self) -> None:
        self._handles: dict[str, ConnectionHandle] = {}
        self._default: str | None = None

    def add(
        self,
        name: str,
        conn: Connection,
        dialect: Dialect | str = "sqlite",
        *,
        default: bool | None = None,
        engine: Engine | None = None,
    ) -> ConnectionHandle:
        """Register ``conn`` under ``name``.

        The first connection added becomes the default unless ``default``
        says otherwise.
        """
        if isinstance(dialect, str):
            dialect = get_dialect(dialect)
        handle = ConnectionHandle(name=name, conn=conn, dialect=dialect, engine=engine)
        self._handles[name] = handle
        if default or (default is None and self._default is None):
            self._default = name
        logger.debug("connection_added", connection=name, dialect=dialect.name)
        return handle

    def from_url(self, url: str, name: str = "default", *, echo: bool = False, default: bool | None = None) -> ConnectionHandle:
        """Open a SQLAlchemy engine for ``url`` and register a session on it."""
        backend = make_url(url).get_backend_name()
        engine = create_engine(url, echo=echo)
        session = sessionmaker(bind=engine)()
        return self.add(
            name,
            SessionConnection(session),
            BridgedDialect(get_dialect(backend)),
            default=default,
            engine=engine,
        )

    def get(self, name: str | None = None) -> ConnectionHandle:
        """Handle registered under ``name``, or the default for ``None``.

        Raises:
            ConnectionNotFoundError: ``name`` was never registered.
            MissingConfigError: ``name`` is None and there is no default.
        """
        if name is None:
            if self._default is None:
                raise MissingConfigError("connection", "No default database connection configured")
            name = self._default
        try:
            return self._handles[name]
        except KeyError:
            raise ConnectionNotFoundError(name) from None

    def set_default(self, name: str) -> None:
        if name not in self._handles:
            raise ConnectionNotFoundError(name)
        self._default = name

    @property
    def default_name(self) -> str | None:
        return self._default

    def names(self) -> list[str]:
        return list(self._handles)

    def __contains__(self, name: Any) -> bool:
        return name in self._handles

    def close(self) -> None:
        """Close every connection (and dispose engines) and forget them."""
        for handle in self._handles.values():
            handle.conn.close()
            if handle.engine is not None:
                handle.engine.dispose()
        self._handles.clear()
        self._default = None


__all__ = [
    "BridgedDialect",
    "ConnectionHandle",
    "ConnectionManager",
    "sqlite_connection",
]
