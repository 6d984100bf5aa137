"""Relational (SQL) driver.

Manifesto:
    One SQL template for every backend. The driver asks the
    ``ConnectionManager`` for the entity type's connection, lets the
    handle's ``Dialect`` supply placeholders and pagination, and turns
    every backend exception into a ``DriverError``.

Architecture::

    QuerySpec ──► SelectBuilder ──► Statement(sql, params)
                                        │
    ConnectionManager.get(meta.connection)
                                        ▼
                               handle.conn.execute()
                                        │
                         rows as dicts (cursor.description)

Features:
    - ``table.*`` projection with every bare column table-qualified
    - joins applied before ``ORDER BY`` / ``LIMIT``
    - aggregates share the filter/join translation; NULL results become 0
    - ``array`` / ``object`` values stored as JSON text
    - writes commit immediately unless inside ``transaction()``

Guardrails:
    ❌ DON'T: Open or close connections here
    ✅ DO: Borrow them from the ConnectionManager

    ❌ DON'T: Let sqlite3 / SQLAlchemy exceptions escape
    ✅ DO: Re-raise as DriverError with the verb and entity type

Tags:
    driver, sql, relational, sqlite, postgresql, tessera
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from tessera.core.errors import TesseraError
from tessera.core.logging import get_logger
from tessera.drivers.base import Driver, Row
from tessera.drivers.connections import ConnectionHandle, ConnectionManager
from tessera.drivers.sql import SelectBuilder, Statement, identity_clause
from tessera.model.metadata import MetadataRegistry
from tessera.model.properties import cast, serialize

if TYPE_CHECKING:
    from tessera.model.entity import Entity
    from tessera.query.spec import QuerySpec

logger = get_logger(__name__)

_PREFIX = "An error occurred in the database driver"


class RelationalDriver(Driver):
    """SQL implementation of :class:`~tessera.drivers.base.Driver`."""

    def __init__(self, connections: ConnectionManager, registry: MetadataRegistry):
        self._connections = connections
        self._registry = registry
        self._last_rowid: dict[str, Any] = {}

    @property
    def connections(self) -> ConnectionManager:
        return self._connections

    # -- Plumbing ----------------------------------------------------------

    def _handle(self, entity_type: type[Entity]) -> ConnectionHandle:
        return self._connections.get(self._registry.get(entity_type).connection)

    def _table(self, entity_type: type[Entity]) -> str:
        return self._registry.get(entity_type).table

    def _builder(self, spec: QuerySpec, handle: ConnectionHandle) -> SelectBuilder:
        return SelectBuilder(spec, handle.dialect, self._table)

    @contextmanager
    def _guard(self, entity_type: type[Entity], operation: str, message: str, handle: ConnectionHandle | None = None) -> Iterator[None]:
        """Translate backend exceptions into DriverError.

        Outside a transaction a failed statement is rolled back so the
        connection stays usable.
        """
        try:
            yield
        except TesseraError:
            raise
        except Exception as e:
            if handle is not None and not handle.in_transaction:
                try:
                    handle.conn.rollback()
                except Exception as rollback_error:  # noqa: BLE001
                    logger.warning("rollback_failed", connection=handle.name, error=str(rollback_error))
            logger.debug(
                "driver_error",
                entity=entity_type.entity_name(),
                operation=operation,
                error=str(e),
            )
            raise self.error(message, entity_type, operation, e) from e

    def _rows(self, handle: ConnectionHandle, statement: Statement) -> list[Row]:
        cursor = handle.conn.execute(statement.sql, statement.params)
        if cursor.description is None:
            return []
        columns = [desc[0] for desc in cursor.description]
        return [dict(zip(columns, row, strict=False)) for row in cursor.fetchall()]

    def _scalar(self, handle: ConnectionHandle, statement: Statement) -> Any:
        row = handle.conn.execute(statement.sql, statement.params).fetchone()
        return None if row is None else row[0]

    def _write(self, handle: ConnectionHandle, sql: str, params: tuple[Any, ...]) -> Any:
        cursor = handle.conn.execute(sql, params)
        if not handle.in_transaction:
            handle.conn.commit()
        return cursor

    def _columns(self, entity_type: type[Entity], values: Mapping[str, Any]) -> dict[str, Any]:
        """Persistable values: relationship properties dropped, JSON applied."""
        meta = self._registry.get(entity_type)
        out: dict[str, Any] = {}
        for key, value in values.items():
            prop = meta.get_property(key)
            if prop is not None and prop.is_relationship:
                continue
            out[key] = serialize(value)
        return out

    # -- Single-entity operations -----------------------------------------

    def create(self, entity_type: type[Entity], values: Mapping[str, Any]) -> bool:
        name = entity_type.entity_name()
        handle = self._handle(entity_type)
        data = self._columns(entity_type, values)
        table = self._table(entity_type)

        if data:
            sql = (
                f"INSERT INTO {table} ({', '.join(data)}) "
                f"VALUES ({handle.dialect.placeholders(len(data))})"
            )
        else:
            sql = f"INSERT INTO {table} DEFAULT VALUES"

        with self._guard(entity_type, "create", f"{_PREFIX} when creating the {name}", handle):
            cursor = self._write(handle, sql, tuple(data.values()))

        self._last_rowid[handle.name] = getattr(cursor, "lastrowid", None)
        logger.debug("entity_created", entity=name, table=table)
        return True

    def get_generated_identity(self, entity_type: type[Entity], property_name: str) -> Any:
        name = entity_type.entity_name()
        handle = self._handle(entity_type)
        value = self._last_rowid.get(handle.name) if handle.dialect.supports_lastrowid else None

        if value is None:
            with self._guard(
                entity_type,
                "create",
                f"{_PREFIX} when retrieving the generated identity of the {name}",
                handle,
            ):
                value = self._scalar(handle, Statement(handle.dialect.last_insert_id()))

        return cast(self._registry.get(entity_type).get_property(property_name), value)

    def load(self, entity: Entity) -> Row | None:
        entity_type = type(entity)
        name = entity_type.entity_name()
        handle = self._handle(entity_type)
        where, params = identity_clause(entity.ids(), handle.dialect)
        sql = f"SELECT * FROM {self._table(entity_type)} WHERE {where} {handle.dialect.limit_clause(1, 0)}"

        with self._guard(entity_type, "load", f"{_PREFIX} when loading the {name}", handle):
            rows = self._rows(handle, Statement(sql, params))

        return rows[0] if rows else None

    def update(self, entity_type: type[Entity], identity: Mapping[str, Any], values: Mapping[str, Any]) -> bool:
        data = self._columns(entity_type, values)
        if not data:
            return True

        name = entity_type.entity_name()
        handle = self._handle(entity_type)
        assignments = ", ".join(f"{column} = {handle.dialect.placeholder(i)}" for i, column in enumerate(data))
        where, id_params = identity_clause(dict(identity), handle.dialect)
        sql = f"UPDATE {self._table(entity_type)} SET {assignments} WHERE {where}"

        with self._guard(entity_type, "update", f"{_PREFIX} when updating the {name}", handle):
            self._write(handle, sql, (*data.values(), *id_params))

        return True

    def delete(self, entity: Entity) -> bool:
        entity_type = type(entity)
        name = entity_type.entity_name()
        handle = self._handle(entity_type)
        where, params = identity_clause(entity.ids(), handle.dialect)
        sql = f"DELETE FROM {self._table(entity_type)} WHERE {where}"

        with self._guard(entity_type, "delete", f"{_PREFIX} when deleting the {name}", handle):
            self._write(handle, sql, params)

        return True

    # -- Set operations ----------------------------------------------------

    def query(self, spec: QuerySpec) -> list[Row]:
        entity_type = spec.get_entity_type()
        name = entity_type.entity_name()
        handle = self._handle(entity_type)

        with self._guard(entity_type, "query", f"{_PREFIX} while performing the {name} query", handle):
            statement = self._builder(spec, handle).select()
            rows = self._rows(handle, statement)

        logger.debug("query_executed", entity=name, rows=len(rows), sql=statement.sql)
        return rows

    def _aggregate(self, spec: QuerySpec, function: str, column: str | None, verb: str) -> Any:
        entity_type = spec.get_entity_type()
        name = entity_type.entity_name()
        handle = self._handle(entity_type)

        with self._guard(entity_type, function, f"{_PREFIX} while {verb} the {name} records", handle):
            statement = self._builder(spec, handle).aggregate(function, column)
            value = self._scalar(handle, statement)

        return 0 if value is None else value

    def count(self, spec: QuerySpec) -> int:
        return int(self._aggregate(spec, "count", None, "counting"))

    def sum(self, spec: QuerySpec, column: str) -> int | float:
        return self._aggregate(spec, "sum", column, "summing")

    def average(self, spec: QuerySpec, column: str) -> int | float:
        return self._aggregate(spec, "average", column, "averaging")

    def min(self, spec: QuerySpec, column: str) -> Any:
        return self._aggregate(spec, "min", column, "finding the minimum of")

    def max(self, spec: QuerySpec, column: str) -> Any:
        return self._aggregate(spec, "max", column, "finding the maximum of")

    # -- Transactions ------------------------------------------------------

    @contextmanager
    def transaction(self, entity_type: type[Entity]) -> Iterator[None]:
        """Commit on success, roll back on any exception.

        Nested blocks join the outermost one.
        """
        handle = self._handle(entity_type)
        handle.depth += 1
        try:
            yield
        except Exception:
            handle.depth -= 1
            if handle.depth == 0:
                with self._guard(entity_type, "rollback", f"{_PREFIX} while rolling back"):
                    handle.conn.rollback()
            raise
        else:
            handle.depth -= 1
            if handle.depth == 0:
                with self._guard(entity_type, "commit", f"{_PREFIX} while committing", handle):
                    handle.conn.commit()


__all__ = [
    "RelationalDriver",
]
