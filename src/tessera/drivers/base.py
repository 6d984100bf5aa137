"""Driver capability interface.

Manifesto:
    The executor never knows how data is stored. Everything physical
    (SQL, connections, wire formats) lives behind this interface, and every
    backend failure crosses it as a :class:`~tessera.core.errors.DriverError`.

Features:
    - Abstract single-entity operations: ``create``, ``get_generated_identity``,
      ``load``, ``update``, ``delete``
    - Abstract set operations against a ``QuerySpec``: ``query``, ``count``,
      ``sum``, ``average``, ``min``, ``max``
    - ``transaction()`` context manager for the mutation pipeline
    - ``error()`` helper building a DriverError with verb/entity context

Contract:
    - ``load`` returns ``None`` (not an error) when no row matches
    - ``update`` with zero values succeeds without issuing a statement
    - ``query`` applies joins before sorting and pagination
    - aggregates use the same filter/join translation as ``query`` and
      ignore sort and pagination

Tags:
    driver, abstract-base, adapter-pattern, storage, tessera
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from tessera.core.errors import DriverError

if TYPE_CHECKING:
    from tessera.model.entity import Entity
    from tessera.query.spec import QuerySpec

Row = dict[str, Any]


class Driver(ABC):
    """Abstract base class for storage drivers."""

    # -- Single-entity operations -----------------------------------------

    @abstractmethod
    def create(self, entity_type: type[Entity], values: Mapping[str, Any]) -> bool:
        """Insert a new record. The generated identity is read separately."""
        ...

    @abstractmethod
    def get_generated_identity(self, entity_type: type[Entity], property_name: str) -> Any:
        """Identity generated by the last ``create``, cast to the property type."""
        ...

    @abstractmethod
    def load(self, entity: Entity) -> Row | None:
        """Current row for ``entity``'s identity, or None."""
        ...

    @abstractmethod
    def update(self, entity_type: type[Entity], identity: Mapping[str, Any], values: Mapping[str, Any]) -> bool:
        """Update one record; zero ``values`` is a successful no-op."""
        ...

    @abstractmethod
    def delete(self, entity: Entity) -> bool:
        ...

    # -- Set operations ----------------------------------------------------

    @abstractmethod
    def query(self, spec: QuerySpec) -> list[Row]:
        """Rows matching ``spec`` in storage order."""
        ...

    @abstractmethod
    def count(self, spec: QuerySpec) -> int:
        ...

    @abstractmethod
    def sum(self, spec: QuerySpec, column: str) -> int | float:
        ...

    @abstractmethod
    def average(self, spec: QuerySpec, column: str) -> int | float:
        ...

    @abstractmethod
    def min(self, spec: QuerySpec, column: str) -> Any:
        ...

    @abstractmethod
    def max(self, spec: QuerySpec, column: str) -> Any:
        ...

    # -- Transactions ------------------------------------------------------

    @contextmanager
    def transaction(self, entity_type: type[Entity]) -> Iterator[None]:
        """Group writes for ``entity_type``. Default: no grouping."""
        yield

    # -- Helpers -----------------------------------------------------------

    @staticmethod
    def error(message: str, entity_type: type[Entity], operation: str, cause: Exception | None = None) -> DriverError:
        """DriverError carrying entity type, verb and the original cause."""
        detail = f"{message}: {cause}" if cause is not None else message
        error = DriverError(detail, cause=cause)
        error.with_context(entity=entity_type.entity_name(), operation=operation)
        return error


__all__ = [
    "Driver",
    "Row",
]
