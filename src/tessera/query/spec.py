"""Storage-agnostic query description.

A ``QuerySpec`` records *what* to fetch for one entity type: filters, sort
order, pagination window, joins and relationships to eager-load. It performs
no I/O; :class:`~tessera.executor.QueryExecutor` consumes it and a
:class:`~tessera.drivers.base.Driver` turns it into physical calls.

Invariants (hold after every mutation):
    - ``0 <= get_start()``
    - ``get_limit() <= MAX_LIMIT``

Examples:
    >>> spec = (
    ...     QuerySpec(Order)
    ...     .where("status", "open")
    ...     .where("total", 100, ">")
    ...     .sort("created_at desc")
    ...     .limit(20)
    ...     .with_("items")
    ... )
    >>> spec.get_sort()
    [('created_at', 'desc')]

Tags:
    query, builder, filters, pagination, eager-loading, tessera
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from tessera.query.filters import Comparison, Equality, FilterTerm, Raw

if TYPE_CHECKING:
    from tessera.model.entity import Entity

DEFAULT_LIMIT = 100
MAX_LIMIT = 1000

SORT_DIRECTIONS = ("asc", "desc")

_UNSET: Any = object()


@dataclass(frozen=True)
class Join:
    """Match ``local_column`` on the queried entity to ``foreign_key`` on
    ``related_type``."""

    related_type: type[Entity]
    local_column: str
    foreign_key: str


class QuerySpec:
    """Builder for a single-entity-type query.

    Every mutator returns ``self`` so calls chain.
    """

    def __init__(self, entity_type: type[Entity]):
        self._entity_type = entity_type
        self._where: list[FilterTerm] = []
        self._sort: list[tuple[str, str]] = []
        self._start = 0
        self._limit = DEFAULT_LIMIT
        self._joins: list[Join] = []
        self._with: list[str] = []

    def __repr__(self) -> str:
        return (
            f"QuerySpec({self._entity_type.__name__}, where={len(self._where)}, "
            f"start={self._start}, limit={self._limit}, with={self._with})"
        )

    def get_entity_type(self) -> type[Entity]:
        return self._entity_type

    # -- Pagination --------------------------------------------------------

    def limit(self, limit: int) -> QuerySpec:
        """Set the page size; values above ``MAX_LIMIT`` are clamped."""
        self._limit = min(int(limit), MAX_LIMIT)
        return self

    def get_limit(self) -> int:
        return self._limit

    def start(self, start: int) -> QuerySpec:
        """Set the offset; negative values become 0."""
        self._start = max(int(start), 0)
        return self

    def get_start(self) -> int:
        return self._start

    # -- Sorting -----------------------------------------------------------

    def sort(self, sort: str) -> QuerySpec:
        """Set the sort order from ``"column direction, ..."``.

        Malformed pairs are dropped rather than rejected:

        >>> QuerySpec(Order).sort("name asc, age desc").get_sort()
        [('name', 'asc'), ('age', 'desc')]
        >>> QuerySpec(Order).sort("name up").get_sort()
        []
        """
        params: list[tuple[str, str]] = []
        for pair in sort.split(","):
            tokens = pair.split()
            if len(tokens) != 2:
                continue

            column, direction = tokens[0], tokens[1].lower()
            if direction not in SORT_DIRECTIONS:
                continue

            params.append((column, direction))

        self._sort = params
        return self

    def get_sort(self) -> list[tuple[str, str]]:
        return list(self._sort)

    # -- Filtering ---------------------------------------------------------

    def where(
        self,
        where: Mapping[str, Any] | str,
        value: Any = _UNSET,
        operator: Any = _UNSET,
    ) -> QuerySpec:
        """Add filter terms. Accepts:

        i)   ``where({"name": "Bob"})``
        ii)  ``where("name", "Bob")``
        iii) ``where("balance", 100, ">")``
        iv)  ``where("balance > 100")``

        Filters accumulate; nothing is ever replaced.
        """
        if isinstance(where, Mapping):
            self._where.extend(Equality(column, v) for column, v in where.items())
        elif operator is not _UNSET:
            self._where.append(Comparison(where, operator, value))
        elif value is not _UNSET:
            self._where.append(Equality(where, value))
        else:
            self._where.append(Raw(where))

        return self

    def filter(self, term: FilterTerm) -> QuerySpec:
        """Append an already-built filter term."""
        self._where.append(term)
        return self

    def get_where(self) -> list[FilterTerm]:
        return list(self._where)

    # -- Joins / eager loading --------------------------------------------

    def join(self, related_type: type[Entity], local_column: str, foreign_key: str) -> QuerySpec:
        """Join ``related_type`` on ``local_column = related.foreign_key``.

        The relationship is not validated here; a bad join surfaces as a
        driver error when the query runs.
        """
        self._joins.append(Join(related_type, local_column, foreign_key))
        return self

    def get_joins(self) -> list[Join]:
        return list(self._joins)

    def with_(self, name: str) -> QuerySpec:
        """Eager-load the relationship property ``name`` (idempotent)."""
        if name not in self._with:
            self._with.append(name)
        return self

    def get_with(self) -> list[str]:
        return list(self._with)


__all__ = [
    "DEFAULT_LIMIT",
    "MAX_LIMIT",
    "Join",
    "QuerySpec",
]
