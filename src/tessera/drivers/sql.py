"""Translate a ``QuerySpec`` into SQL text plus bound parameters.

Every bare column identifier is qualified with its owning table so a query
stays unambiguous once joins are added::

    QuerySpec(Order).where("status", "open").join(Customer, "customer_id", "id").sort("id desc")

    SELECT orders.* FROM orders
      JOIN customers ON orders.customer_id = customers.id
      WHERE orders.status = ?
      ORDER BY orders.id DESC
      LIMIT 100 OFFSET 0

Expressions that are already qualified (``customers.name``) or are not plain
identifiers (``COUNT(*)``, raw predicates) are left untouched.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from tessera.core.dialect import Dialect
from tessera.model.properties import serialize
from tessera.query.filters import Comparison, Equality, FilterTerm, Raw
from tessera.query.spec import QuerySpec

_IDENTIFIER = re.compile(r"^[A-Za-z0-9_]+$")

AGGREGATES = {
    "count": "COUNT",
    "sum": "SUM",
    "average": "AVG",
    "min": "MIN",
    "max": "MAX",
}


def prefix_column(column: str, table: str) -> str:
    """``table.column`` for a bare identifier, otherwise ``column``."""
    if not _IDENTIFIER.match(column):
        return column
    return f"{table}.{column}"


@dataclass
class Statement:
    sql: str
    params: tuple[Any, ...] = field(default_factory=tuple)


class SelectBuilder:
    """Builds SELECT / aggregate statements for one ``QuerySpec``."""

    def __init__(self, spec: QuerySpec, dialect: Dialect, table_of: Callable[[type], str]):
        self._spec = spec
        self._dialect = dialect
        self._table_of = table_of
        self._table = table_of(spec.get_entity_type())

    @property
    def table(self) -> str:
        return self._table

    def select(self) -> Statement:
        where_sql, params = self.where()
        parts = [f"SELECT {self._table}.* FROM {self._table}", *self.joins()]
        if where_sql:
            parts.append(f"WHERE {where_sql}")
        order = self.order_by()
        if order:
            parts.append(f"ORDER BY {order}")
        parts.append(self._dialect.limit_clause(self._spec.get_limit(), self._spec.get_start()))
        return Statement(" ".join(parts), params)

    def aggregate(self, function: str, column: str | None = None) -> Statement:
        """``SELECT FN(col)`` with the query's joins and filters only."""
        target = "*" if column is None else prefix_column(column, self._table)
        where_sql, params = self.where()
        parts = [f"SELECT {AGGREGATES[function]}({target}) FROM {self._table}", *self.joins()]
        if where_sql:
            parts.append(f"WHERE {where_sql}")
        return Statement(" ".join(parts), params)

    def joins(self) -> list[str]:
        clauses = []
        for join in self._spec.get_joins():
            joined = self._table_of(join.related_type)
            condition = (
                f"{prefix_column(join.local_column, self._table)} = "
                f"{prefix_column(join.foreign_key, joined)}"
            )
            clauses.append(f"JOIN {joined} ON {condition}")
        return clauses

    def where(self) -> tuple[str, tuple[Any, ...]]:
        clauses: list[str] = []
        params: list[Any] = []
        for term in self._spec.get_where():
            sql, values = self.term(term)
            clauses.append(sql)
            params.extend(values)
        return " AND ".join(clauses), tuple(params)

    def term(self, term: FilterTerm) -> tuple[str, list[Any]]:
        if isinstance(term, Raw):
            return f"({term.text})", []

        column = prefix_column(term.column, self._table)

        if isinstance(term, Equality):
            if term.value is None:
                return f"{column} IS NULL", []
            return f"{column} = {self._dialect.placeholder(0)}", [serialize(term.value)]

        if isinstance(term, Comparison):
            operator = term.normalized_operator
            if term.is_membership:
                values = [serialize(v) for v in term.value]
                if not values:
                    # IN () is invalid SQL; an empty set matches nothing
                    return ("1 = 0" if operator == "IN" else "1 = 1"), []
                return f"{column} {operator} ({self._dialect.placeholders(len(values))})", values
            if term.value is None and operator in ("IS", "IS NOT", "=", "!=", "<>"):
                null_operator = "IS" if operator in ("IS", "=") else "IS NOT"
                return f"{column} {null_operator} NULL", []
            return f"{column} {operator} {self._dialect.placeholder(0)}", [serialize(term.value)]

        raise TypeError(f"Unknown filter term: {term!r}")

    def order_by(self) -> str:
        return ", ".join(
            f"{prefix_column(column, self._table)} {direction.upper()}"
            for column, direction in self._spec.get_sort()
        )


def identity_clause(identity: dict[str, Any], dialect: Dialect) -> tuple[str, tuple[Any, ...]]:
    """``a = ? AND b = ?`` for a (possibly composite) identity."""
    clauses = [f"{column} = {dialect.placeholder(i)}" for i, column in enumerate(identity)]
    return " AND ".join(clauses), tuple(identity.values())


__all__ = [
    "AGGREGATES",
    "SelectBuilder",
    "Statement",
    "identity_clause",
    "prefix_column",
]
