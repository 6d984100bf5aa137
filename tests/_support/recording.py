"""In-memory driver that records every call.

Used where a test cares about *how many* driver calls the executor makes
rather than about SQL. Rows live in per-entity-type lists; filters support
equality, the comparison operators and ``IN`` / ``NOT IN``.
"""

from __future__ import annotations

import operator
from collections.abc import Mapping
from typing import Any

from tessera.core.errors import DriverError
from tessera.drivers.base import Driver, Row
from tessera.query.filters import Comparison, Equality, Raw

_COMPARE = {
    "=": operator.eq,
    "!=": operator.ne,
    "<>": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}


class RecordingDriver(Driver):
    def __init__(self, tables: Mapping[type, list[Row]] | None = None):
        self.tables: dict[type, list[Row]] = {k: [dict(r) for r in v] for k, v in (tables or {}).items()}
        self.calls: list[tuple[str, Any]] = []
        self.specs: list[Any] = []
        self.fail_on: type | None = None
        self._next_id: dict[type, int] = {}

    def calls_to(self, name: str) -> int:
        return sum(1 for call, _ in self.calls if call == name)

    def _matches(self, row: Row, term: Any) -> bool:
        if isinstance(term, Raw):
            raise NotImplementedError("raw predicates are not evaluated in memory")
        if isinstance(term, Equality):
            return row.get(term.column) == term.value
        op = term.normalized_operator
        if op == "IN":
            return row.get(term.column) in term.value
        if op == "NOT IN":
            return row.get(term.column) not in term.value
        return _COMPARE[op](row.get(term.column), term.value)

    def _select(self, spec: Any) -> list[Row]:
        entity_type = spec.get_entity_type()
        rows = [
            dict(r) for r in self.tables.get(entity_type, [])
            if all(self._matches(r, t) for t in spec.get_where())
        ]
        for column, direction in reversed(spec.get_sort()):
            rows.sort(key=lambda r: r.get(column), reverse=direction == "desc")
        return rows

    # -- Driver ------------------------------------------------------------

    def create(self, entity_type, values):
        self.calls.append(("create", entity_type))
        row = dict(values)
        if "id" not in row:
            self._next_id[entity_type] = self._next_id.get(entity_type, 100) + 1
            row["id"] = self._next_id[entity_type]
        self.tables.setdefault(entity_type, []).append(row)
        return True

    def get_generated_identity(self, entity_type, property_name):
        self.calls.append(("get_generated_identity", entity_type))
        return self.tables[entity_type][-1][property_name]

    def load(self, entity):
        self.calls.append(("load", type(entity)))
        for row in self.tables.get(type(entity), []):
            if all(row.get(k) == v for k, v in entity.ids().items()):
                return dict(row)
        return None

    def update(self, entity_type, identity, values):
        self.calls.append(("update", entity_type))
        for row in self.tables.get(entity_type, []):
            if all(row.get(k) == v for k, v in identity.items()):
                row.update(values)
        return True

    def delete(self, entity):
        self.calls.append(("delete", type(entity)))
        rows = self.tables.get(type(entity), [])
        self.tables[type(entity)] = [
            r for r in rows if not all(r.get(k) == v for k, v in entity.ids().items())
        ]
        return True

    def query(self, spec):
        entity_type = spec.get_entity_type()
        self.calls.append(("query", entity_type))
        self.specs.append(spec)
        if self.fail_on is entity_type:
            raise DriverError("boom").with_context(entity=entity_type.entity_name(), operation="query")
        rows = self._select(spec)
        return rows[spec.get_start():spec.get_start() + spec.get_limit()]

    def count(self, spec):
        self.calls.append(("count", spec.get_entity_type()))
        return len(self._select(spec))

    def _column(self, spec, column):
        return [r[column] for r in self._select(spec) if r.get(column) is not None]

    def sum(self, spec, column):
        self.calls.append(("sum", spec.get_entity_type()))
        return sum(self._column(spec, column))

    def average(self, spec, column):
        self.calls.append(("average", spec.get_entity_type()))
        values = self._column(spec, column)
        return sum(values) / len(values) if values else 0

    def min(self, spec, column):
        self.calls.append(("min", spec.get_entity_type()))
        return min(self._column(spec, column), default=0)

    def max(self, spec, column):
        self.calls.append(("max", spec.get_entity_type()))
        return max(self._column(spec, column), default=0)
