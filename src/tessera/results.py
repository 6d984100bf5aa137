"""Lazy result sequence.

A ``ResultSequence`` holds an executor and a ``QuerySpec`` and does nothing
until it is iterated. Every traversal executes the query once (base query
plus one query per eager-loaded relationship) and yields the materialised
entities; a second traversal runs the query again against current data.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tessera.executor import QueryExecutor
    from tessera.model.entity import Entity
    from tessera.query.spec import QuerySpec


class ResultSequence:
    def __init__(self, executor: QueryExecutor, spec: QuerySpec):
        self._executor = executor
        self._spec = spec

    @property
    def spec(self) -> QuerySpec:
        return self._spec

    def __iter__(self) -> Iterator[Entity]:
        yield from self._executor.execute(self._spec)

    def count(self) -> int:
        """Matching row count, via the driver aggregate (no materialisation)."""
        return self._executor.count(self._spec)

    def __repr__(self) -> str:
        return f"ResultSequence({self._spec!r})"


__all__ = [
    "ResultSequence",
]
