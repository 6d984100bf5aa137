"""Query executor: runs a ``QuerySpec`` and hydrates relationships in batches.

Manifesto:
    N entities with M eager-loaded relationships cost 1 + M driver queries,
    never 1 + N·M. A relationship that was eager-loaded is always resolved
    afterwards (an entity, confirmed absent, or a possibly empty list) so
    that a later read never falls back to an un-batched lookup.

Architecture::

    execute(spec)
      │
      ├─ driver.query(spec) ──────────────────► rows (driver order)
      ├─ materialise entities (identity + row values)
      └─ for name in spec.get_with():            # eager-load order
           keys  = dedup(local_key of each entity, skipping None / "")
           keys empty? ─► resolve all as ABSENT / []  (no driver call)
           rows  = driver.query(Related.where(fk IN keys).limit(MAX_LIMIT))
           group = handler.group(related, fk)     # last-wins or list
           handler.distribute(entity, name, group, key) for each entity

Consistency:
    The base query and the relationship queries run one after another
    without a transaction. Under concurrent writes the hydrated
    relationships may not match the base rows at a single point in time.

Examples:
    >>> orders = executor.execute(QuerySpec(Order).with_("items"))
    >>> orders[0].items        # already loaded, no driver call
    [Item(id=1), Item(id=2)]

    >>> executor.first(QuerySpec(Order).where("id", 999)) is None
    True

Tags:
    executor, eager-loading, hydration, batching, tessera
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from tessera.core.errors import DriverError
from tessera.core.logging import LogContext, get_logger
from tessera.drivers.base import Row
from tessera.model.entity import Entity
from tessera.model.metadata import ResolvedRelationship
from tessera.query.filters import membership
from tessera.query.spec import MAX_LIMIT, QuerySpec
from tessera.results import ResultSequence

if TYPE_CHECKING:
    from tessera.context import StorageContext

logger = get_logger(__name__)


def _candidate(key: Any) -> bool:
    return key is not None and key != ""


class QueryExecutor:
    """Runs queries against the drivers of a :class:`StorageContext`."""

    def __init__(self, context: StorageContext):
        self._context = context

    @property
    def context(self) -> StorageContext:
        return self._context

    # -- Materialisation ---------------------------------------------------

    def materialize(self, entity_type: type[Entity], rows: Sequence[Row]) -> list[Entity]:
        """Build entities from driver rows, keeping row order."""
        id_fields = self._context.registry.get(entity_type).id_fields
        return [
            entity_type({k: row.get(k) for k in id_fields}, row, context=self._context)
            for row in rows
        ]

    # -- Queries -----------------------------------------------------------

    def execute(self, spec: QuerySpec) -> list[Entity]:
        """Entities matching ``spec`` with every ``with_()`` relationship resolved."""
        entity_type = spec.get_entity_type()
        meta = self._context.registry.get(entity_type)
        relationships = [meta.relationship(name) for name in spec.get_with()]

        rows = self._context.driver_for(entity_type).query(spec)
        entities = self.materialize(entity_type, rows)

        for relationship in relationships:
            self.hydrate(entities, relationship)

        return entities

    def hydrate(self, entities: Sequence[Entity], relationship: ResolvedRelationship) -> None:
        """Resolve ``relationship`` on every entity with at most one driver query."""
        name = relationship.name
        handler = relationship.handler
        local_key = relationship.local_key

        keys = list(dict.fromkeys(
            key for key in (entity.get(local_key) for entity in entities) if _candidate(key)
        ))

        if not keys:
            for entity in entities:
                handler.resolve_empty(entity, name)
            return

        related_type = relationship.related_type
        spec = QuerySpec(related_type).filter(membership(relationship.foreign_key, keys)).limit(MAX_LIMIT)

        try:
            rows = self._context.driver_for(related_type).query(spec)
        except DriverError as e:
            e.with_context(relationship=name)
            raise

        grouped = handler.group(self.materialize(related_type, rows), relationship.foreign_key)

        for entity in entities:
            key = entity.get(local_key)
            handler.distribute(entity, name, grouped, key if _candidate(key) else None)

        logger.debug(
            "relationship_hydrated",
            entity=_owner_name(entities),
            relationship=name,
            keys=len(keys),
            related=len(rows),
        )

    def first(self, spec: QuerySpec, n: int = 1) -> Entity | list[Entity] | None:
        """Set the limit to ``n`` and execute.

        ``n == 1`` returns a single entity or ``None``; larger ``n`` returns
        a list.
        """
        entities = self.execute(spec.limit(n))
        if n == 1:
            return entities[0] if entities else None
        return entities

    def all(self, spec: QuerySpec) -> ResultSequence:
        """Lazy sequence; each traversal executes ``spec`` once."""
        return ResultSequence(self, spec)

    def find(self, entity_type: type[Entity], identity: Any) -> Entity | None:
        """Load one entity by identity; ``None`` when no row matches."""
        entity = entity_type(identity, context=self._context)
        row = self._context.driver_for(entity_type).load(entity)
        if row is None:
            return None
        return entity.refresh_with(row)

    def load_relation(self, entity: Entity, name: str) -> None:
        """Resolve one relationship of one entity (lazy read path)."""
        relationship = self._context.registry.get(type(entity)).relationship(name)
        self.hydrate([entity], relationship)

    # -- Aggregates --------------------------------------------------------

    def count(self, spec: QuerySpec) -> int:
        return self._context.driver_for(spec.get_entity_type()).count(spec)

    def sum(self, spec: QuerySpec, column: str) -> int | float:
        return self._context.driver_for(spec.get_entity_type()).sum(spec, column)

    def average(self, spec: QuerySpec, column: str) -> int | float:
        return self._context.driver_for(spec.get_entity_type()).average(spec, column)

    def min(self, spec: QuerySpec, column: str) -> Any:
        return self._context.driver_for(spec.get_entity_type()).min(spec, column)

    def max(self, spec: QuerySpec, column: str) -> Any:
        return self._context.driver_for(spec.get_entity_type()).max(spec, column)

    # -- Bulk mutation -----------------------------------------------------

    def set(self, spec: QuerySpec, values: Mapping[str, Any]) -> int:
        """Update every matching entity through the mutation pipeline.

        Returns the number of entities the pipeline updated. Vetoed or
        invalid entities are skipped; a ``DriverError`` stops the batch.
        """
        mutations = self._context.mutations
        entity_name = spec.get_entity_type().entity_name()
        with LogContext(entity=entity_name, operation="bulk_set"):
            updated = sum(1 for entity in self.execute(spec) if mutations.update(entity, values))
            logger.debug("bulk_completed", affected=updated)
        return updated

    def delete(self, spec: QuerySpec) -> int:
        """Delete every matching entity through the mutation pipeline."""
        mutations = self._context.mutations
        entity_name = spec.get_entity_type().entity_name()
        with LogContext(entity=entity_name, operation="bulk_delete"):
            deleted = sum(1 for entity in self.execute(spec) if mutations.delete(entity))
            logger.debug("bulk_completed", affected=deleted)
        return deleted


def _owner_name(entities: Sequence[Entity]) -> str | None:
    return type(entities[0]).entity_name() if entities else None


__all__ = [
    "QueryExecutor",
]
