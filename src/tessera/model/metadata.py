"""Entity-type metadata provider.

``MetadataRegistry`` is the read-only lookup the executor and drivers use
to answer "what table, which identity fields, which relationships" for an
entity type. Everything derivable from the class declaration is computed
once in :meth:`MetadataRegistry.register`:

- relationship descriptors get their default keys and their handler from
  :data:`~tessera.model.relations.RELATION_HANDLERS`
- validation chains are parsed into a :class:`~tessera.model.validation.Validator`

Related types referenced by name (``has_many("Item")``) are resolved the
first time the relationship is used, so declaration order does not matter.

Usage::

    registry = MetadataRegistry()
    registry.register(Customer, Order, Item)

    meta = registry.get(Order)
    meta.table                      # "orders"
    meta.relationship("items")      # ResolvedRelationship(...)

Tags:
    metadata, registry, entity, relationships, tessera
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from tessera.core.errors import ConfigError
from tessera.model.entity import Entity
from tessera.model.properties import Property
from tessera.model.relations import (
    RELATION_HANDLERS,
    RelationHandler,
    RelationshipDescriptor,
    RelationType,
)
from tessera.model.validation import Validator


class EntityEvent(str, Enum):
    """Lifecycle events fired by the mutation pipeline."""

    CREATING = "creating"
    CREATED = "created"
    UPDATING = "updating"
    UPDATED = "updated"
    DELETING = "deleting"
    DELETED = "deleted"


Hook = Callable[[Any], None]


@dataclass
class ResolvedRelationship:
    """A relationship descriptor with defaults applied and its handler bound."""

    name: str
    descriptor: RelationshipDescriptor
    handler: RelationHandler
    _registry: MetadataRegistry = field(repr=False)
    _related: type[Entity] | None = field(default=None, repr=False)

    @property
    def relation_type(self) -> RelationType:
        return self.descriptor.relation_type

    @property
    def local_key(self) -> str:
        return self.descriptor.local_key  # type: ignore[return-value]

    @property
    def foreign_key(self) -> str:
        return self.descriptor.foreign_key  # type: ignore[return-value]

    @property
    def related_type(self) -> type[Entity]:
        if self._related is None:
            self._related = self._registry.get(self.descriptor.related).entity_type
        return self._related


@dataclass
class EntityMetadata:
    entity_type: type[Entity]
    table: str
    id_fields: tuple[str, ...]
    properties: dict[str, Property]
    relationships: dict[str, ResolvedRelationship]
    connection: str | None = None
    transactions: bool = False
    validator: Validator | None = None
    hooks: dict[EntityEvent, list[Hook]] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.entity_type.entity_name()

    def relationship(self, name: str) -> ResolvedRelationship:
        """Resolved relationship ``name``.

        Raises:
            ConfigError: when ``name`` is not a relationship property.
        """
        try:
            return self.relationships[name]
        except KeyError:
            raise ConfigError(
                f"{self.entity_type.__name__} has no relationship named {name!r}"
            ).with_context(entity=self.name, relationship=name) from None

    def get_property(self, name: str) -> Property | None:
        return self.properties.get(name)


class MetadataRegistry:
    """Entity type → :class:`EntityMetadata`.

    Lookups accept the class or its name. Classes that were never
    registered are registered on first lookup; names must have been
    registered explicitly.
    """

    def __init__(self) -> None:
        self._by_type: dict[type[Entity], EntityMetadata] = {}
        self._by_name: dict[str, type[Entity]] = {}

    def register(self, *entity_types: type[Entity]) -> MetadataRegistry:
        for entity_type in entity_types:
            self._build(entity_type)
        return self

    def get(self, entity_type: type[Entity] | str) -> EntityMetadata:
        """Metadata for a class or registered class name.

        Raises:
            ConfigError: for an unknown name or a non-entity class.
        """
        if isinstance(entity_type, str):
            try:
                entity_type = self._by_name[entity_type]
            except KeyError:
                raise ConfigError(f"Unknown entity type: {entity_type}").with_context(
                    entity=entity_type
                ) from None

        meta = self._by_type.get(entity_type)
        if meta is None:
            meta = self._build(entity_type)
        return meta

    def __contains__(self, entity_type: object) -> bool:
        if isinstance(entity_type, str):
            return entity_type in self._by_name
        return entity_type in self._by_type

    def list_types(self) -> list[str]:
        return sorted(self._by_name)

    def listen(self, entity_type: type[Entity], event: EntityEvent | str, hook: Hook) -> None:
        """Register a lifecycle hook for ``entity_type``."""
        meta = self.get(entity_type)
        meta.hooks.setdefault(EntityEvent(event), []).append(hook)

    def _build(self, entity_type: type[Entity]) -> EntityMetadata:
        if not (isinstance(entity_type, type) and issubclass(entity_type, Entity)):
            raise ConfigError(f"Not an entity type: {entity_type!r}")

        if entity_type in self._by_type:
            return self._by_type[entity_type]

        owner_key = entity_type.entity_name()
        relationships: dict[str, ResolvedRelationship] = {}
        rules: dict[str, str] = {}
        for name, prop in entity_type.properties.items():
            if prop.relation is not None:
                descriptor = prop.relation.bind(owner_key, name)
                relationships[name] = ResolvedRelationship(
                    name=name,
                    descriptor=descriptor,
                    handler=RELATION_HANDLERS[descriptor.relation_type],
                    _registry=self,
                )
            elif prop.rules:
                rules[name] = prop.rules

        meta = EntityMetadata(
            entity_type=entity_type,
            table=entity_type.table_name(),
            id_fields=tuple(entity_type.__ids__),
            properties=dict(entity_type.properties),
            relationships=relationships,
            connection=entity_type.__connection__,
            transactions=entity_type.__transactions__,
            validator=Validator(rules) if rules else None,
        )
        self._by_type[entity_type] = meta
        self._by_name[entity_type.__name__] = entity_type
        return meta


__all__ = [
    "EntityEvent",
    "EntityMetadata",
    "MetadataRegistry",
    "ResolvedRelationship",
]
