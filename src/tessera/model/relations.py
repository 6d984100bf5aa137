"""Relationship descriptors and the relation handler table.

Architecture::

    RelationType ──► RELATION_HANDLERS ──► RelationHandler(group, assign)

    BELONGS_TO  ─┐
    HAS_ONE     ─┴─► group_last  + assign_single      (one entity or ABSENT)
    HAS_MANY    ───► group_all   + assign_collection  (list, possibly empty)

The handler for a relationship is looked up once, when its entity type is
registered (see :mod:`tessera.model.metadata`); hydration then calls the
bound functions directly.

Key defaults::

    belongs_to("customer")  local_key="customer_id"  foreign_key="id"
    has_one / has_many      local_key="id"           foreign_key="<owner>_id"
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING, Any

from tessera.model.properties import Property, PropertyType

if TYPE_CHECKING:
    from tessera.model.entity import Entity


class RelationType(str, Enum):
    BELONGS_TO = "belongs_to"
    HAS_ONE = "has_one"
    HAS_MANY = "has_many"


@dataclass(frozen=True)
class RelationshipDescriptor:
    """How a relationship property maps onto the related entity type.

    ``related`` may be the entity class or its registered name; names are
    resolved through the metadata registry on first use.
    """

    relation_type: RelationType
    related: type[Entity] | str
    local_key: str | None = None
    foreign_key: str | None = None

    @property
    def is_collection(self) -> bool:
        return self.relation_type is RelationType.HAS_MANY

    def bind(self, owner_key: str, property_name: str) -> RelationshipDescriptor:
        """Fill in default keys for a property named ``property_name`` on
        an entity whose snake_case name is ``owner_key``."""
        if self.relation_type is RelationType.BELONGS_TO:
            local_key = self.local_key or f"{property_name}_id"
            foreign_key = self.foreign_key or "id"
        else:
            local_key = self.local_key or "id"
            foreign_key = self.foreign_key or f"{owner_key}_id"
        return replace(self, local_key=local_key, foreign_key=foreign_key)


def belongs_to(related: type[Entity] | str, local_key: str | None = None, foreign_key: str | None = None) -> Property:
    """The owning entity holds the key referencing exactly one related entity."""
    return Property(
        type=PropertyType.OBJECT,
        relation=RelationshipDescriptor(RelationType.BELONGS_TO, related, local_key, foreign_key),
    )


def has_one(related: type[Entity] | str, foreign_key: str | None = None, local_key: str | None = None) -> Property:
    """The related entity holds the key referencing the owner; at most one."""
    return Property(
        type=PropertyType.OBJECT,
        relation=RelationshipDescriptor(RelationType.HAS_ONE, related, local_key, foreign_key),
    )


def has_many(related: type[Entity] | str, foreign_key: str | None = None, local_key: str | None = None) -> Property:
    """The related entities hold the key referencing the owner."""
    return Property(
        type=PropertyType.ARRAY,
        relation=RelationshipDescriptor(RelationType.HAS_MANY, related, local_key, foreign_key),
    )


# =========================================================================
# Handler table
# =========================================================================

_MISSING: Any = object()


def group_last(related: Iterable[Entity], foreign_key: str) -> dict[Any, Entity]:
    """Index related entities by ``foreign_key``; a later entity replaces
    an earlier one with the same key."""
    grouped: dict[Any, Entity] = {}
    for entity in related:
        grouped[entity.get(foreign_key)] = entity
    return grouped


def group_all(related: Iterable[Entity], foreign_key: str) -> dict[Any, list[Entity]]:
    """Group related entities by ``foreign_key`` preserving input order."""
    grouped: dict[Any, list[Entity]] = {}
    for entity in related:
        grouped.setdefault(entity.get(foreign_key), []).append(entity)
    return grouped


def assign_single(entity: Entity, name: str, match: Any) -> None:
    if match is _MISSING:
        entity.clear_relation(name)
    else:
        entity.set_relation(name, match)


def assign_collection(entity: Entity, name: str, match: Any) -> None:
    entity.set_relation_collection(name, [] if match is _MISSING else match)


@dataclass(frozen=True)
class RelationHandler:
    group: Callable[[Iterable[Entity], str], dict[Any, Any]]
    assign: Callable[[Entity, str, Any], None]

    def distribute(self, entity: Entity, name: str, grouped: dict[Any, Any], key: Any) -> None:
        """Resolve ``name`` on ``entity`` from ``grouped``; a missing (or
        ``None``) key still resolves, to ABSENT or an empty list."""
        match = grouped.get(key, _MISSING) if key is not None else _MISSING
        self.assign(entity, name, match)

    def resolve_empty(self, entity: Entity, name: str) -> None:
        self.assign(entity, name, _MISSING)


RELATION_HANDLERS: dict[RelationType, RelationHandler] = {
    RelationType.BELONGS_TO: RelationHandler(group_last, assign_single),
    RelationType.HAS_ONE: RelationHandler(group_last, assign_single),
    RelationType.HAS_MANY: RelationHandler(group_all, assign_collection),
}


__all__ = [
    "RelationType",
    "RelationshipDescriptor",
    "belongs_to",
    "has_one",
    "has_many",
    "group_last",
    "group_all",
    "RelationHandler",
    "RELATION_HANDLERS",
]
