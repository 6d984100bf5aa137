"""Entity base class.

Entity types are declared by subclassing::

    class Order(Entity):
        properties = {
            "customer_id": Property(PropertyType.INTEGER),
            "total": Property(PropertyType.FLOAT, rules="numeric"),
            "customer": belongs_to("Customer"),
            "items": has_many("Item"),
        }

An instance holds an identity, the values of its declared (and any extra)
columns, an :class:`~tessera.model.error_stack.ErrorStack`, and a cache of
resolved relationships. Each relationship name is in one of three states:

=============  ===============================================  ============
State          Meaning                                          Driver call
=============  ===============================================  ============
UNRESOLVED     never loaded                                     on read
PRESENT        an entity (or list, for has-many) is cached      never
ABSENT         confirmed that no related entity exists          never
=============  ===============================================  ============

Instances live as long as the caller keeps them; there is no identity map
shared across queries.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar

from tessera.core.errors import MissingConfigError
from tessera.model.error_stack import ErrorStack
from tessera.model.properties import Property, cast

if TYPE_CHECKING:
    from tessera.context import StorageContext


class RelationState(str, Enum):
    UNRESOLVED = "unresolved"
    PRESENT = "present"
    ABSENT = "absent"


_ABSENT: Any = object()

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def snake_case(name: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", name).lower()


class Entity:
    """Base class for all entity types."""

    __table__: ClassVar[str | None] = None
    __ids__: ClassVar[tuple[str, ...]] = ("id",)
    __connection__: ClassVar[str | None] = None
    __transactions__: ClassVar[bool] = False

    properties: ClassVar[dict[str, Property]] = {}

    def __init__(
        self,
        identity: Any = None,
        values: Mapping[str, Any] | None = None,
        *,
        context: StorageContext | None = None,
    ):
        self._context = context
        self._errors = ErrorStack()
        self._relations: dict[str, Any] = {}
        self._values: dict[str, Any] = {}

        if values:
            self._fill(values)

        self._ids = self._normalize_identity(identity)
        self._values.update(self._ids)

    # -- Class-level metadata ---------------------------------------------

    @classmethod
    def entity_name(cls) -> str:
        """snake_case name used for default foreign keys and messages."""
        return snake_case(cls.__name__)

    @classmethod
    def table_name(cls) -> str:
        return cls.__table__ or f"{cls.entity_name()}s"

    @classmethod
    def get_property(cls, name: str) -> Property | None:
        return cls.properties.get(name)

    @classmethod
    def column_properties(cls) -> dict[str, Property]:
        return {k: p for k, p in cls.properties.items() if not p.is_relationship}

    # -- Identity ----------------------------------------------------------

    def _normalize_identity(self, identity: Any) -> dict[str, Any]:
        if identity is None:
            return {k: self._values[k] for k in self.__ids__ if self._values.get(k) is not None}
        if isinstance(identity, Mapping):
            items = [(k, identity.get(k)) for k in self.__ids__]
        elif isinstance(identity, Sequence) and not isinstance(identity, (str, bytes)):
            items = list(zip(self.__ids__, identity, strict=True))
        else:
            items = [(self.__ids__[0], identity)]
        return {k: cast(self.get_property(k), v) for k, v in items}

    def set_identity(self, identity: Any) -> Entity:
        """Assign the identity (used once a generated key is known)."""
        self._ids = self._normalize_identity(identity)
        self._values.update(self._ids)
        return self

    def ids(self) -> dict[str, Any]:
        """Identity as ``{field: value}``."""
        return dict(self._ids)

    @property
    def identity(self) -> tuple[Any, ...]:
        return tuple(self._ids.get(k) for k in self.__ids__)

    @property
    def persisted(self) -> bool:
        return len(self._ids) == len(self.__ids__) and all(v is not None for v in self._ids.values())

    @property
    def context(self) -> StorageContext:
        if self._context is None:
            raise MissingConfigError(
                "context",
                f"{type(self).__name__} is not attached to a StorageContext",
            )
        return self._context

    def attach(self, context: StorageContext) -> Entity:
        self._context = context
        return self

    @property
    def errors(self) -> ErrorStack:
        return self._errors

    # -- Values ------------------------------------------------------------

    def _fill(self, values: Mapping[str, Any]) -> None:
        for key, value in values.items():
            prop = self.get_property(key)
            if prop is not None and prop.is_relationship:
                continue
            self._values[key] = cast(prop, value)

    def refresh_with(self, values: Mapping[str, Any]) -> Entity:
        """Replace cached values (not relationships) with ``values``."""
        self._values = {}
        self._fill(values)
        self._values.update(self._ids)
        return self

    def refresh(self) -> Entity:
        """Reload values from storage. No-op for unsaved entities."""
        if not self.persisted:
            return self
        row = self.context.driver_for(type(self)).load(self)
        if row is not None:
            self.refresh_with(row)
        return self

    def get(self, name: str) -> Any:
        """Value of a column, or the resolved relationship for a
        relationship property."""
        prop = self.get_property(name)
        if prop is not None and prop.is_relationship:
            return self.relation(name)
        if name in self._values:
            return self._values[name]
        return prop.default if prop is not None else None

    def to_dict(self) -> dict[str, Any]:
        return dict(self._values)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        if name in self._values or name in type(self).properties:
            return self.get(name)
        raise AttributeError(f"{type(self).__name__} has no property {name!r}")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Entity):
            return NotImplemented
        return type(self) is type(other) and self.persisted and self.identity == other.identity

    def __hash__(self) -> int:
        return hash((type(self), self.identity))

    def __repr__(self) -> str:
        ids = ", ".join(f"{k}={v!r}" for k, v in self._ids.items())
        return f"{type(self).__name__}({ids})"

    # -- Relationships -----------------------------------------------------

    def relation_state(self, name: str) -> RelationState:
        if name not in self._relations:
            return RelationState.UNRESOLVED
        if self._relations[name] is _ABSENT:
            return RelationState.ABSENT
        return RelationState.PRESENT

    def relation(self, name: str) -> Any:
        """Resolved relationship value: an entity, ``None`` (confirmed
        absent), or a list for has-many.

        An UNRESOLVED relationship is loaded once through the context's
        executor and cached.
        """
        if name not in self._relations:
            self.context.executor.load_relation(self, name)
        value = self._relations.get(name, _ABSENT)
        return None if value is _ABSENT else value

    def set_relation(self, name: str, entity: Entity) -> Entity:
        self._relations[name] = entity
        return self

    def clear_relation(self, name: str) -> Entity:
        """Mark ``name`` as confirmed absent."""
        self._relations[name] = _ABSENT
        return self

    def set_relation_collection(self, name: str, entities: list[Entity]) -> Entity:
        self._relations[name] = list(entities)
        return self

    def forget_relation(self, name: str) -> Entity:
        """Return ``name`` to UNRESOLVED."""
        self._relations.pop(name, None)
        return self

    # -- Mutation ----------------------------------------------------------

    def set(self, values: Mapping[str, Any]) -> bool:
        """Update through the mutation pipeline."""
        return self.context.mutations.update(self, values)

    def delete(self) -> bool:
        """Delete through the mutation pipeline."""
        return self.context.mutations.delete(self)


__all__ = [
    "Entity",
    "RelationState",
    "snake_case",
]
