"""Declared entity properties and value casting."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from tessera.model.relations import RelationshipDescriptor


class PropertyType(str, Enum):
    """Semantic type of a stored value."""

    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    DATE = "date"
    ARRAY = "array"
    OBJECT = "object"
    ANY = "any"


@dataclass(frozen=True)
class Property:
    """A declared property.

    ``rules`` is a validation chain (``"required|string:5"``) applied by the
    mutation pipeline. Relationship properties carry a ``relation`` and are
    never persisted as columns.
    """

    type: PropertyType = PropertyType.ANY
    rules: str | None = None
    default: Any = None
    relation: RelationshipDescriptor | None = None

    @property
    def is_relationship(self) -> bool:
        return self.relation is not None


_TRUE_STRINGS = frozenset({"1", "true", "yes", "on", "y"})


def cast(prop: Property | None, value: Any) -> Any:
    """Convert a raw storage value to the property's semantic type.

    ``None`` is never cast. Undeclared properties (``prop is None``) pass
    through unchanged.
    """
    if value is None or prop is None:
        return value

    match prop.type:
        case PropertyType.STRING:
            return value if isinstance(value, str) else str(value)
        case PropertyType.INTEGER:
            return int(value)
        case PropertyType.FLOAT:
            return float(value)
        case PropertyType.BOOLEAN:
            if isinstance(value, str):
                return value.strip().lower() in _TRUE_STRINGS
            return bool(value)
        case PropertyType.DATE:
            if isinstance(value, (datetime, date)):
                return value
            if isinstance(value, (int, float)):
                return datetime.fromtimestamp(value)
            return datetime.fromisoformat(str(value))
        case PropertyType.ARRAY | PropertyType.OBJECT:
            if isinstance(value, (str, bytes)):
                return json.loads(value)
            return value
        case _:
            return value


def serialize(value: Any) -> Any:
    """Convert a Python value to something every DB-API driver binds."""
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


__all__ = [
    "PropertyType",
    "Property",
    "cast",
    "serialize",
]
