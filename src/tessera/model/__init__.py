"""Entity model: declarations, relationships, metadata, validation.

Modules
-------
entity        Entity base class + RelationState
properties    PropertyType, Property, cast/serialize
relations     belongs_to / has_one / has_many + relation handler table
metadata      MetadataRegistry (entity-type metadata provider)
validation    Validator and rule table
error_stack   ErrorStack
"""

from .entity import Entity, RelationState
from .error_stack import ErrorEntry, ErrorStack
from .metadata import EntityEvent, EntityMetadata, MetadataRegistry, ResolvedRelationship
from .properties import Property, PropertyType, cast
from .relations import RelationshipDescriptor, RelationType, belongs_to, has_many, has_one
from .validation import Validator

__all__ = [
    "Entity",
    "RelationState",
    "ErrorEntry",
    "ErrorStack",
    "EntityEvent",
    "EntityMetadata",
    "MetadataRegistry",
    "ResolvedRelationship",
    "Property",
    "PropertyType",
    "cast",
    "RelationshipDescriptor",
    "RelationType",
    "belongs_to",
    "has_many",
    "has_one",
    "Validator",
]
