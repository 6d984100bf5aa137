"""tessera: query execution and batched relationship hydration.

Quick start::

    from tessera import StorageContext, QuerySpec, Entity, Property, PropertyType, has_many

    class Order(Entity):
        properties = {
            "id": Property(PropertyType.INTEGER),
            "total": Property(PropertyType.FLOAT),
            "items": has_many("Item"),
        }

    context = StorageContext.from_settings()
    context.register(Order, Item)
    orders = context.executor.execute(QuerySpec(Order).with_("items"))

Packages
--------
core        errors, logging, settings, dialects, protocols
query       QuerySpec and filter terms
model       Entity, properties, relationships, metadata, validation
drivers     Driver interface, RelationalDriver, connections
"""

from tessera.context import StorageContext
from tessera.core.errors import (
    ConfigError,
    ConnectionNotFoundError,
    DriverError,
    MissingConfigError,
    TesseraError,
    ValidationError,
)
from tessera.drivers import ConnectionManager, Driver, RelationalDriver, sqlite_connection
from tessera.executor import QueryExecutor
from tessera.model import (
    Entity,
    EntityEvent,
    ErrorStack,
    MetadataRegistry,
    Property,
    PropertyType,
    RelationState,
    RelationType,
    Validator,
    belongs_to,
    has_many,
    has_one,
)
from tessera.mutations import MutationEvent, MutationPipeline
from tessera.query import DEFAULT_LIMIT, MAX_LIMIT, QuerySpec
from tessera.results import ResultSequence

__version__ = "0.1.0"

__all__ = [
    "StorageContext",
    "ConfigError",
    "ConnectionNotFoundError",
    "DriverError",
    "MissingConfigError",
    "TesseraError",
    "ValidationError",
    "ConnectionManager",
    "Driver",
    "RelationalDriver",
    "sqlite_connection",
    "QueryExecutor",
    "Entity",
    "EntityEvent",
    "ErrorStack",
    "MetadataRegistry",
    "Property",
    "PropertyType",
    "RelationState",
    "RelationType",
    "Validator",
    "belongs_to",
    "has_many",
    "has_one",
    "MutationEvent",
    "MutationPipeline",
    "DEFAULT_LIMIT",
    "MAX_LIMIT",
    "QuerySpec",
    "ResultSequence",
]
