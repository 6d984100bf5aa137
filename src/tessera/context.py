"""Explicit storage context.

A ``StorageContext`` replaces process-wide configuration: it owns the
metadata registry, the connection manager and the active driver(s), and
lazily builds the executor and mutation pipeline bound to them. Entities
carry a reference to the context that produced them.

Architecture::

    StorageContext
    ├── registry     MetadataRegistry
    ├── connections  ConnectionManager
    ├── driver       default Driver  (+ per-entity-type overrides)
    ├── executor     QueryExecutor    (lazy)
    └── mutations    MutationPipeline (lazy)

Examples:
    >>> context = StorageContext.from_settings(TesseraSettings(database_url="sqlite:///shop.db"))
    >>> context.register(Customer, Order, Item)
    >>> orders = context.executor.execute(QuerySpec(Order).with_("items"))

    Test doubles per entity type:

    >>> context.use_driver(Order, RecordingDriver())

Tags:
    context, configuration, dependency-injection, tessera
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from tessera.core.errors import MissingConfigError
from tessera.core.logging import configure_logging, get_logger
from tessera.drivers.base import Driver
from tessera.drivers.connections import ConnectionManager
from tessera.model.metadata import MetadataRegistry

if TYPE_CHECKING:
    from tessera.core.settings import TesseraSettings
    from tessera.executor import QueryExecutor
    from tessera.model.entity import Entity
    from tessera.mutations import MutationPipeline

logger = get_logger(__name__)


class StorageContext:
    def __init__(
        self,
        driver: Driver | None = None,
        connections: ConnectionManager | None = None,
        registry: MetadataRegistry | None = None,
    ):
        self.registry = registry or MetadataRegistry()
        self.connections = connections or ConnectionManager()
        self._driver = driver
        self._overrides: dict[type[Entity], Driver] = {}
        self._executor: QueryExecutor | None = None
        self._mutations: MutationPipeline | None = None

    @classmethod
    def from_settings(cls, settings: TesseraSettings | None = None, *, configure_logs: bool = False) -> StorageContext:
        """Relational context on ``settings.database_url``.

        Settings are read from the environment when not given.
        """
        from tessera.core.settings import TesseraSettings
        from tessera.drivers.relational import RelationalDriver

        settings = settings or TesseraSettings()
        if configure_logs:
            configure_logging(level=settings.log_level, json_format=settings.json_logs)

        context = cls()
        context.connections.from_url(
            settings.database_url,
            settings.default_connection,
            echo=settings.echo_sql,
        )
        context.use_driver(None, RelationalDriver(context.connections, context.registry))
        logger.debug("context_created", connection=settings.default_connection)
        return context

    # -- Drivers -----------------------------------------------------------

    def use_driver(self, entity_type: type[Entity] | None, driver: Driver) -> StorageContext:
        """Set the default driver (``entity_type=None``) or a per-type override."""
        if entity_type is None:
            self._driver = driver
        else:
            self._overrides[entity_type] = driver
        return self

    def driver_for(self, entity_type: type[Entity]) -> Driver:
        """Driver configured for ``entity_type``.

        Raises:
            MissingConfigError: when neither an override nor a default exists.
        """
        driver = self._overrides.get(entity_type, self._driver)
        if driver is None:
            raise MissingConfigError(
                "driver",
                f"No driver configured for {entity_type.__name__}",
            ).with_context(entity=entity_type.entity_name())
        return driver

    @property
    def driver(self) -> Driver | None:
        return self._driver

    # -- Collaborators -----------------------------------------------------

    def register(self, *entity_types: type[Entity]) -> StorageContext:
        self.registry.register(*entity_types)
        return self

    @property
    def executor(self) -> QueryExecutor:
        if self._executor is None:
            from tessera.executor import QueryExecutor

            self._executor = QueryExecutor(self)
        return self._executor

    @property
    def mutations(self) -> MutationPipeline:
        if self._mutations is None:
            from tessera.mutations import MutationPipeline

            self._mutations = MutationPipeline(self)
        return self._mutations

    def close(self) -> None:
        self.connections.close()

    def __enter__(self) -> StorageContext:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


__all__ = [
    "StorageContext",
]
