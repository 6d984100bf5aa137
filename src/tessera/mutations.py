"""Single-entity mutation pipeline.

Every create, update and delete (including each entity touched by the
executor's bulk ``set`` / ``delete``) passes through here:

::

    validate ─► before-hook ─► driver write ─► refresh ─► after-hook
                   │
                   └─ event.stop() ─► False, nothing written

    create:  CREATING / CREATED
    update:  UPDATING / UPDATED
    delete:  DELETING / DELETED

Entity types with ``__transactions__ = True`` get the write and both hooks
wrapped in ``driver.transaction()``; an exception from a hook rolls the
write back.

Outcomes:
    - ``True`` / ``False`` (an ``Entity`` or ``None`` for :meth:`create`)
    - validation failures land on ``entity.errors`` as
      ``validation.<rule>`` entries
    - ``DriverError`` propagates unchanged

Examples:
    >>> def no_empty_orders(event):
    ...     if not event.values.get("total"):
    ...         event.stop()
    >>> context.registry.listen(Order, "creating", no_empty_orders)
    >>> context.mutations.create(Order, {"total": 0}) is None
    True

Tags:
    mutations, hooks, validation, transactions, tessera
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager, nullcontext
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from tessera.core.logging import get_logger
from tessera.model.entity import Entity
from tessera.model.metadata import EntityEvent, EntityMetadata

if TYPE_CHECKING:
    from tessera.context import StorageContext
    from tessera.drivers.base import Driver

logger = get_logger(__name__)


@dataclass
class MutationEvent:
    """Passed to every lifecycle hook.

    Before-hooks may edit ``values`` (it is what gets written) or call
    :meth:`stop` to veto the mutation.
    """

    entity: Entity
    event: EntityEvent
    values: dict[str, Any] = field(default_factory=dict)
    stopped: bool = False

    def stop(self) -> None:
        self.stopped = True


def _field_name(name: str) -> str:
    return name.replace("_", " ").capitalize()


class MutationPipeline:
    def __init__(self, context: StorageContext):
        self._context = context

    # -- Plumbing ----------------------------------------------------------

    def _meta(self, entity_type: type[Entity]) -> EntityMetadata:
        return self._context.registry.get(entity_type)

    @contextmanager
    def _unit(self, meta: EntityMetadata, driver: Driver) -> Iterator[None]:
        scope = driver.transaction(meta.entity_type) if meta.transactions else nullcontext()
        with scope:
            yield

    def _fire(self, meta: EntityMetadata, event: MutationEvent) -> MutationEvent:
        for hook in meta.hooks.get(event.event, []):
            hook(event)
            if event.stopped:
                logger.debug("mutation_stopped", entity=meta.name, lifecycle_event=event.event.value)
                break
        return event

    def _validate(self, meta: EntityMetadata, entity: Entity, values: dict[str, Any]) -> dict[str, Any] | None:
        """Normalised ``values`` or None; failures are pushed onto ``entity.errors``."""
        if meta.validator is None:
            return values

        passed, normalised = meta.validator.validate(values)
        if passed:
            return normalised

        for field_key, rule in meta.validator.failures:
            name = field_key or ""
            entity.errors.append(f"validation.{rule}", field=name, field_name=_field_name(name))
        logger.debug(
            "validation_failed",
            entity=meta.name,
            failures=[f"{f}:{r}" for f, r in meta.validator.failures],
        )
        return None

    # -- Operations --------------------------------------------------------

    def create(self, entity_type: type[Entity], values: Mapping[str, Any]) -> Entity | None:
        """Build and insert a new entity; None when invalid or vetoed."""
        entity = entity_type(values=values, context=self._context)
        return entity if self.insert(entity) else None

    def insert(self, entity: Entity) -> bool:
        """Insert an unsaved entity built by the caller.

        On success the entity holds its (possibly generated) identity.
        """
        entity_type = type(entity)
        meta = self._meta(entity_type)
        driver = self._context.driver_for(entity_type)
        entity.attach(self._context)
        entity.errors.clear()

        values = self._validate(meta, entity, entity.to_dict())
        if values is None:
            return False

        with self._unit(meta, driver):
            event = self._fire(meta, MutationEvent(entity, EntityEvent.CREATING, values))
            if event.stopped:
                return False

            driver.create(entity_type, event.values)

            if not entity.persisted and len(meta.id_fields) == 1:
                id_field = meta.id_fields[0]
                entity.set_identity(driver.get_generated_identity(entity_type, id_field))

            entity.refresh_with({**event.values, **entity.ids()})
            self._fire(meta, MutationEvent(entity, EntityEvent.CREATED, event.values))

        logger.debug("entity_created", entity=meta.name, identity=entity.identity)
        return True

    def update(self, entity: Entity, values: Mapping[str, Any]) -> bool:
        entity_type = type(entity)
        meta = self._meta(entity_type)
        driver = self._context.driver_for(entity_type)
        entity.errors.clear()

        if not entity.persisted:
            logger.debug("update_skipped", entity=meta.name, reason="not persisted")
            return False

        merged = self._validate(meta, entity, {**entity.to_dict(), **values})
        if merged is None:
            return False
        changes = {key: merged[key] for key in values}

        with self._unit(meta, driver):
            event = self._fire(meta, MutationEvent(entity, EntityEvent.UPDATING, changes))
            if event.stopped:
                return False

            driver.update(entity_type, entity.ids(), event.values)
            entity.refresh_with({**entity.to_dict(), **event.values})
            self._fire(meta, MutationEvent(entity, EntityEvent.UPDATED, event.values))

        return True

    def delete(self, entity: Entity) -> bool:
        entity_type = type(entity)
        meta = self._meta(entity_type)
        driver = self._context.driver_for(entity_type)

        if not entity.persisted:
            return False

        with self._unit(meta, driver):
            event = self._fire(meta, MutationEvent(entity, EntityEvent.DELETING))
            if event.stopped:
                return False

            deleted = driver.delete(entity)
            if deleted:
                self._fire(meta, MutationEvent(entity, EntityEvent.DELETED))

        return deleted


__all__ = [
    "MutationEvent",
    "MutationPipeline",
]
