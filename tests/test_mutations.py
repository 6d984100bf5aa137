"""Tests for the mutation pipeline (validation, hooks, transactions)."""

from __future__ import annotations

import pytest

from tessera.core.errors import DriverError
from tessera.model import EntityEvent
from tessera.mutations import MutationEvent
from tessera.query.spec import QuerySpec
from tests._support.entities import Customer, Item, Order


class TestCreate:
    def test_create_assigns_generated_identity(self, fake_context, recording_driver):
        customer = fake_context.mutations.create(Customer, {"name": "Dora", "email": "DORA@example.com "})
        assert customer is not None
        assert customer.id == 101
        assert customer.persisted
        assert customer.email == "dora@example.com"
        assert recording_driver.calls == [("create", Customer), ("get_generated_identity", Customer)]

    def test_invalid_values_are_not_written(self, fake_context, recording_driver):
        customer = Customer(values={"name": "", "email": "nope"}, context=fake_context)
        assert fake_context.mutations.insert(customer) is False
        assert customer.errors.length() == 2
        assert customer.errors.has("name")
        assert customer.errors.messages() == ["Name is missing", "Email must be a valid email address"]
        assert recording_driver.calls == []

    def test_create_returns_none_when_invalid(self, fake_context):
        assert fake_context.mutations.create(Customer, {"email": "x@example.com"}) is None

    def test_optional_field_may_be_omitted(self, fake_context, recording_driver):
        customer = fake_context.mutations.create(Customer, {"name": "Dora"})
        assert customer is not None
        assert customer.errors.length() == 0
        assert "email" not in recording_driver.tables[Customer][-1]

    def test_creating_hook_can_veto(self, fake_context, recording_driver):
        fake_context.registry.listen(Order, EntityEvent.CREATING, lambda event: event.stop())
        assert fake_context.mutations.create(Order, {"status": "open"}) is None
        assert recording_driver.calls_to("create") == 0

    def test_creating_hook_can_edit_values(self, fake_context, recording_driver):
        def stamp(event: MutationEvent) -> None:
            event.values["total"] = 0.0

        fake_context.registry.listen(Order, "creating", stamp)
        order = fake_context.mutations.create(Order, {"status": "open"})
        assert order.total == 0.0
        assert recording_driver.tables[Order][-1]["total"] == 0.0

    def test_created_hook_sees_identity(self, fake_context):
        seen = []
        fake_context.registry.listen(Order, "created", lambda event: seen.append(event.entity.id))
        order = fake_context.mutations.create(Order, {"status": "open"})
        assert seen == [order.id]


class TestUpdate:
    def test_update_changes_values(self, fake_context, recording_driver):
        order = fake_context.executor.find(Order, 1)
        assert order.set({"status": "closed"}) is True
        assert order.status == "closed"
        assert recording_driver.tables[Order][0]["status"] == "closed"

    def test_update_validates_merged_values(self, fake_context, recording_driver):
        order = fake_context.executor.find(Order, 1)
        assert order.set({"status": "lost"}) is False
        assert order.errors.at(0).error == "validation.enum"
        assert recording_driver.calls_to("update") == 0

    def test_unsaved_entity_not_updated(self, fake_context, recording_driver):
        assert fake_context.mutations.update(Order(values={"status": "open"}), {"total": 1}) is False
        assert recording_driver.calls_to("update") == 0

    def test_null_optional_column_does_not_block_update(self, fake_context, recording_driver):
        recording_driver.tables[Customer].append({"id": 4, "name": "Eve", "email": None})
        assert fake_context.executor.find(Customer, 4).set({"name": "Evelyn"}) is True
        assert recording_driver.tables[Customer][-1] == {"id": 4, "name": "Evelyn", "email": None}

    def test_hooks_fire_in_order(self, fake_context):
        events = []
        for name in ("updating", "updated"):
            fake_context.registry.listen(Order, name, lambda event: events.append(event.event))
        fake_context.executor.find(Order, 2).set({"total": 1.0})
        assert events == [EntityEvent.UPDATING, EntityEvent.UPDATED]


class TestDelete:
    def test_delete(self, fake_context, recording_driver):
        assert fake_context.executor.find(Item, 3).delete() is True
        assert [r["id"] for r in recording_driver.tables[Item]] == [1, 2]

    def test_deleting_hook_veto(self, fake_context, recording_driver):
        fake_context.registry.listen(Item, "deleting", lambda event: event.stop())
        assert fake_context.executor.delete(QuerySpec(Item)) == 0
        assert len(recording_driver.tables[Item]) == 3

    def test_bulk_delete_counts_only_unvetoed(self, fake_context, recording_driver):
        def keep_first(event):
            if event.entity.id == 1:
                event.stop()

        fake_context.registry.listen(Item, "deleting", keep_first)
        assert fake_context.executor.delete(QuerySpec(Item)) == 2
        assert [r["id"] for r in recording_driver.tables[Item]] == [1]


class TestRelationalPipeline:
    def test_create_against_sqlite(self, context, sqlite_conn):
        customer = context.mutations.create(Customer, {"name": "Dora", "email": "dora@example.com"})
        assert customer.id == 4
        assert sqlite_conn.execute("SELECT email FROM customers WHERE id = 4").fetchone()[0] == "dora@example.com"

    def test_driver_error_propagates(self, context):
        with pytest.raises(DriverError):
            context.mutations.create(Item, {"order_id": 999, "sku": "X"})

    def test_transactional_type_rolls_back_on_hook_failure(self, context, sqlite_conn):
        context.registry.get(Customer).transactions = True

        def explode(event):
            raise RuntimeError("after-hook failed")

        context.registry.listen(Customer, "created", explode)
        with pytest.raises(RuntimeError):
            context.mutations.create(Customer, {"name": "Dora", "email": "dora@example.com"})
        assert sqlite_conn.execute("SELECT COUNT(*) FROM customers").fetchone()[0] == 3

    def test_non_transactional_write_commits_before_hook(self, context, sqlite_conn):
        def explode(event):
            raise RuntimeError("late")

        context.registry.listen(Customer, "created", explode)
        with pytest.raises(RuntimeError):
            context.mutations.create(Customer, {"name": "Dora", "email": "dora@example.com"})
        assert sqlite_conn.execute("SELECT COUNT(*) FROM customers").fetchone()[0] == 4
