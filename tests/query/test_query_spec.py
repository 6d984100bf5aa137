"""Tests for tessera.query.spec."""

from __future__ import annotations

import pytest

from tessera.core.errors import ValidationError
from tessera.query.filters import Comparison, Equality, Raw
from tessera.query.spec import DEFAULT_LIMIT, MAX_LIMIT, Join, QuerySpec
from tests._support.entities import Customer, Item, Order


class TestDefaults:
    def test_fresh_spec(self):
        spec = QuerySpec(Order)
        assert spec.get_entity_type() is Order
        assert spec.get_limit() == DEFAULT_LIMIT == 100
        assert spec.get_start() == 0
        assert spec.get_sort() == []
        assert spec.get_where() == []
        assert spec.get_joins() == []
        assert spec.get_with() == []

    def test_mutators_chain(self):
        spec = QuerySpec(Order)
        assert spec.limit(5).start(2).sort("id asc").where("status", "open").with_("items") is spec


class TestPagination:
    @pytest.mark.parametrize("requested, expected", [(10, 10), (1000, 1000), (1001, MAX_LIMIT), (10**9, MAX_LIMIT)])
    def test_limit_is_clamped_not_rejected(self, requested, expected):
        assert QuerySpec(Order).limit(requested).get_limit() == expected

    @pytest.mark.parametrize("requested, expected", [(0, 0), (25, 25), (-1, 0), (-500, 0)])
    def test_start_never_negative(self, requested, expected):
        assert QuerySpec(Order).start(requested).get_start() == expected


class TestSort:
    def test_pairs_in_order(self):
        spec = QuerySpec(Customer).sort("name asc, age desc")
        assert spec.get_sort() == [("name", "asc"), ("age", "desc")]

    def test_direction_is_case_insensitive(self):
        assert QuerySpec(Customer).sort("name DESC").get_sort() == [("name", "desc")]

    def test_malformed_pairs_dropped(self):
        spec = QuerySpec(Customer).sort("name, age desc, id up, total asc extra")
        assert spec.get_sort() == [("age", "desc")]

    def test_replaces_previous_sort(self):
        spec = QuerySpec(Customer).sort("name asc").sort("id desc")
        assert spec.get_sort() == [("id", "desc")]

    def test_empty_string(self):
        assert QuerySpec(Customer).sort("").get_sort() == []


class TestWhere:
    def test_mapping_shape(self):
        spec = QuerySpec(Customer).where({"name": "Bob", "email": "bob@example.com"})
        assert spec.get_where() == [Equality("name", "Bob"), Equality("email", "bob@example.com")]

    def test_pair_shape(self):
        assert QuerySpec(Customer).where("name", "Bob").get_where() == [Equality("name", "Bob")]

    def test_triple_shape(self):
        assert QuerySpec(Order).where("total", 100, ">").get_where() == [Comparison("total", ">", 100)]

    def test_unknown_operator_fails_at_build_time(self):
        spec = QuerySpec(Order)
        with pytest.raises(ValidationError):
            spec.where("total", 100, "~~")
        assert spec.get_where() == []

    def test_raw_shape(self):
        assert QuerySpec(Order).where("total > 100").get_where() == [Raw("total > 100")]

    def test_none_value_is_still_an_equality(self):
        assert QuerySpec(Order).where("customer_id", None).get_where() == [Equality("customer_id", None)]

    def test_filters_accumulate(self):
        spec = (
            QuerySpec(Order)
            .where({"status": "open"})
            .where("customer_id", 1)
            .where("total", 10, ">=")
            .where("tags IS NOT NULL")
        )
        assert [t.as_tuple() for t in spec.get_where()] == [
            ("status", "open"),
            ("customer_id", 1),
            ("total", 10, ">="),
            ("tags IS NOT NULL",),
        ]

    def test_accessor_returns_copy(self):
        spec = QuerySpec(Order).where("status", "open")
        spec.get_where().clear()
        assert len(spec.get_where()) == 1


class TestJoinAndWith:
    def test_join_appends_without_validation(self):
        spec = QuerySpec(Order).join(Customer, "customer_id", "id").join(Item, "nope", "nothing")
        assert spec.get_joins() == [Join(Customer, "customer_id", "id"), Join(Item, "nope", "nothing")]

    def test_with_is_idempotent_and_ordered(self):
        spec = QuerySpec(Order).with_("items").with_("customer").with_("items")
        assert spec.get_with() == ["items", "customer"]
