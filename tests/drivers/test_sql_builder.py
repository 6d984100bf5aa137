"""Tests for QuerySpec → SQL translation."""

from __future__ import annotations

import pytest

from tessera.core.dialect import get_dialect
from tessera.drivers.sql import SelectBuilder, identity_clause, prefix_column
from tessera.query.filters import membership
from tessera.query.spec import QuerySpec
from tests._support.entities import Customer, Order


def table_of(entity_type):
    return entity_type.table_name()


def build(spec, dialect="sqlite"):
    return SelectBuilder(spec, get_dialect(dialect), table_of)


class TestPrefixColumn:
    @pytest.mark.parametrize(
        "column, expected",
        [
            ("status", "orders.status"),
            ("customers.name", "customers.name"),
            ("COUNT(*)", "COUNT(*)"),
            ("*", "*"),
        ],
    )
    def test_prefix(self, column, expected):
        assert prefix_column(column, "orders") == expected


class TestSelect:
    def test_bare_select(self):
        stmt = build(QuerySpec(Order)).select()
        assert stmt.sql == "SELECT orders.* FROM orders LIMIT 100 OFFSET 0"
        assert stmt.params == ()

    def test_clause_order_with_join(self):
        spec = (
            QuerySpec(Order)
            .join(Customer, "customer_id", "id")
            .where("status", "open")
            .where("customers.name", "Ada")
            .sort("total desc, id asc")
            .limit(5)
            .start(10)
        )
        stmt = build(spec).select()
        assert stmt.sql == (
            "SELECT orders.* FROM orders "
            "JOIN customers ON orders.customer_id = customers.id "
            "WHERE orders.status = ? AND customers.name = ? "
            "ORDER BY orders.total DESC, orders.id ASC "
            "LIMIT 5 OFFSET 10"
        )
        assert stmt.params == ("open", "Ada")

    def test_postgres_placeholders(self):
        stmt = build(QuerySpec(Order).where("total", 10, ">"), "postgresql").select()
        assert "WHERE orders.total > %s" in stmt.sql

    def test_mysql_pagination(self):
        stmt = build(QuerySpec(Order).limit(5).start(10), "mysql").select()
        assert stmt.sql.endswith("LIMIT 10, 5")


class TestWhereTerms:
    def test_null_equality(self):
        sql, params = build(QuerySpec(Order).where("customer_id", None)).where()
        assert sql == "orders.customer_id IS NULL"
        assert params == ()

    def test_null_comparison(self):
        sql, _ = build(QuerySpec(Order).where("customer_id", None, "!=")).where()
        assert sql == "orders.customer_id IS NOT NULL"

    def test_membership(self):
        sql, params = build(QuerySpec(Order).filter(membership("id", [1, 2, 3]))).where()
        assert sql == "orders.id IN (?, ?, ?)"
        assert params == (1, 2, 3)

    def test_empty_membership(self):
        assert build(QuerySpec(Order).where("id", [], "in")).where()[0] == "1 = 0"
        assert build(QuerySpec(Order).where("id", [], "not in")).where()[0] == "1 = 1"

    def test_raw_parenthesised(self):
        sql, params = build(QuerySpec(Order).where("total > 5 OR status = 'closed'")).where()
        assert sql == "(total > 5 OR status = 'closed')"
        assert params == ()

    def test_structured_values_serialised(self):
        _, params = build(QuerySpec(Order).where("tags", ["rush"])).where()
        assert params == ('["rush"]',)


class TestAggregate:
    def test_ignores_sort_and_pagination(self):
        spec = QuerySpec(Order).where("status", "open").sort("id desc").limit(1).start(3)
        stmt = build(spec).aggregate("sum", "total")
        assert stmt.sql == "SELECT SUM(orders.total) FROM orders WHERE orders.status = ?"
        assert stmt.params == ("open",)

    def test_count_star_with_join(self):
        spec = QuerySpec(Order).join(Customer, "customer_id", "id")
        stmt = build(spec).aggregate("count")
        assert stmt.sql == "SELECT COUNT(*) FROM orders JOIN customers ON orders.customer_id = customers.id"


class TestIdentityClause:
    def test_composite(self):
        sql, params = identity_clause({"order_id": 1, "line": 2}, get_dialect("sqlite"))
        assert sql == "order_id = ? AND line = ?"
        assert params == (1, 2)
