"""Tests for the engine - per-metric table resolution and merging."""

import pytest

from sheetforge.engine import Engine
from sheetforge.exceptions import NoCapableTableError
from sheetforge.factory import TableFactory
from sheetforge.models.columns import Column, TimeColumn
from sheetforge.models.definition import Definition, Filter, Ordering

from conftest import JAN_1, MAR_31, FakeExecutor, SimpleTable


class TestPlan:
    def test_metrics_grouped_per_table(self, engine):
        definition = Definition(
            metrics=("visits", "revenue", "order_count"), dimensions=("month",)
        )
        plan = engine.plan(definition)

        assert [(table.name, sub.metrics) for table, sub in plan] == [
            ("events", ("visits",)),
            ("orders", ("revenue", "order_count")),
        ]

    def test_sub_definitions_keep_everything_else(self, engine, q1):
        definition = q1.with_metrics(["visits", "revenue"]).add_filter(
            Filter(column="country", operator="=", value="US")
        )
        for _, sub in engine.plan(definition):
            assert sub.dimensions == definition.dimensions
            assert sub.filters == definition.filters
            assert (sub.start, sub.end) == (definition.start, definition.end)

    def test_same_named_tables_kept_apart(self):
        """Grouping is by table, not by table name."""
        executor = FakeExecutor()
        first = SimpleTable("events", [Column.count("visits")], executor)
        second = SimpleTable("events", [Column.count("signups")], executor)
        engine = Engine(TableFactory([first, second]))

        plan = engine.plan(Definition.make(["visits", "signups"]))
        assert [table for table, _ in plan] == [first, second]

    def test_no_capable_table(self, engine):
        with pytest.raises(NoCapableTableError):
            engine.plan(Definition.make("visits").add_dimension("order_status"))


class TestRun:
    def test_cross_table_by_month(self, engine, q1):
        """Visits and revenue come from different tables and merge by month."""
        records = engine.run(q1.with_metrics(["visits", "revenue"])).to_array()

        assert records == [
            {"month": "2023-01", "visits": 0, "revenue": 100.0},
            {"month": "2023-02", "visits": 5, "revenue": 75.5},
            {"month": "2023-03", "visits": 0, "revenue": 0.0},
        ]

    def test_cross_table_by_country(self, engine, q1):
        """Combinations only one table has carry only that table's metrics."""
        definition = q1.with_metrics(["visits", "revenue"]).set_dimensions(["country"])
        records = {r["country"]: r for r in engine.run(definition).to_array()}

        assert records["US"] == {"country": "US", "visits": 3, "revenue": 125.5}
        assert records["UK"] == {"country": "UK", "visits": 1, "revenue": 50.0}
        assert records["DE"] == {"country": "DE", "visits": 1}

    def test_filters_apply_to_every_table(self, engine, q1):
        definition = (
            q1.with_metrics(["visits", "revenue"])
            .set_dimensions(["country"])
            .add_filter(Filter(column="country", operator="in", value=["UK"]))
        )
        assert engine.run(definition).to_array() == [
            {"country": "UK", "visits": 1, "revenue": 50.0}
        ]

    def test_single_table_ordering(self, engine, q1):
        definition = (
            q1.set_dimensions(["country"])
            .add_ordering(Ordering(column="visits", direction="desc"))
        )
        records = engine.run(definition).to_array()
        assert records[0] == {"country": "US", "visits": 3}

    def test_ordering_with_zero_fill(self, engine, q1):
        """Ordered months put real rows first, in database order."""
        definition = q1.add_ordering(Ordering(column="visits", direction="desc"))
        assert engine.run(definition).to_array() == [
            {"month": "2023-02", "visits": 5},
            {"month": "2023-01", "visits": 0},
            {"month": "2023-03", "visits": 0},
        ]

    def test_no_dimensions(self, engine):
        records = engine.run(Definition.make(["visits", "revenue"])).to_array()
        assert records == [{"visits": 6, "revenue": 375.5}]

    def test_all_or_nothing(self):
        """A missing metric fails the whole run before any query is sent."""
        executor = FakeExecutor()
        engine = Engine(TableFactory([SimpleTable("events", [Column.count("visits")], executor)]))

        with pytest.raises(NoCapableTableError):
            engine.run(Definition.make(["visits", "revenue"]))
        assert executor.queries == []

    def test_executor_errors_propagate(self):
        class FailingExecutor(FakeExecutor):
            def execute(self, sql):
                raise RuntimeError("connection lost")

        table = SimpleTable(
            "events", [Column.count("visits"), TimeColumn.month("ts")], FailingExecutor()
        )
        engine = Engine(TableFactory([table]))
        definition = Definition(
            metrics=("visits",), dimensions=("month",), start=JAN_1, end=MAR_31
        )

        with pytest.raises(RuntimeError, match="connection lost"):
            engine.run(definition)


class TestSQL:
    def test_sql_per_table(self, engine, q1):
        sql = engine.sql(q1.with_metrics(["visits", "revenue"]))
        assert set(sql) == {"events", "orders"}
        assert "COUNT(*) AS metric_0" in sql["events"]
        assert "SUM(amount) AS metric_0" in sql["orders"]
