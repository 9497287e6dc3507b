"""Tests for the AnalyticsStore facade."""

from datetime import date, datetime
from pathlib import Path

import pytest

from sheetforge.exceptions import NoCapableTableError
from sheetforge.models.definition import Filter, Ordering
from sheetforge.store import AnalyticsStore


class TestAnalyticsStore:
    def test_loads_tables(self, tables_dir: Path):
        with AnalyticsStore(tables_dir) as store:
            assert len(store.tables) == 2
            assert store.tables.find_by_name("orders") is not None

    def test_missing_directory(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            AnalyticsStore(tmp_path / "nope")

    def test_definition_parses_dates(self, tables_dir: Path):
        """A bare end date covers the whole day."""
        with AnalyticsStore(tables_dir) as store:
            definition = store.definition(["visits"], start="2023-01-01", end="2023-03-31")
        assert definition.start == datetime(2023, 1, 1)
        assert definition.end == datetime(2023, 3, 31, 23, 59, 59)

    def test_definition_accepts_date_objects(self, tables_dir: Path):
        with AnalyticsStore(tables_dir) as store:
            definition = store.definition(
                ["visits"], start=date(2023, 1, 1), end=datetime(2023, 1, 2, 6)
            )
        assert definition.start == datetime(2023, 1, 1)
        assert definition.end == datetime(2023, 1, 2, 6)

    def test_definition_with_iso_datetime(self, tables_dir: Path):
        with AnalyticsStore(tables_dir) as store:
            definition = store.definition(["visits"], end="2023-01-02T06:30:00")
        assert definition.end == datetime(2023, 1, 2, 6, 30)

    def test_list_tables(self, tables_dir: Path):
        with AnalyticsStore(tables_dir) as store:
            tables = store.list_tables()
        assert tables[0] == {
            "name": "events",
            "source": "events",
            "columns": 5,
            "description": "Page visits",
        }

    def test_list_columns(self, tables_dir: Path):
        with AnalyticsStore(tables_dir) as store:
            columns = store.list_columns()
        names = [(c["table"], c["name"], c["type"]) for c in columns]
        assert ("events", "month", "time") in names
        assert ("orders", "revenue", "sum") in names

    def test_validate(self, tables_dir: Path):
        with AnalyticsStore(tables_dir) as store:
            assert store.validate() == []

    def test_validate_reports_bad_expressions(self, tmp_path: Path):
        (tmp_path / "bad.yaml").write_text(
            "tables:\n"
            "  - name: broken\n"
            "    source: t\n"
            "    columns:\n"
            "      - {name: total, type: sum, expr: '(amount'}\n"
        )
        with AnalyticsStore(tmp_path) as store:
            errors = store.validate()
        assert len(errors) == 1
        assert "'broken'" in errors[0]
        assert "'total'" in errors[0]


class TestAnalyticsStoreWithData:
    def test_query(self, store_with_data: AnalyticsStore):
        records = store_with_data.query(
            ["visits", "revenue"], dimensions=["month"], start="2023-01-01", end="2023-03-31"
        )
        assert records == [
            {"month": "2023-01", "visits": 0, "revenue": 100.0},
            {"month": "2023-02", "visits": 5, "revenue": 75.5},
            {"month": "2023-03", "visits": 0, "revenue": 0.0},
        ]

    def test_query_with_filters_and_orderings(self, store_with_data: AnalyticsStore):
        records = store_with_data.query(
            ["order_count"],
            dimensions=["country"],
            filters=[Filter(column="country", operator="!=", value="DE")],
            orderings=[Ordering(column="order_count", direction="desc")],
        )
        assert records == [
            {"country": "US", "order_count": 2},
            {"country": "UK", "order_count": 1},
        ]

    def test_run_returns_sheet(self, store_with_data: AnalyticsStore):
        sheet = store_with_data.run(store_with_data.definition(["visits", "revenue"]))
        assert sheet.metrics == ["visits", "revenue"]

    def test_sql(self, store_with_data: AnalyticsStore):
        sql = store_with_data.sql(store_with_data.definition(["average_order"]))
        assert list(sql) == ["orders"]
        assert "AVG(amount)" in sql["orders"]

    def test_unknown_metric(self, store_with_data: AnalyticsStore):
        with pytest.raises(NoCapableTableError):
            store_with_data.query(["bounce_rate"])
