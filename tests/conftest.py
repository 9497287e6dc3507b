"""Pytest fixtures for sheetforge tests."""

from collections.abc import Generator
from datetime import datetime
from pathlib import Path

import pytest
from sqlglot import exp

from sheetforge.engine import Engine
from sheetforge.executor.duckdb_executor import DuckDBExecutor
from sheetforge.factory import TableFactory
from sheetforge.models.columns import Column, TimeColumn
from sheetforge.models.definition import Definition
from sheetforge.models.query import QueryResult
from sheetforge.store import AnalyticsStore
from sheetforge.tables.base import Table

JAN_1 = datetime(2023, 1, 1)
MAR_31 = datetime(2023, 3, 31, 23, 59, 59)


@pytest.fixture
def sample_tables_yaml() -> str:
    """Two tables sharing country and month so metrics can be fanned out."""
    return """
tables:
  - name: events
    description: "Page visits"
    source: events
    timestamp: created_at
    columns:
      - name: visits
        type: count
      - name: country
        type: string
        expr: country
      - name: status_label
        type: map
        expr: status
        mapping:
          a: Active
          b: Blocked
        default: Other
      - type: time
        granularity: month
        expr: created_at
      - type: time
        granularity: date
        expr: created_at

  - name: orders
    description: "Completed and refunded orders"
    source: orders
    timestamp: created_at
    columns:
      - name: revenue
        type: sum
        expr: amount
      - name: order_count
        type: count
      - name: average_order
        type: average
        expr: amount
      - name: country
        type: string
        expr: country
      - name: order_status
        type: lookup
        expr: status
        mapping:
          completed: Completed
          refunded: Refunded
      - type: time
        granularity: month
        expr: created_at
"""


@pytest.fixture
def tables_dir(tmp_path: Path, sample_tables_yaml: str) -> Path:
    """Create a temporary tables directory with sample YAML."""
    path = tmp_path / "tables"
    path.mkdir()
    (path / "analytics.yaml").write_text(sample_tables_yaml)
    return path


@pytest.fixture
def sample_events_data() -> list[tuple]:
    """Five visits in february, one in april (outside the q1 range)."""
    return [
        (1, "US", "a", "2023-02-03 10:15:00"),
        (2, "US", "a", "2023-02-20 08:00:00"),
        (3, "US", "c", "2023-02-21 09:30:00"),
        (4, "UK", "b", "2023-02-22 12:00:00"),
        (5, "DE", "a", "2023-02-28 23:59:00"),
        (6, "US", "a", "2023-04-02 12:00:00"),
    ]


@pytest.fixture
def sample_orders_data() -> list[tuple]:
    return [
        (1, "US", 100.00, "completed", "2023-01-10 09:00:00"),
        (2, "UK", 50.00, "completed", "2023-02-11 14:00:00"),
        (3, "US", 25.50, "refunded", "2023-02-15 16:30:00"),
        (4, "DE", 200.00, "completed", "2023-05-01 10:00:00"),
    ]


def seed(executor: DuckDBExecutor, events: list[tuple], orders: list[tuple]) -> None:
    executor.conn.execute("""
        CREATE TABLE events (
            id INTEGER,
            country VARCHAR,
            status VARCHAR,
            created_at TIMESTAMP
        )
    """)
    executor.conn.executemany("INSERT INTO events VALUES (?, ?, ?, ?)", events)

    executor.conn.execute("""
        CREATE TABLE orders (
            id INTEGER,
            country VARCHAR,
            amount DECIMAL(10, 2),
            status VARCHAR,
            created_at TIMESTAMP
        )
    """)
    executor.conn.executemany("INSERT INTO orders VALUES (?, ?, ?, ?, ?)", orders)


@pytest.fixture
def db_with_data(
    sample_events_data: list[tuple], sample_orders_data: list[tuple]
) -> Generator[DuckDBExecutor, None, None]:
    """An in-memory DuckDB executor with events and orders loaded."""
    executor = DuckDBExecutor()
    seed(executor, sample_events_data, sample_orders_data)
    yield executor
    executor.close()


@pytest.fixture
def factory(tables_dir: Path, db_with_data: DuckDBExecutor) -> TableFactory:
    return TableFactory().load_directory(tables_dir, db_with_data)


@pytest.fixture
def engine(factory: TableFactory) -> Engine:
    return Engine(factory)


@pytest.fixture
def q1() -> Definition:
    """visits by month over jan-mar 2023."""
    return Definition(metrics=("visits",), dimensions=("month",), start=JAN_1, end=MAR_31)


@pytest.fixture
def database_file(
    tmp_path: Path, sample_events_data: list[tuple], sample_orders_data: list[tuple]
) -> str:
    """A DuckDB file with sample data, for the store and the cli."""
    path = str(tmp_path / "analytics.duckdb")
    with DuckDBExecutor(path) as executor:
        seed(executor, sample_events_data, sample_orders_data)
    return path


@pytest.fixture
def store_with_data(
    tables_dir: Path, database_file: str
) -> Generator[AnalyticsStore, None, None]:
    store = AnalyticsStore(tables_dir, database_file)
    yield store
    store.close()


class FakeExecutor:
    """Returns canned rows and remembers every sql string it was given."""

    def __init__(self, rows: list[dict] | None = None) -> None:
        self.rows = rows or []
        self.queries: list[str] = []

    def execute(self, sql: str) -> QueryResult:
        self.queries.append(sql)
        columns = list(self.rows[0]) if self.rows else []
        return QueryResult(
            sql=sql,
            columns=columns,
            data=[dict(row) for row in self.rows],
            row_count=len(self.rows),
            execution_time_ms=0.0,
        )


@pytest.fixture
def fake_executor() -> FakeExecutor:
    return FakeExecutor()


class SimpleTable(Table):
    """A hand-written table over a single relation."""

    def __init__(self, name, columns, executor, source=None, compiler=None) -> None:
        super().__init__(executor, compiler)
        self.name = name
        self.source = source or name
        self._columns = list(columns)

    def columns(self):
        return self._columns

    def base_relation(self, definition: Definition) -> exp.Select:
        return exp.Select().from_(self.source)


@pytest.fixture
def events_columns() -> list:
    return [
        Column.count("visits"),
        Column.string("country", "country"),
        Column.map("status_label", "status", {"a": "Active", "b": "Blocked"}, "Other"),
        TimeColumn.month("created_at"),
    ]


@pytest.fixture
def events_table(events_columns: list, fake_executor: FakeExecutor) -> SimpleTable:
    return SimpleTable("events", events_columns, fake_executor)
