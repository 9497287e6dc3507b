"""Main AnalyticsStore interface for sheetforge."""

from collections.abc import Sequence
from datetime import date, datetime
from pathlib import Path
from typing import Any

from sheetforge.compiler.sql_builder import SQLCompiler
from sheetforge.config import get_settings
from sheetforge.engine import Engine
from sheetforge.executor.duckdb_executor import DuckDBExecutor
from sheetforge.factory import TableFactory
from sheetforge.models.definition import Definition, Filter, Ordering
from sheetforge.results import Sheet


class AnalyticsStore:
    """Wires an executor, the yaml-declared tables and an engine together.

    the engine itself is happy with any TableFactory - this is the
    batteries-included setup the cli and most scripts want.
    """

    def __init__(
        self,
        tables_path: str | Path | None = None,
        database_path: str | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            tables_path: Directory (or single file) of table schema YAML.
                Defaults to the configured tables_dir.
            database_path: Path to DuckDB file, or None for the configured
                database (in-memory if that is unset too).
        """
        settings = get_settings()
        self.tables_path = Path(tables_path or settings.tables_dir)
        self.executor = DuckDBExecutor(database_path or settings.database_path)
        self.compiler = SQLCompiler(settings.dialect)

        # load and validate schemas upfront - fail fast if there are problems
        self.tables = TableFactory().load_directory(self.tables_path, self.executor, self.compiler)
        self.engine = Engine(self.tables)

    def definition(
        self,
        metrics: Sequence[str],
        dimensions: Sequence[str] | None = None,
        filters: Sequence[Filter] | None = None,
        orderings: Sequence[Ordering] | None = None,
        start: str | date | datetime | None = None,
        end: str | date | datetime | None = None,
    ) -> Definition:
        """Build a definition, accepting ISO strings and dates for the range."""
        return Definition(
            metrics=tuple(metrics),
            dimensions=tuple(dimensions or ()),
            filters=tuple(filters or ()),
            orderings=tuple(orderings or ()),
            start=self._parse_datetime(start) if start else None,
            end=self._parse_datetime(end, end_of_day=True) if end else None,
        )

    def run(self, definition: Definition) -> Sheet:
        return self.engine.run(definition)

    def query(self, metrics: Sequence[str], **kwargs: Any) -> list[dict[str, Any]]:
        """Shortcut: build a definition, run it, return flat records."""
        return self.run(self.definition(metrics, **kwargs)).to_array()

    def sql(self, definition: Definition) -> dict[str, str]:
        """SQL per table without executing anything."""
        return self.engine.sql(definition)

    def list_tables(self) -> list[dict]:
        return [
            {
                "name": table.name,
                "source": table.schema.source,
                "columns": len(table.column_names()),
                "description": table.schema.description,
            }
            for table in self.tables
        ]

    def list_columns(self) -> list[dict]:
        columns = []
        for table in self.tables:
            for spec in table.schema.columns:
                columns.append(
                    {
                        "name": spec.column_name,
                        "type": spec.type.value,
                        "table": table.name,
                        "description": spec.description,
                    }
                )
        return columns

    def validate(self) -> list[str]:
        """Compile every column of every table. Returns list of errors."""
        errors = []
        for table in self.tables:
            for name in table.column_names():
                try:
                    table.compile(Definition(metrics=(name,)))
                except Exception as e:
                    errors.append(f"Table '{table.name}', column '{name}': {e}")
        return errors

    def _parse_datetime(self, value: str | date | datetime, end_of_day: bool = False) -> datetime:
        """Accept datetimes, dates or ISO strings.

        a bare date as an end bound means the whole day, so it becomes 23:59:59.
        """
        if isinstance(value, str):
            if "T" in value or " " in value:
                value = datetime.fromisoformat(value)
            else:
                value = date.fromisoformat(value)
        if isinstance(value, datetime):
            return value
        if end_of_day:
            return datetime(value.year, value.month, value.day, 23, 59, 59)
        return datetime(value.year, value.month, value.day)

    def close(self) -> None:
        """Close database connection."""
        self.executor.close()

    def __enter__(self) -> "AnalyticsStore":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
