"""Registry of tables the engine can choose from.

a plain ordered list - registration order is capability search order, and
the first table that can run a definition wins. names are not de-duplicated:
a second table registered under an existing name is never returned by
find_by_name(), but it still takes part in the capability search.
"""

from collections.abc import Iterator
from pathlib import Path

from sheetforge.compiler.sql_builder import SQLCompiler
from sheetforge.exceptions import NoCapableTableError
from sheetforge.executor.base import QueryExecutor
from sheetforge.logging import get_logger
from sheetforge.models.definition import Definition
from sheetforge.parser.loader import load_tables
from sheetforge.tables.base import Table

logger = get_logger(__name__)


class TableFactory:
    def __init__(self, tables: list[Table] | None = None) -> None:
        self._tables: list[Table] = []
        for table in tables or []:
            self.register(table)

    def register(self, table: Table) -> "TableFactory":
        self._tables.append(table)
        return self

    def all(self) -> list[Table]:
        return list(self._tables)

    def find_by_name(self, name: str) -> Table | None:
        """The first registered table with this name."""
        for table in self._tables:
            if table.name == name:
                return table
        return None

    def find_capable(self, definition: Definition) -> Table:
        """First table, in registration order, that can run the definition."""
        for table in self._tables:
            if table.can_run(definition):
                return table
        raise NoCapableTableError(definition.columns())

    def load_directory(
        self,
        path: str | Path,
        executor: QueryExecutor,
        compiler: SQLCompiler | None = None,
    ) -> "TableFactory":
        """Register every table declared in the yaml files under path."""
        tables = load_tables(path, executor, compiler)
        for table in tables:
            self.register(table)
        logger.info("Registered %d tables from %s", len(tables), path)
        return self

    def __iter__(self) -> Iterator[Table]:
        return iter(self._tables)

    def __len__(self) -> int:
        return len(self._tables)
