"""Abstract table - one logical data source and the columns it exposes.

a table knows three things: its name, its columns, and the base relation to
query for a given definition. everything else - compiling, running,
zero-filling, reshaping - is shared and lives here.

query pipeline:
  1. compile the definition into a query plan (see SQLCompiler)
  2. run it through the executor
  3. build zero rows for every enumerable value of a single dimension
  4. key default and actual rows by dimension values, actual rows win.
     with an ordering the database row order is kept and leftover zero rows
     are appended, otherwise rows follow the enumerated values
  5. format every value through its column and hand back a Sheet
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from functools import cached_property
from typing import Any

from sqlglot import exp

from sheetforge.compiler.sql_builder import QueryPlan, SQLCompiler
from sheetforge.exceptions import UnknownColumnError
from sheetforge.executor.base import QueryExecutor
from sheetforge.logging import get_logger
from sheetforge.models.columns import ColumnLike
from sheetforge.models.definition import Definition
from sheetforge.results import Sheet

logger = get_logger(__name__)

KEY_PREFIX = "key"


class Table(ABC):
    """Base class for every queryable table.

    subclasses provide ``name``, ``columns()`` and ``base_relation()``.
    instances hold no per-query state, so one table serves any number of
    definitions.
    """

    name: str

    def __init__(self, executor: QueryExecutor, compiler: SQLCompiler | None = None) -> None:
        self.executor = executor
        self.compiler = compiler or SQLCompiler()

    @abstractmethod
    def columns(self) -> Sequence[ColumnLike]:
        """Every column this table can select, filter, group or order on."""

    @abstractmethod
    def base_relation(self, definition: Definition) -> exp.Select:
        """The FROM (and any joins/restrictions) to build the query on.

        may differ per definition - e.g. only join a lookup table when a
        filter actually needs it.
        """

    # --- schema lookups ---

    @cached_property
    def _columns_by_name(self) -> dict[str, ColumnLike]:
        # first declaration wins, same as a linear scan would
        by_name: dict[str, ColumnLike] = {}
        for column in self.columns():
            by_name.setdefault(column.name, column)
        return by_name

    def column_names(self) -> list[str]:
        return list(self._columns_by_name)

    def has_column(self, name: str) -> bool:
        return name in self._columns_by_name

    def get_column(self, name: str) -> ColumnLike:
        try:
            return self._columns_by_name[name]
        except KeyError:
            raise UnknownColumnError(self.name, name) from None

    def can_run(self, definition: Definition) -> bool:
        """True if every column the definition uses is declared here."""
        return set(definition.columns()) <= set(self._columns_by_name)

    # --- querying ---

    def compile(self, definition: Definition) -> QueryPlan:
        return self.compiler.compile(self, definition)

    def to_sql(self, definition: Definition, pretty: bool = True) -> str:
        return self.compile(definition).sql(pretty=pretty)

    def query(self, definition: Definition) -> Sheet:
        """Run the definition against this table and reshape the rows."""
        plan = self.compile(definition)
        rows = self.executor.execute(plan.sql()).data
        logger.debug("Table %s returned %d rows", self.name, len(rows))

        defaults = self._default_records(definition)
        actual = self._parse(rows, plan, definition)
        if definition.orderings:
            # keep the database order, unmatched zero rows go last
            merged = {**actual, **{k: v for k, v in defaults.items() if k not in actual}}
        else:
            # actual rows overwrite zero rows sharing the same dimension key
            merged = {**defaults, **actual}

        return Sheet.parse(merged.values(), definition)

    # --- default fill ---

    def _default_records(self, definition: Definition) -> dict[str, dict[str, Any]]:
        """Zero rows for every enumerable value of the only dimension.

        only single-dimension definitions are filled. with two or more
        dimensions the cross product gets large fast and mostly isn't wanted.
        """
        if len(definition.dimensions) != 1:
            return {}

        dimension = definition.dimensions[0]
        column = self.get_column(dimension)

        records = {}
        for value in column.values(definition):
            record = {dimension: column.format(value)}
            for metric in definition.metrics:
                record[metric] = self.get_column(metric).format(0)
            records[dimension_key([value])] = record
        return records

    # --- parsing ---

    def _parse(
        self, rows: Sequence[Mapping[str, Any]], plan: QueryPlan, definition: Definition
    ) -> dict[str, dict[str, Any]]:
        aliases = plan.aliases()
        dimension_aliases = [aliases[name] for name in definition.dimensions]

        parsed = {}
        for row in rows:
            key = dimension_key([row[alias] for alias in dimension_aliases])
            parsed[key] = {
                name: self.get_column(name).format(row[aliases[name]])
                for name in definition.dimensions_and_metrics()
            }
        return parsed

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"


def dimension_key(values: Sequence[Any]) -> str:
    """Identity of a dimension combination, e.g. ``key/2024-01/US``."""
    return "/".join([KEY_PREFIX, *(str(value) for value in values)])
