"""Tables built from a declarative schema (usually loaded from yaml)."""

from sqlglot import exp

from sheetforge.compiler.sql_builder import SQLCompiler
from sheetforge.executor.base import QueryExecutor
from sheetforge.models.columns import AnyColumn
from sheetforge.models.definition import Definition
from sheetforge.models.schema import TableSchema
from sheetforge.tables.base import Table


class DeclaredTable(Table):
    """A table whose columns and source come from a TableSchema.

    the base relation is the schema's source, restricted to the definition's
    start/end range when the schema names a timestamp column.
    """

    def __init__(
        self,
        schema: TableSchema,
        executor: QueryExecutor,
        compiler: SQLCompiler | None = None,
    ) -> None:
        super().__init__(executor, compiler)
        self.schema = schema
        self.name = schema.name
        self._columns = schema.build_columns()

    def columns(self) -> list[AnyColumn]:
        return self._columns

    def base_relation(self, definition: Definition) -> exp.Select:
        statement = exp.Select().from_(self.schema.source, dialect=self.compiler.dialect)

        if self.schema.timestamp:
            timestamp = self.compiler.parse(self.schema.timestamp)
            if definition.start is not None:
                statement = statement.where(
                    exp.GTE(this=timestamp.copy(), expression=exp.convert(definition.start))
                )
            if definition.end is not None:
                statement = statement.where(
                    exp.LTE(this=timestamp.copy(), expression=exp.convert(definition.end))
                )

        return statement
