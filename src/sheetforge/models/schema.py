"""Pydantic models for declarative table schemas.

most tables don't need custom python - a source relation, an optional
timestamp to range-restrict on, and a list of columns. these models are what
the yaml loader validates against, and they know how to build the runtime
Column / TimeColumn objects.
"""

from enum import Enum
from typing import Any, Self

from pydantic import BaseModel, Field, model_validator

from sheetforge.models.columns import AnyColumn, Column, TimeColumn
from sheetforge.periods import TimeGranularity


class ColumnType(str, Enum):
    """Column kinds a schema can declare - one per Column/TimeColumn factory."""

    STRING = "string"
    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"
    SUM = "sum"
    AVERAGE = "average"
    COUNT = "count"
    MAP = "map"  # relabelled in sql via CASE
    LOOKUP = "lookup"  # relabelled in python after the query
    RAW = "raw"  # explicit select/filter expressions, no formatting
    TIME = "time"


# types that need an expr to mean anything
_NEEDS_EXPR = {
    ColumnType.STRING,
    ColumnType.INTEGER,
    ColumnType.NUMBER,
    ColumnType.BOOLEAN,
    ColumnType.SUM,
    ColumnType.AVERAGE,
    ColumnType.MAP,
    ColumnType.LOOKUP,
    ColumnType.RAW,
    ColumnType.TIME,
}


class ColumnSpec(BaseModel):
    """One column in a table schema."""

    name: str | None = None  # time columns default to their granularity
    type: ColumnType
    expr: str | None = None
    filter_expr: str | None = None  # raw columns only
    mapping: dict[Any, Any] = Field(default_factory=dict)
    default: Any = None
    granularity: TimeGranularity | None = None
    description: str | None = None

    @model_validator(mode="after")
    def validate_shape(self) -> Self:
        label = self.name or self.type.value
        if self.type in _NEEDS_EXPR and not self.expr:
            raise ValueError(f"Column '{label}' of type '{self.type.value}' requires expr")
        if self.type == ColumnType.TIME and self.granularity is None:
            raise ValueError(f"Time column '{label}' requires granularity")
        if self.type in (ColumnType.MAP, ColumnType.LOOKUP) and not self.mapping:
            raise ValueError(f"Column '{label}' of type '{self.type.value}' requires mapping")
        if self.type != ColumnType.TIME and not self.name:
            raise ValueError(f"Column of type '{self.type.value}' requires a name")
        return self

    @property
    def column_name(self) -> str:
        if self.name:
            return self.name
        # validated above: only time columns may omit a name
        return self.granularity.value  # type: ignore[union-attr]

    def build(self) -> AnyColumn:
        """Turn the spec into the runtime column object."""
        expr = self.expr or ""

        if self.type == ColumnType.TIME:
            column = TimeColumn.make(self.granularity, expr)  # type: ignore[arg-type]
            if self.name and self.name != column.name:
                # a second time column at the same grain needs its own name
                column = TimeColumn(name=self.name, column=expr, granularity=column.granularity)
            return column

        name = self.column_name
        if self.type == ColumnType.STRING:
            return Column.string(name, expr)
        if self.type == ColumnType.INTEGER:
            return Column.integer(name, expr)
        if self.type == ColumnType.NUMBER:
            return Column.number(name, expr)
        if self.type == ColumnType.BOOLEAN:
            return Column.boolean(name, expr)
        if self.type == ColumnType.SUM:
            return Column.sum(name, expr)
        if self.type == ColumnType.AVERAGE:
            return Column.average(name, expr)
        if self.type == ColumnType.COUNT:
            return Column.count(name)
        if self.type == ColumnType.MAP:
            return Column.map(name, expr, self.mapping, self.default)
        if self.type == ColumnType.LOOKUP:
            return Column.lookup(name, expr, self.mapping, self.default)
        return Column.make(name, expr, self.filter_expr)


class TableSchema(BaseModel):
    """A declarative table - one source relation, a fixed set of columns.

    source can be a table, a view, or a parenthesised subquery. timestamp is
    the raw column a definition's start/end range restricts.
    """

    name: str
    source: str
    timestamp: str | None = None
    description: str | None = None
    columns: list[ColumnSpec] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_columns(self) -> Self:
        if not self.columns:
            raise ValueError(f"Table '{self.name}' declares no columns")
        seen: set[str] = set()
        for spec in self.columns:
            if spec.column_name in seen:
                raise ValueError(
                    f"Duplicate column name '{spec.column_name}' in table '{self.name}'"
                )
            seen.add(spec.column_name)
        return self

    def build_columns(self) -> list[AnyColumn]:
        return [spec.build() for spec in self.columns]
