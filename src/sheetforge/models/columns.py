"""Pydantic models for queryable columns.

a column is everything a table knows about one attribute: what to SELECT,
what to filter/group/order on (not always the same thing - SUM(amount) is
selected but you filter on amount), and how to turn the raw database value
into something presentable.

formatters are data rather than closures so columns can round-trip through
yaml/json and be compared in tests.
"""

from typing import TYPE_CHECKING, Annotated, Any, Literal, Protocol, runtime_checkable

import sqlglot
from pydantic import BaseModel, ConfigDict, Field
from sqlglot import exp

from sheetforge.periods import TimeGranularity, bucket_labels

if TYPE_CHECKING:
    from sheetforge.models.definition import Definition

DEFAULT_DIALECT = "duckdb"

_FALSE_STRINGS = frozenset({"", "0", "false", "f", "no", "n", "off"})


# --- formatters ---


class IdentityFormatter(BaseModel):
    """Pass values through untouched."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["identity"] = "identity"

    def apply(self, value: Any) -> Any:
        return value


class CastFormatter(BaseModel):
    """Coerce to a python scalar type.

    None becomes the zero value of the target type - an aggregate over no
    rows comes back as NULL and charts want 0, not a gap.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["cast"] = "cast"
    to: Literal["str", "int", "float", "bool"]

    def apply(self, value: Any) -> Any:
        if self.to == "str":
            return "" if value is None else str(value)
        if self.to == "bool":
            if isinstance(value, str):
                # varchar flags - bool("false") would be True
                return value.strip().lower() not in _FALSE_STRINGS
            return bool(value)
        if value is None:
            return 0 if self.to == "int" else 0.0
        if self.to == "int":
            # int("3.0") blows up, float first
            if isinstance(value, str):
                return int(float(value))
            return int(value)
        # covers Decimal, which duckdb hands back for SUM over DECIMAL columns
        return float(value)


class LookupFormatter(BaseModel):
    """Map raw values to labels, e.g. status codes to display names."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["lookup"] = "lookup"
    mapping: dict[str, Any]
    default: Any = None

    def apply(self, value: Any) -> Any:
        key = str(value)
        if key in self.mapping:
            return self.mapping[key]
        if self.default is not None:
            return self.default
        return value


Formatter = Annotated[
    IdentityFormatter | CastFormatter | LookupFormatter,
    Field(discriminator="kind"),
]


@runtime_checkable
class ColumnLike(Protocol):
    """What a table needs from a column, regardless of variant."""

    name: str

    @property
    def select_expression(self) -> str: ...

    @property
    def filter_expression(self) -> str: ...

    @property
    def group_by_expression(self) -> str: ...

    def format(self, value: Any) -> Any: ...

    def values(self, definition: "Definition") -> list[Any]: ...


# --- columns ---


class Column(BaseModel):
    """A scalar or aggregate column backed by SQL expressions."""

    model_config = ConfigDict(frozen=True)

    name: str
    select_expression: str
    filter_expression: str
    formatter: Formatter = Field(default_factory=IdentityFormatter)
    # only set when grouping needs something other than the filter expression
    group_by_override: str | None = None

    @property
    def group_by_expression(self) -> str:
        return self.group_by_override or self.filter_expression

    def format(self, value: Any) -> Any:
        return self.formatter.apply(value)

    def values(self, definition: "Definition") -> list[Any]:
        """Scalar columns have no enumerable value space."""
        return []

    # --- factories ---
    # these cover nearly every column in practice. anything exotic can still
    # be built with the constructor directly

    @classmethod
    def make(
        cls,
        name: str,
        select_expression: str,
        filter_expression: str | None = None,
        formatter: IdentityFormatter | CastFormatter | LookupFormatter | None = None,
    ) -> "Column":
        return cls(
            name=name,
            select_expression=select_expression,
            filter_expression=filter_expression or select_expression,
            formatter=formatter or IdentityFormatter(),
        )

    @classmethod
    def string(cls, name: str, expression: str) -> "Column":
        return cls.make(name, expression, expression, CastFormatter(to="str"))

    @classmethod
    def integer(cls, name: str, expression: str) -> "Column":
        return cls.make(name, expression, expression, CastFormatter(to="int"))

    @classmethod
    def number(cls, name: str, expression: str) -> "Column":
        return cls.make(name, expression, expression, CastFormatter(to="float"))

    @classmethod
    def boolean(cls, name: str, expression: str) -> "Column":
        return cls.make(name, expression, expression, CastFormatter(to="bool"))

    @classmethod
    def sum(cls, name: str, expression: str) -> "Column":
        return cls.make(name, f"SUM({expression})", expression, CastFormatter(to="float"))

    @classmethod
    def average(cls, name: str, expression: str) -> "Column":
        return cls.make(name, f"AVG({expression})", expression, CastFormatter(to="float"))

    @classmethod
    def count(cls, name: str) -> "Column":
        return cls.integer(name, "COUNT(*)")

    @classmethod
    def map(
        cls,
        name: str,
        column: str,
        mapping: dict[Any, Any],
        default: Any = None,
        dialect: str = DEFAULT_DIALECT,
    ) -> "Column":
        """A string column whose values are relabelled in SQL via CASE.

        doing it in SQL (rather than a lookup formatter) means you can group
        and filter on the label itself.
        """
        return cls.string(name, case_expression(column, mapping, default, dialect))

    @classmethod
    def lookup(
        cls, name: str, expression: str, mapping: dict[Any, Any], default: Any = None
    ) -> "Column":
        """A column relabelled after the query runs."""
        formatter = LookupFormatter(
            mapping={str(key): value for key, value in mapping.items()}, default=default
        )
        return cls.make(name, expression, expression, formatter)


def case_expression(
    column: str, mapping: dict[Any, Any], default: Any = None, dialect: str = DEFAULT_DIALECT
) -> str:
    """Build ``CASE WHEN col = k THEN v ... ELSE d END`` with proper quoting."""
    if not mapping:
        raise ValueError("A mapped column needs at least one mapping entry")

    subject = sqlglot.parse_one(column, dialect=dialect)
    case = exp.Case()
    for key, label in mapping.items():
        condition = exp.EQ(this=subject.copy(), expression=exp.convert(key))
        case = case.when(condition, exp.convert(label))
    if default is not None:
        case = case.else_(exp.convert(default))
    return case.sql(dialect=dialect)


class TimeColumn(BaseModel):
    """A timestamp bucketed to a fixed granularity.

    the column's name is the granularity itself ("month", "date", ...) and
    its values are formatted labels like "2024-03", which makes them easy
    to enumerate for zero-filling.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    column: str  # the underlying timestamp expression
    granularity: TimeGranularity

    @property
    def expression(self) -> str:
        return f"strftime({self.column}, '{self.granularity.pattern}')"

    @property
    def select_expression(self) -> str:
        return self.expression

    @property
    def filter_expression(self) -> str:
        return self.expression

    @property
    def group_by_expression(self) -> str:
        return self.expression

    def format(self, value: Any) -> Any:
        return value

    def values(self, definition: "Definition") -> list[str]:
        """Every bucket label in the definition's range, or nothing without one."""
        if definition.start is None or definition.end is None:
            return []
        return bucket_labels(definition.start, definition.end, self.granularity)

    @classmethod
    def make(cls, granularity: TimeGranularity | str, column: str) -> "TimeColumn":
        granularity = TimeGranularity(granularity)
        return cls(name=granularity.value, column=column, granularity=granularity)

    @classmethod
    def year(cls, column: str) -> "TimeColumn":
        return cls.make(TimeGranularity.YEAR, column)

    @classmethod
    def month(cls, column: str) -> "TimeColumn":
        return cls.make(TimeGranularity.MONTH, column)

    @classmethod
    def date(cls, column: str) -> "TimeColumn":
        return cls.make(TimeGranularity.DATE, column)

    @classmethod
    def hour(cls, column: str) -> "TimeColumn":
        return cls.make(TimeGranularity.HOUR, column)

    @classmethod
    def minute(cls, column: str) -> "TimeColumn":
        return cls.make(TimeGranularity.MINUTE, column)

    @classmethod
    def second(cls, column: str) -> "TimeColumn":
        return cls.make(TimeGranularity.SECOND, column)


AnyColumn = Column | TimeColumn
