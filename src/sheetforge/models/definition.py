"""Pydantic models for analytics query definitions.

a definition captures what the caller wants - metrics, dimensions, filters,
orderings and an optional time range - without saying which table serves it.
the engine figures that part out.

definitions are frozen. every builder method returns a new definition so the
engine can hand out per-table copies without worrying about shared state.
"""

from collections.abc import Callable, Iterable, Sequence
from datetime import datetime
from enum import Enum
from typing import Any, Literal, Self

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)


class FilterType(str, Enum):
    """How a filter compiles - derived from the operator, never stored."""

    BASIC = "basic"
    IN = "in"


# operators a basic filter may use. "in" is handled separately since its
# value is a sequence rather than a scalar
BASIC_OPERATORS = frozenset({"=", "!=", "<>", "<", "<=", ">", ">=", "like", "not like"})


class Filter(BaseModel):
    """A predicate against a named column."""

    model_config = ConfigDict(frozen=True)

    column: str
    operator: str
    value: Any

    @field_validator("operator", mode="before")
    @classmethod
    def normalise_operator(cls, value: Any) -> Any:
        if isinstance(value, str):
            return " ".join(value.strip().lower().split())
        return value

    @field_validator("operator")
    @classmethod
    def validate_operator(cls, value: str) -> str:
        if value != FilterType.IN.value and value not in BASIC_OPERATORS:
            raise ValueError(f"Unsupported filter operator: {value!r}")
        return value

    @field_validator("value")
    @classmethod
    def validate_value(cls, value: Any, info: ValidationInfo) -> Any:
        if info.data.get("operator") != FilterType.IN.value:
            return value
        if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
            raise ValueError("An 'in' filter needs a sequence value")
        # tuples keep the model hashable
        return tuple(value)

    @property
    def type(self) -> FilterType:
        if self.operator == FilterType.IN.value:
            return FilterType.IN
        return FilterType.BASIC


class Ordering(BaseModel):
    """A sort directive against a named column."""

    model_config = ConfigDict(frozen=True)

    column: str
    direction: Literal["asc", "desc"] = "asc"

    @field_validator("direction", mode="before")
    @classmethod
    def normalise_direction(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value


class Definition(BaseModel):
    """A request to compute one or more metrics.

    mirrors the questions people ask of a dashboard: "visits and signups by
    month for Q1, only for the US, newest first". metrics are required,
    everything else is optional.
    """

    model_config = ConfigDict(frozen=True)

    metrics: tuple[str, ...] = Field(min_length=1)
    dimensions: tuple[str, ...] = ()
    filters: tuple[Filter, ...] = ()
    orderings: tuple[Ordering, ...] = ()
    start: datetime | None = None
    end: datetime | None = None

    @model_validator(mode="after")
    def validate_range(self) -> Self:
        if self.start and self.end and self.end < self.start:
            raise ValueError("Definition end must not be before start")
        return self

    @classmethod
    def make(cls, metrics: Sequence[str] | str) -> "Definition":
        """Start a definition from a metric name or list of metric names."""
        if isinstance(metrics, str):
            metrics = [metrics]
        return cls(metrics=tuple(metrics))

    # --- derived views ---

    def dimensions_and_metrics(self) -> list[str]:
        return [*self.dimensions, *self.metrics]

    def columns(self) -> list[str]:
        """Every column a table must declare to run this definition.

        dimensions, then metrics, then filter columns - de-duplicated, first
        occurrence wins. orderings are deliberately not part of this set.
        """
        names = [*self.dimensions_and_metrics(), *(f.column for f in self.filters)]
        return list(dict.fromkeys(names))

    def has_column(self, *names: str) -> bool:
        """True when any of the given names is used by this definition."""
        columns = set(self.columns())
        return any(name in columns for name in names)

    # --- copies ---
    # all of these go back through validation rather than model_copy, so a
    # copy can never hold something a fresh definition would reject

    def _replace(self, **changes: Any) -> "Definition":
        fields = {name: getattr(self, name) for name in type(self).model_fields}
        fields.update(changes)
        return type(self)(**fields)

    def with_metrics(self, metrics: Iterable[str]) -> "Definition":
        return self._replace(metrics=tuple(metrics))

    def with_metric(self, metric: str) -> "Definition":
        return self.with_metrics([metric])

    def set_dimensions(self, dimensions: Iterable[str]) -> "Definition":
        return self._replace(dimensions=tuple(dimensions))

    def add_dimension(self, dimension: str) -> "Definition":
        return self._replace(dimensions=(*self.dimensions, dimension))

    def set_filters(self, filters: Iterable[Filter]) -> "Definition":
        return self._replace(filters=tuple(filters))

    def add_filter(self, filter: Filter) -> "Definition":
        return self._replace(filters=(*self.filters, filter))

    def set_orderings(self, orderings: Iterable[Ordering]) -> "Definition":
        return self._replace(orderings=tuple(orderings))

    def add_ordering(self, ordering: Ordering) -> "Definition":
        return self._replace(orderings=(*self.orderings, ordering))

    def between(self, start: datetime | None, end: datetime | None) -> "Definition":
        return self._replace(start=start, end=end)

    def when(
        self,
        condition: bool | Callable[["Definition"], bool],
        callback: Callable[["Definition"], "Definition"],
    ) -> "Definition":
        """Apply callback only if condition holds.

        handy for request handlers: ``d.when(country, lambda d: d.add_filter(...))``
        """
        if callable(condition):
            condition = condition(self)
        if condition:
            return callback(self)
        return self
