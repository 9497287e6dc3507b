"""Pydantic models for sheetforge."""

from sheetforge.models.columns import (
    AnyColumn,
    CastFormatter,
    Column,
    ColumnLike,
    IdentityFormatter,
    LookupFormatter,
    TimeColumn,
)
from sheetforge.models.definition import Definition, Filter, FilterType, Ordering
from sheetforge.models.query import QueryResult
from sheetforge.models.schema import ColumnSpec, ColumnType, TableSchema

__all__ = [
    "AnyColumn",
    "CastFormatter",
    "Column",
    "ColumnLike",
    "ColumnSpec",
    "ColumnType",
    "Definition",
    "Filter",
    "FilterType",
    "IdentityFormatter",
    "LookupFormatter",
    "Ordering",
    "QueryResult",
    "TableSchema",
    "TimeColumn",
]
