"""sheetforge - declarative analytics queries reshaped into chart-ready sheets."""

from sheetforge.engine import Engine
from sheetforge.exceptions import (
    AnalyticsError,
    InvalidFilterTypeError,
    NoCapableTableError,
    SchemaError,
    UnknownColumnError,
)
from sheetforge.factory import TableFactory
from sheetforge.models import Column, Definition, Filter, Ordering, TimeColumn
from sheetforge.periods import TimeGranularity
from sheetforge.results import Cell, ResultColumn, Sheet
from sheetforge.store import AnalyticsStore
from sheetforge.tables.base import Table
from sheetforge.tables.declared import DeclaredTable

__version__ = "0.1.0"

__all__ = [
    "AnalyticsError",
    "AnalyticsStore",
    "Cell",
    "Column",
    "DeclaredTable",
    "Definition",
    "Engine",
    "Filter",
    "InvalidFilterTypeError",
    "NoCapableTableError",
    "Ordering",
    "ResultColumn",
    "SchemaError",
    "Sheet",
    "Table",
    "TableFactory",
    "TimeColumn",
    "TimeGranularity",
    "UnknownColumnError",
]
