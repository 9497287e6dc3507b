"""Exceptions raised by the analytics engine.

the numeric codes are stable so callers (http layers, the cli) can map
them without string matching on messages.
"""


class AnalyticsError(Exception):
    """Base class for everything the engine raises on purpose."""

    code: int = 0

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code


class NoCapableTableError(AnalyticsError):
    """No registered table declares every column a definition needs."""

    code = 1

    def __init__(self, columns: list[str] | None = None) -> None:
        self.columns = columns or []
        super().__init__("The selected dimensions and metrics cannot be queried together.")


class InvalidFilterTypeError(AnalyticsError):
    """A filter resolved to a type the compiler has no predicate for."""

    code = 2

    def __init__(self, filter_type: object = None) -> None:
        self.filter_type = filter_type
        super().__init__("The filter type is invalid.")


class UnknownColumnError(AnalyticsError, KeyError):
    """A column name is not declared by the table being compiled."""

    code = 3

    def __init__(self, table: str, column: str) -> None:
        self.table = table
        self.column = column
        super().__init__(f"Unknown column '{column}' in table '{table}'")

    # KeyError.__str__ would wrap the message in quotes
    def __str__(self) -> str:
        return self.args[0]


class SchemaError(AnalyticsError, ValueError):
    """A declarative table schema is malformed or conflicts with another."""

    code = 4
