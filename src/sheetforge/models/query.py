"""Pydantic model for raw query results.

this is what an executor hands back before any reshaping. returning the sql
alongside the rows is useful for debugging - you always want to see what
query was actually run.
"""

from pydantic import BaseModel


class QueryResult(BaseModel):
    """Result of executing one compiled query."""

    sql: str
    columns: list[str]
    data: list[dict]  # one dict per row, keyed by column alias
    row_count: int
    execution_time_ms: float
