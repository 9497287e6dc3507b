"""The executor contract tables depend on.

anything that can run a sql string and hand back a QueryResult will do -
tests lean on this to swap in canned rows.
"""

from typing import Protocol, runtime_checkable

from sheetforge.models.query import QueryResult


@runtime_checkable
class QueryExecutor(Protocol):
    def execute(self, sql: str) -> QueryResult: ...
