"""DuckDB query executor for sheetforge.

duckdb is a good fit for reporting queries - embedded, fast at aggregations,
and strftime/date functions behave the way the time columns expect. the
in-memory mode is great for tests and one-off analysis.
"""

import time
from pathlib import Path
from typing import Any

import duckdb

from sheetforge.logging import get_logger
from sheetforge.models.query import QueryResult

logger = get_logger(__name__)


class DuckDBExecutor:
    """Execute queries against DuckDB.

    thin wrapper that handles connection management and result shaping.
    errors from duckdb are not caught here - callers see them as-is.
    """

    def __init__(self, database_path: str | None = None) -> None:
        """Initialize DuckDB connection.

        Args:
            database_path: Path to DuckDB file, or None for in-memory.
        """
        self.database_path = database_path
        self._conn: duckdb.DuckDBPyConnection | None = None  # lazy init

    @property
    def conn(self) -> duckdb.DuckDBPyConnection:
        """Get or create the DuckDB connection.

        ":memory:" is the duckdb convention for an in-memory database.
        """
        if self._conn is None:
            self._conn = duckdb.connect(self.database_path or ":memory:")
        return self._conn

    def execute(self, sql: str) -> QueryResult:
        """Execute SQL and return rows as dicts keyed by column alias."""
        start = time.perf_counter()

        result = self.conn.execute(sql)
        # statements without a result set (DDL) have no description
        columns = [desc[0] for desc in result.description] if result.description else []
        rows = result.fetchall() if columns else []

        elapsed_ms = (time.perf_counter() - start) * 1000
        data = [dict(zip(columns, row)) for row in rows]

        logger.debug("Query returned %d rows in %.2fms", len(data), elapsed_ms)

        return QueryResult(
            sql=sql,
            columns=columns,
            data=data,
            row_count=len(data),
            execution_time_ms=round(elapsed_ms, 2),
        )

    # --- loading ---

    # file suffix -> duckdb table function that reads it
    READERS = {
        ".csv": "read_csv_auto",
        ".parquet": "read_parquet",
    }

    def load_file(self, table_name: str, path: str | Path) -> int:
        """(Re)create table_name from a csv or parquet file, picked by suffix."""
        path = Path(path)
        reader = self.READERS.get(path.suffix.lower())
        if reader is None:
            raise ValueError(
                f"Unsupported file type '{path.suffix}', expected one of {sorted(self.READERS)}"
            )
        return self._load(table_name, path, reader)

    def load_csv(self, table_name: str, path: str | Path) -> int:
        """Load a csv file, letting duckdb sniff delimiters and types."""
        return self._load(table_name, Path(path), "read_csv_auto")

    def load_parquet(self, table_name: str, path: str | Path) -> int:
        return self._load(table_name, Path(path), "read_parquet")

    def _load(self, table_name: str, path: Path, reader: str) -> int:
        """CREATE OR REPLACE from a table function. Returns the row count."""
        if not path.exists():
            raise FileNotFoundError(f"Data file not found: {path}")

        # the path goes in as a sql string literal, so double any quotes
        literal = str(path).replace("'", "''")
        self.conn.execute(
            f"CREATE OR REPLACE TABLE {table_name} AS SELECT * FROM {reader}('{literal}')"
        )
        row_count = self.conn.execute(f"SELECT COUNT(*) FROM {table_name}").fetchone()[0]
        logger.info("Loaded %d rows into %s from %s", row_count, table_name, path.name)
        return row_count

    def create_table_from_data(
        self, table_name: str, columns: list[str], data: list[tuple[Any, ...]]
    ) -> None:
        """Create a table from in-memory rows.

        columns may carry types ("created_at TIMESTAMP"); bare names are
        created as VARCHAR and left to duckdb's implicit casts.
        """
        if not data:
            raise ValueError("Cannot create table from empty data")

        col_defs = ", ".join(col if " " in col.strip() else f"{col} VARCHAR" for col in columns)
        placeholders = ", ".join(["?"] * len(columns))

        self.conn.execute(f"CREATE OR REPLACE TABLE {table_name} ({col_defs})")
        self.conn.executemany(f"INSERT INTO {table_name} VALUES ({placeholders})", data)
        logger.info("Loaded %d rows into %s", len(data), table_name)

    # --- introspection ---

    def table_names(self) -> list[str]:
        """Every table and view in the database, sorted."""
        result = self.execute(
            "SELECT table_name FROM duckdb_tables() "
            "UNION SELECT view_name FROM duckdb_views() WHERE NOT internal "
            "ORDER BY 1"
        )
        return [row["table_name"] for row in result.data]

    def table_exists(self, table_name: str) -> bool:
        return table_name in self.table_names()

    def get_table_schema(self, table_name: str) -> list[tuple[str, str]]:
        """(column name, duckdb type) pairs, in declaration order."""
        rows = self.execute(f"DESCRIBE {table_name}").data
        return [(row["column_name"], row["column_type"]) for row in rows]

    def close(self) -> None:
        if self._conn is not None:
            logger.debug("Closing duckdb connection to %s", self.database_path or ":memory:")
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "DuckDBExecutor":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
