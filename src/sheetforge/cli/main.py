"""CLI for sheetforge."""

import csv
import io
import json
import re
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from sheetforge.config import get_settings
from sheetforge.executor.duckdb_executor import DuckDBExecutor
from sheetforge.models.definition import Definition, Filter, Ordering
from sheetforge.store import AnalyticsStore

app = typer.Typer(
    name="sf",
    help="sheetforge - declarative analytics queries over DuckDB",
    no_args_is_help=True,
)
console = Console()

# longest operators first so ">=" isn't read as ">" followed by "=value"
_FILTER_PATTERN = re.compile(
    r"^\s*(?P<column>\w+)\s*(?P<operator>>=|<=|!=|<>|=|<|>|\s+not\s+like\s+|\s+like\s+|\s+in\s+)"
    r"\s*(?P<value>.*?)\s*$",
    re.IGNORECASE,
)


def parse_filter(text: str) -> Filter:
    """Parse ``country=US``, ``amount >= 10`` or ``country in US,UK``."""
    match = _FILTER_PATTERN.match(text)
    if not match:
        raise typer.BadParameter(f"Cannot parse filter: {text!r}")
    operator = match["operator"].strip().lower()
    value: str | list[str] = match["value"]
    if operator == "in":
        value = [v.strip() for v in match["value"].split(",") if v.strip()]
    return Filter(column=match["column"], operator=operator, value=value)


def parse_ordering(text: str) -> Ordering:
    """Parse ``month`` or ``visits:desc``."""
    column, _, direction = text.partition(":")
    return Ordering(column=column.strip(), direction=direction.strip() or "asc")


def get_store(tables_dir: Path | None, db_path: str | None = None) -> AnalyticsStore:
    return AnalyticsStore(tables_dir, db_path)


def _open_store(tables_dir: Path | None, db_path: str | None = None) -> AnalyticsStore:
    """get_store, turning load failures into a red message and exit code 1."""
    try:
        return get_store(tables_dir, db_path)
    except Exception as e:
        console.print(f"[red]Error loading tables: {e}[/red]")
        raise typer.Exit(1)


def _split(value: str | None) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()] if value else []


TablesDirOption = Annotated[
    Path | None, typer.Option("--dir", "-d", help="Table schema directory")
]


@app.command("list")
def list_items(
    item_type: Annotated[str, typer.Argument(help="Type: tables or columns")],
    tables_dir: TablesDirOption = None,
) -> None:
    """List tables or columns."""
    listings = {"tables": _list_tables, "columns": _list_columns}
    if item_type not in listings:
        console.print(f"[red]Unknown type: {item_type}. Use: tables, columns[/red]")
        raise typer.Exit(1)

    with _open_store(tables_dir) as store:
        listings[item_type](store)


def _list_tables(store: AnalyticsStore) -> None:
    tables = store.list_tables()

    table = Table(title="Tables")
    table.add_column("Name", style="cyan")
    table.add_column("Source", style="green")
    table.add_column("Columns", style="yellow")
    table.add_column("Description")

    for item in tables:
        table.add_row(
            item["name"],
            item["source"],
            str(item["columns"]),
            item["description"] or "-",
        )

    console.print(table)


def _list_columns(store: AnalyticsStore) -> None:
    columns = store.list_columns()

    table = Table(title="Columns")
    table.add_column("Name", style="cyan")
    table.add_column("Type", style="green")
    table.add_column("Table", style="yellow")
    table.add_column("Description")

    for column in columns:
        table.add_row(
            column["name"],
            column["type"],
            column["table"],
            column["description"] or "-",
        )

    console.print(table)


def _build_definition(
    store: AnalyticsStore,
    metrics: str,
    dimensions: str | None,
    filters: list[str] | None,
    orderings: list[str] | None,
    start_date: str | None,
    end_date: str | None,
) -> Definition:
    return store.definition(
        metrics=_split(metrics),
        dimensions=_split(dimensions),
        filters=[parse_filter(f) for f in filters or []],
        orderings=[parse_ordering(o) for o in orderings or []],
        start=start_date,
        end=end_date,
    )


def _print_sql(store: AnalyticsStore, definition: Definition) -> None:
    for table_name, sql in store.sql(definition).items():
        console.print(f"[bold]-- {table_name}[/bold]")
        console.print(Syntax(sql, "sql", theme="monokai", line_numbers=True))
        console.print()


@app.command()
def query(
    metrics: Annotated[str, typer.Argument(help="Comma-separated metric names")],
    tables_dir: TablesDirOption = None,
    db_path: Annotated[str | None, typer.Option("--db", help="DuckDB database path")] = None,
    dimensions: Annotated[
        str | None, typer.Option("--dimensions", "-g", help="Comma-separated dimensions")
    ] = None,
    filters: Annotated[
        list[str] | None, typer.Option("--filter", "-f", help="Filter, e.g. country=US")
    ] = None,
    orderings: Annotated[
        list[str] | None, typer.Option("--order", "-O", help="Ordering, e.g. visits:desc")
    ] = None,
    start_date: Annotated[
        str | None, typer.Option("--start", help="Range start (YYYY-MM-DD)")
    ] = None,
    end_date: Annotated[str | None, typer.Option("--end", help="Range end (YYYY-MM-DD)")] = None,
    show_sql: Annotated[bool, typer.Option("--sql", "-s", help="Show generated SQL")] = False,
    output: Annotated[
        str, typer.Option("--output", "-o", help="Output format: table, json, csv")
    ] = "table",
) -> None:
    """Run a definition and print the merged records."""
    with _open_store(tables_dir, db_path) as store:
        try:
            definition = _build_definition(
                store, metrics, dimensions, filters, orderings, start_date, end_date
            )
            if show_sql:
                _print_sql(store, definition)
            records = store.run(definition).to_array()
        except Exception as e:
            # executor errors (missing tables, bad sql) land here too
            console.print(f"[red]Query error: {e}[/red]")
            raise typer.Exit(1)

    _output_records(records, definition, output)


def _output_records(records: list[dict], definition: Definition, output_format: str) -> None:
    """Output records in the specified format."""
    columns = definition.dimensions_and_metrics()

    if output_format == "json":
        console.print_json(json.dumps(records, default=str))
    elif output_format == "csv":
        buffer = io.StringIO()
        writer = csv.DictWriter(
            buffer, fieldnames=columns, extrasaction="ignore", lineterminator="\n"
        )
        writer.writeheader()
        writer.writerows(records)
        console.print(buffer.getvalue().rstrip("\n"), markup=False, highlight=False)
    else:
        table = Table(title=f"Results ({len(records)} rows)")
        for col in columns:
            table.add_column(col)
        for record in records:
            table.add_row(*(str(record.get(c, "")) for c in columns))
        console.print(table)


@app.command()
def validate(tables_dir: TablesDirOption = None) -> None:
    """Validate all table schemas by compiling every column."""
    with _open_store(tables_dir) as store:
        errors = store.validate()
        column_count = len(store.list_columns())
        table_count = len(store.tables)

    if errors:
        console.print("[red]Validation failed:[/red]")
        for error in errors:
            console.print(f"  - {error}")
        raise typer.Exit(1)

    console.print(
        f"[green]Validated {column_count} columns in {table_count} tables successfully![/green]"
    )


@app.command("show-sql")
def show_sql(
    metrics: Annotated[str, typer.Argument(help="Comma-separated metric names")],
    tables_dir: TablesDirOption = None,
    dimensions: Annotated[
        str | None, typer.Option("--dimensions", "-g", help="Comma-separated dimensions")
    ] = None,
    filters: Annotated[
        list[str] | None, typer.Option("--filter", "-f", help="Filter, e.g. country=US")
    ] = None,
    orderings: Annotated[
        list[str] | None, typer.Option("--order", "-O", help="Ordering, e.g. visits:desc")
    ] = None,
    start_date: Annotated[
        str | None, typer.Option("--start", help="Range start (YYYY-MM-DD)")
    ] = None,
    end_date: Annotated[str | None, typer.Option("--end", help="Range end (YYYY-MM-DD)")] = None,
) -> None:
    """Show generated SQL without executing."""
    with _open_store(tables_dir) as store:
        try:
            definition = _build_definition(
                store, metrics, dimensions, filters, orderings, start_date, end_date
            )
            _print_sql(store, definition)
        except Exception as e:
            console.print(f"[red]Error generating SQL: {e}[/red]")
            raise typer.Exit(1)


@app.command()
def load(
    table_name: Annotated[str, typer.Argument(help="Table to (re)create")],
    path: Annotated[Path, typer.Argument(help="CSV or Parquet file")],
    db_path: Annotated[str | None, typer.Option("--db", help="DuckDB database path")] = None,
) -> None:
    """Load a CSV or Parquet file into the database as a table."""
    database_path = db_path or get_settings().database_path
    if not database_path:
        # an in-memory load would vanish as soon as the command exits
        console.print("[red]No database given. Pass --db or set SHEETFORGE_DATABASE_PATH[/red]")
        raise typer.Exit(1)

    with DuckDBExecutor(database_path) as executor:
        try:
            row_count = executor.load_file(table_name, path)
        except Exception as e:
            console.print(f"[red]Load error: {e}[/red]")
            raise typer.Exit(1)

    console.print(f"[green]Loaded {row_count} rows into {table_name}[/green]")


if __name__ == "__main__":
    app()
