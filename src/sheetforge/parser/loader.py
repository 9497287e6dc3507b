"""YAML loader for declarative table schemas.

yaml because the schemas live next to the dashboards that use them and get
reviewed in PRs - comments are too useful to give up for json.

a file looks like:

    tables:
      - name: events
        source: events
        timestamp: created_at
        columns:
          - {name: visits, type: count}
          - {type: time, granularity: month, expr: created_at}
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from sheetforge.compiler.sql_builder import SQLCompiler
from sheetforge.exceptions import SchemaError
from sheetforge.executor.base import QueryExecutor
from sheetforge.logging import get_logger
from sheetforge.models.schema import TableSchema
from sheetforge.tables.declared import DeclaredTable

logger = get_logger(__name__)


def load_schemas(path: str | Path) -> list[TableSchema]:
    """Parse every yaml file under path into table schemas.

    files are read in sorted order so registration order (and with it the
    capability search order) is stable across machines.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Tables directory not found: {path}")

    if path.is_file():
        yaml_files = [path]
    else:
        yaml_files = sorted([*path.glob("**/*.yaml"), *path.glob("**/*.yml")])
    if not yaml_files:
        raise SchemaError(f"No YAML files found in {path}")

    schemas: list[TableSchema] = []
    seen: dict[str, Path] = {}
    for yaml_file in yaml_files:
        for schema in _load_file(yaml_file):
            if schema.name in seen:
                raise SchemaError(
                    f"Duplicate table '{schema.name}' in {seen[schema.name]} and {yaml_file}"
                )
            seen[schema.name] = yaml_file
            schemas.append(schema)

    logger.debug("Parsed %d table schemas from %d files", len(schemas), len(yaml_files))
    return schemas


def _load_file(path: Path) -> list[TableSchema]:
    """Parse a single yaml file. empty files are ignored."""
    with open(path) as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise SchemaError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return []
    if not isinstance(data, dict):
        raise SchemaError(f"Expected a mapping at the top of {path}")

    return [_parse_table(table_data, path) for table_data in data.get("tables", [])]


def _parse_table(data: dict[str, Any], path: Path) -> TableSchema:
    try:
        return TableSchema.model_validate(data)
    except ValidationError as e:
        name = data.get("name", "<unnamed>") if isinstance(data, dict) else "<invalid>"
        raise SchemaError(f"Invalid table '{name}' in {path}: {e}") from e


def load_tables(
    path: str | Path,
    executor: QueryExecutor,
    compiler: SQLCompiler | None = None,
) -> list[DeclaredTable]:
    """Load schemas and bind them to an executor."""
    return [DeclaredTable(schema, executor, compiler) for schema in load_schemas(path)]
