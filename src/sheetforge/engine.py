"""Engine - the entry point that turns a definition into a sheet.

metrics are resolved to tables one at a time rather than as a set, so a
single definition can pull "visits" from the events table and "revenue" from
the orders table. each table gets one query with its share of the metrics,
and the sheets are merged by dimension values afterwards.
"""

from sheetforge.factory import TableFactory
from sheetforge.logging import get_logger
from sheetforge.models.definition import Definition
from sheetforge.results import Sheet
from sheetforge.tables.base import Table

logger = get_logger(__name__)


class Engine:
    def __init__(self, tables: TableFactory) -> None:
        self.tables = tables

    def run(self, definition: Definition) -> Sheet:
        """Query every table the definition needs and merge the results.

        all or nothing - if any metric has no capable table, or any table
        query fails, the error propagates and nothing is returned.
        """
        groups = self.plan(definition)
        sheets = [table.query(sub_definition) for table, sub_definition in groups]
        logger.info(
            "Ran %d metrics across %d tables", len(definition.metrics), len(groups)
        )
        return Sheet.from_sheets(sheets)

    def plan(self, definition: Definition) -> list[tuple[Table, Definition]]:
        """Pair each capable table with a definition holding its metrics.

        resolution happens per metric: the table chosen for a metric is the
        first one able to run the definition reduced to that metric alone.
        tables keep the order in which their first metric appeared.
        """
        grouped: dict[int, tuple[Table, list[str]]] = {}
        for metric in definition.metrics:
            table = self.tables.find_capable(definition.with_metric(metric))
            grouped.setdefault(id(table), (table, []))[1].append(metric)

        for table, metrics in grouped.values():
            logger.debug("Table %s serves metrics %s", table.name, metrics)

        return [
            (table, definition.with_metrics(metrics)) for table, metrics in grouped.values()
        ]

    def sql(self, definition: Definition, pretty: bool = True) -> dict[str, str]:
        """The SQL each table would run for this definition, keyed by table name."""
        return {
            table.name: table.to_sql(sub_definition, pretty=pretty)
            for table, sub_definition in self.plan(definition)
        }
