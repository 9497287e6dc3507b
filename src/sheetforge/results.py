"""Result reshaping - cells, per-metric columns, and sheets.

tables hand back one flat record per dimension combination. the engine may
query several tables for one definition though, so the sheet keeps things
split per metric and only pivots at the end: every cell is keyed by its
dimension values and cells sharing a key are merged into one record.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from sheetforge.models.definition import Definition


@dataclass
class Cell:
    """One metric value for one dimension combination."""

    dimensions: dict[str, Any]
    metric: str
    value: Any

    @property
    def dimension_group(self) -> str:
        """Join key across metrics - dimension values sorted by dimension name."""
        return "/".join(f"{name}:{self.dimensions[name]}" for name in sorted(self.dimensions))

    def to_dict(self) -> dict[str, Any]:
        return {**self.dimensions, self.metric: self.value}


@dataclass
class ResultColumn:
    """All cells for a single metric."""

    metric: str
    cells: list[Cell] = field(default_factory=list)

    @classmethod
    def parse(
        cls, records: Iterable[Mapping[str, Any]], metric: str, definition: Definition
    ) -> "ResultColumn":
        cells = [
            Cell(
                dimensions={name: record.get(name) for name in definition.dimensions},
                metric=metric,
                value=record.get(metric),
            )
            for record in records
        ]
        return cls(metric=metric, cells=cells)

    def add_cell(self, cell: Cell) -> "ResultColumn":
        self.cells.append(cell)
        return self


@dataclass
class Sheet:
    """The pivoted result of one or more metric queries."""

    columns: list[ResultColumn] = field(default_factory=list)

    @classmethod
    def parse(cls, records: Iterable[Mapping[str, Any]], definition: Definition) -> "Sheet":
        """Split flat records into one column per metric of the definition."""
        records = list(records)
        return cls(
            columns=[ResultColumn.parse(records, metric, definition) for metric in definition.metrics]
        )

    @classmethod
    def from_sheets(cls, sheets: Iterable["Sheet"]) -> "Sheet":
        return cls(columns=[column for sheet in sheets for column in sheet.columns])

    def add_column(self, column: ResultColumn) -> "Sheet":
        self.columns.append(column)
        return self

    @property
    def metrics(self) -> list[str]:
        return [column.metric for column in self.columns]

    def to_array(self) -> list[dict[str, Any]]:
        """One record per distinct dimension combination.

        groups keep first-seen order, so a single table's record order (see
        Table.query) is what comes out. a metric missing for a combination is
        simply absent from that record.
        """
        groups: dict[str, dict[str, Any]] = {}
        for column in self.columns:
            for cell in column.cells:
                groups.setdefault(cell.dimension_group, {}).update(cell.to_dict())
        return list(groups.values())

