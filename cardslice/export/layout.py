"""Grid arrangement of layers on a cutting sheet."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterator


@dataclass(frozen=True)
class SheetLayout:
    """Square-ish grid of equal cells, one layer per cell.

    Attributes:
        count: Number of layers placed
        cell_width: Cell size in X (model width + padding), mm
        cell_height: Cell size in Y (model length + padding), mm
        cols: Grid columns
        rows: Grid rows
    """

    count: int
    cell_width: float
    cell_height: float
    cols: int
    rows: int

    @classmethod
    def for_layers(cls, count: int, width: float, length: float, padding: float) -> SheetLayout:
        """Build a grid with ceil(sqrt(count)) columns."""
        if count <= 0:
            raise ValueError("Layout needs at least one layer")
        cols = math.ceil(math.sqrt(count))
        rows = math.ceil(count / cols)
        return cls(
            count=count,
            cell_width=width + padding,
            cell_height=length + padding,
            cols=cols,
            rows=rows,
        )

    @property
    def sheet_width(self) -> float:
        return self.cols * self.cell_width

    @property
    def sheet_height(self) -> float:
        return self.rows * self.cell_height

    def cell_center(self, index: int) -> tuple[float, float]:
        """Center of the cell holding layer ``index`` (row-major, from top-left)."""
        if not 0 <= index < self.count:
            raise IndexError(f"Layer index {index} out of range")
        col = index % self.cols
        row = index // self.cols
        return (col + 0.5) * self.cell_width, (row + 0.5) * self.cell_height

    def iter_cells(self) -> Iterator[tuple[int, float, float]]:
        """Yield (index, center_x, center_y) for every placed layer."""
        for index in range(self.count):
            x, y = self.cell_center(index)
            yield index, x, y
