"""Board data models.

Pydantic models for the mirrored tic-tac-toe board and inbound messages.
"""

from __future__ import annotations

import logging
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

EMPTY_CELL = " "
GRID_SIZE = 3
CELL_COUNT = GRID_SIZE * GRID_SIZE


class Mark(str, Enum):
    """A player's mark."""

    X = "X"
    O = "O"  # noqa: E741


Row = tuple[str, str, str]
Grid = tuple[Row, Row, Row]


def empty_grid() -> Grid:
    """Return a fresh 3x3 grid of empty cells."""
    return (
        (EMPTY_CELL, EMPTY_CELL, EMPTY_CELL),
        (EMPTY_CELL, EMPTY_CELL, EMPTY_CELL),
        (EMPTY_CELL, EMPTY_CELL, EMPTY_CELL),
    )


class BaseBoardModel(BaseModel):
    """Base model for board entities.

    Frozen so a snapshot handed to the renderer can never change under it.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")


class InboundEvent(BaseBoardModel):
    """One ``topic payload`` message from the subscriber stream."""

    topic: str
    payload: str


class BoardState(BaseBoardModel):
    """Snapshot of the shared board.

    Cells hold whatever single character the broker sent; normally one of
    ' ', 'X' or 'O'. ``current_player`` is always a Mark.
    """

    grid: Grid = Field(default_factory=empty_grid)
    current_player: Mark = Mark.X

    @field_validator("grid", mode="before")
    @classmethod
    def coerce_grid(cls, v: object) -> object:
        """Accept lists of lists as well as tuples."""
        if isinstance(v, list):
            return tuple(tuple(row) for row in v)
        return v

    @field_validator("grid")
    @classmethod
    def validate_cells(cls, v: Grid) -> Grid:
        for row in v:
            for cell in row:
                if len(cell) != 1:
                    raise ValueError(f"cell must be a single character, got {cell!r}")
        return v

    def cell(self, row: int, col: int) -> str:
        """Get a cell by 0-indexed row/col."""
        return self.grid[row][col]

    def to_flat(self) -> str:
        """Serialize the grid row-major into the 9-character wire form."""
        return "".join("".join(row) for row in self.grid)

    @classmethod
    def from_flat(
        cls, flat: str, current_player: Mark = Mark.X
    ) -> BoardState:
        """Build a board from a row-major wire string.

        Missing trailing cells are filled with EMPTY_CELL and anything past
        the ninth character is ignored.

        Args:
            flat: Row-major cell characters
            current_player: Player to carry into the new snapshot

        Returns:
            A new BoardState
        """
        cells = flat[:CELL_COUNT].ljust(CELL_COUNT, EMPTY_CELL)
        grid = tuple(
            tuple(cells[r * GRID_SIZE + c] for c in range(GRID_SIZE))
            for r in range(GRID_SIZE)
        )
        return cls(grid=grid, current_player=current_player)

    def with_player(self, player: Mark) -> BoardState:
        """Return a copy with a different current player."""
        return self.model_copy(update={"current_player": player})
