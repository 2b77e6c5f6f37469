"""
A square (cell) on the board

(placed in its own module as multiple other modules need to import it)
"""

from __future__ import annotations

from dataclasses import dataclass

# (rows, columns). Row 0 is the back rank of the second side, row 8 the back rank of the first side.
BOARD_DIMENSIONS = (9, 9)


@dataclass(frozen=True)
class Square:
    row: int
    col: int

    def is_within_bounds(self) -> bool:
        return (0 <= self.row < BOARD_DIMENSIONS[0]) and (
            0 <= self.col < BOARD_DIMENSIONS[1]
        )

    def offset(self, dr: int, dc: int) -> Square:
        return Square(self.row + dr, self.col + dc)

    def mirrored(self) -> Square:
        """Point reflection through the center of the board"""
        return Square(
            BOARD_DIMENSIONS[0] - 1 - self.row, BOARD_DIMENSIONS[1] - 1 - self.col
        )


def all_squares() -> list[Square]:
    """Every square of the board, row by row"""
    return [
        Square(row, col)
        for row in range(BOARD_DIMENSIONS[0])
        for col in range(BOARD_DIMENSIONS[1])
    ]
