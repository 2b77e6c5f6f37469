"""
The board: a fixed grid of stacks.

Every operation taking a square silently does nothing for squares outside of the board (returns an empty stack / None).
The game relies on that so it does not need to bounds-check every call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from src.core.exceptions import InvalidLayoutError
from src.gungi.pieces import Piece, Side
from src.gungi.square import BOARD_DIMENSIONS, Square, all_squares

Grid = list[list[list[Piece]]]


def _empty_grid() -> Grid:
    return [[[] for _ in range(BOARD_DIMENSIONS[1])] for _ in range(BOARD_DIMENSIONS[0])]


@dataclass
class Board:
    grid: Grid = field(default_factory=_empty_grid)

    @classmethod
    def empty(cls) -> Board:
        return cls()

    @classmethod
    def from_notation(cls, notation: str) -> Board:
        """Construct a board using layout notation.

        Rows are listed from row 0 (top) to row 8, separated by slashes.
        ex. the full fixed starting layout:
        3gmt3/1ia1l1an1/p1fspsf1p/9/9/9/P1FSPSF1P/1IA1L1AN1/3TMG3
        means:
        * a digit is a run of empty cells
        * a letter is a single piece: upper case for the first side, lower case for the second side
        * square brackets hold a taller stack, written bottom to top. ex. [Pp] is a second side pawn on top of a first side pawn
        """
        rows = notation.split("/")
        if len(rows) != BOARD_DIMENSIONS[0]:
            raise InvalidLayoutError(
                f"Layout must have {BOARD_DIMENSIONS[0]} rows, got {len(rows)}: {notation!r}"
            )

        board = cls()
        for row, row_notation in enumerate(rows):
            col = 0
            idx = 0
            while idx < len(row_notation):
                character = row_notation[idx]
                if character.isdigit():
                    # A number denotes the amount of empty cells after each other
                    col += int(character)
                    idx += 1
                elif character == "[":
                    closing = row_notation.find("]", idx)
                    if closing == -1:
                        raise InvalidLayoutError(
                            f"Unterminated stack in row {row}: {row_notation!r}"
                        )
                    for stacked in row_notation[idx + 1 : closing]:
                        board.push(Square(row, col), Piece.from_notation(stacked))
                    col += 1
                    idx = closing + 1
                else:
                    board.push(Square(row, col), Piece.from_notation(character))
                    col += 1
                    idx += 1

            if col != BOARD_DIMENSIONS[1]:
                raise InvalidLayoutError(
                    f"Row {row} must describe {BOARD_DIMENSIONS[1]} cells, got {col}: {row_notation!r}"
                )
        return board

    def to_notation(self) -> str:
        """Rows are separated by slashes in layout notation."""
        return "/".join(self._row_to_notation(row) for row in range(BOARD_DIMENSIONS[0]))

    def _row_to_notation(self, row: int) -> str:
        characters: list[str] = []
        empty_count = 0
        for col in range(BOARD_DIMENSIONS[1]):
            stack = self.stack(Square(row, col))
            if not stack:
                empty_count += 1
                continue

            if empty_count > 0:
                characters.append(str(empty_count))
                empty_count = 0
            pieces = "".join(piece.to_notation() for piece in stack)
            characters.append(pieces if len(stack) == 1 else f"[{pieces}]")

        # if the entire row is empty, then we still place this number in the string
        if empty_count > 0:
            characters.append(str(empty_count))
        return "".join(characters)

    # --- STACK ACCESS ---
    def top_piece(self, square: Square) -> Optional[Piece]:
        """The only piece of a stack that can move, attack or be attacked directly"""
        if not square.is_within_bounds():
            return None
        stack = self.grid[square.row][square.col]
        return stack[-1] if stack else None

    def stack(self, square: Square) -> tuple[Piece, ...]:
        """Read-only view, bottom to top"""
        if not square.is_within_bounds():
            return ()
        return tuple(self.grid[square.row][square.col])

    def height(self, square: Square) -> int:
        return len(self.stack(square))

    def is_empty(self, square: Square) -> bool:
        return self.height(square) == 0

    def push(self, square: Square, piece: Piece) -> None:
        """Put the piece on top. Capacity is the caller's concern."""
        if not square.is_within_bounds():
            return
        self.grid[square.row][square.col].append(piece)

    def pop(self, square: Square) -> Optional[Piece]:
        if not square.is_within_bounds():
            return None
        stack = self.grid[square.row][square.col]
        return stack.pop() if stack else None

    def clear(self, square: Square) -> list[Piece]:
        """Empty the cell. Returns everything that was there (bottom to top)."""
        if not square.is_within_bounds():
            return []
        removed = self.grid[square.row][square.col]
        self.grid[square.row][square.col] = []
        return removed

    # --- LOCATING PIECES ---
    def occupied_squares(self, side: Optional[Side] = None) -> list[Square]:
        """Squares with a stack, optionally only those whose top piece belongs to the given side"""
        squares: list[Square] = []
        for square in all_squares():
            top = self.top_piece(square)
            if top is None:
                continue
            if side is None or top.side == side:
                squares.append(square)
        return squares
