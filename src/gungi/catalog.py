"""
Piece catalog: the movement geometry of every piece type

Key idea: Use strategy pattern to define the move definitions for each piece type.
Every rule is a function of the tier (the height of the stack the piece stands on when it moves).

All directions are written from the point of view of the first side ("up" = towards row 0).
The move generator mirrors them for the second side.
"""

from dataclasses import dataclass
from typing import Callable, Optional

from src.gungi.pieces import PieceType

Vector = tuple[int, int]  # (delta row, delta column)

UP: Vector = (-1, 0)
DOWN: Vector = (1, 0)
LEFT: Vector = (0, -1)
RIGHT: Vector = (0, 1)
UP_LEFT: Vector = (-1, -1)
UP_RIGHT: Vector = (-1, 1)
DOWN_LEFT: Vector = (1, -1)
DOWN_RIGHT: Vector = (1, 1)

CROSS: list[Vector] = [UP, DOWN, LEFT, RIGHT]
DIAGONALS: list[Vector] = [UP_LEFT, UP_RIGHT, DOWN_LEFT, DOWN_RIGHT]
ALL_DIRECTIONS: list[Vector] = CROSS + DIAGONALS

NO_OFFSET: Vector = (0, 0)
UNBOUNDED: Optional[int] = None


@dataclass(frozen=True)
class MoveDefinition:
    """
    A single ray a piece can move along.
    ---

    * direction: unit step of the ray
    * reach: how many cells the ray may visit (None: until the edge of the board)
    * can_leap: may continue past stacks lower than the moving stack
    * origin_offset: the ray starts from this displacement of the piece's square instead of the square itself
    """

    direction: Vector
    reach: Optional[int]
    can_leap: bool = False
    origin_offset: Vector = NO_OFFSET

    @property
    def is_unbounded(self) -> bool:
        return self.reach is None


def define(
    directions: list[Vector],
    reach: Optional[int],
    can_leap: bool = False,
    origin_offset: Vector = NO_OFFSET,
) -> list[MoveDefinition]:
    """Convenience: the same reach / leap / offset for a group of directions"""
    return [
        MoveDefinition(direction, reach, can_leap, origin_offset)
        for direction in directions
    ]


# --- MOVE DEFINITION RULES ---
def marshal_moves(tier: int) -> list[MoveDefinition]:
    return define(ALL_DIRECTIONS, tier)


def general_moves(tier: int) -> list[MoveDefinition]:
    """Slides along files and rows, diagonal reach grows with the tier"""
    return define(CROSS, UNBOUNDED) + define(DIAGONALS, tier)


def lt_general_moves(tier: int) -> list[MoveDefinition]:
    """Mirror image of the General: slides diagonally"""
    return define(DIAGONALS, UNBOUNDED) + define(CROSS, tier)


def major_moves(tier: int) -> list[MoveDefinition]:
    return define([UP, LEFT, RIGHT, UP_LEFT, UP_RIGHT, DOWN], tier)


def samurai_moves(tier: int) -> list[MoveDefinition]:
    return define([UP, UP_LEFT, UP_RIGHT, DOWN], tier)


def lance_moves(tier: int) -> list[MoveDefinition]:
    """Reaches one cell further forward than in its other directions"""
    return define([UP], tier + 1) + define([UP_LEFT, UP_RIGHT, DOWN], tier)


def knight_moves(tier: int) -> list[MoveDefinition]:
    return define(CROSS, tier + 1)


def ninja_moves(tier: int) -> list[MoveDefinition]:
    return define(DIAGONALS, tier + 1)


def fortress_moves(tier: int) -> list[MoveDefinition]:
    return define([UP, LEFT, RIGHT, DOWN_LEFT, DOWN_RIGHT], tier)


def pawn_moves(tier: int) -> list[MoveDefinition]:
    return define([UP, DOWN], tier)


def cannon_moves(tier: int) -> list[MoveDefinition]:
    """
    Fires forward over the two cells in front of it: the forward ray starts from two cells ahead,
    so the first cell it can reach is the third one.
    """
    return define([UP], tier, can_leap=True, origin_offset=(-2, 0)) + define(
        [LEFT, RIGHT, DOWN], tier
    )


def archer_moves(tier: int) -> list[MoveDefinition]:
    """Shoots over the cell in front of it, fanning out forward from there."""
    return define(
        [UP, UP_LEFT, UP_RIGHT], tier, can_leap=True, origin_offset=(-1, 0)
    ) + define([DOWN], tier)


def musket_moves(tier: int) -> list[MoveDefinition]:
    return define([UP], tier, can_leap=True, origin_offset=(-1, 0)) + define(
        [DOWN_LEFT, DOWN_RIGHT], tier
    )


def spy_moves(tier: int) -> list[MoveDefinition]:
    return define([UP_LEFT, UP_RIGHT, DOWN], tier)


# -- STRATEGY PATTERN: MOVE DEFINITION RULES ---
MoveDefinitionsFn = Callable[[int], list[MoveDefinition]]
MOVE_DEFINITION_RULES: dict[PieceType, MoveDefinitionsFn] = {
    PieceType.MARSHAL: marshal_moves,
    PieceType.GENERAL: general_moves,
    PieceType.LT_GENERAL: lt_general_moves,
    PieceType.MAJOR: major_moves,
    PieceType.SAMURAI: samurai_moves,
    PieceType.LANCE: lance_moves,
    PieceType.KNIGHT: knight_moves,
    PieceType.NINJA: ninja_moves,
    PieceType.FORTRESS: fortress_moves,
    PieceType.PAWN: pawn_moves,
    PieceType.CANNON: cannon_moves,
    PieceType.ARCHER: archer_moves,
    PieceType.MUSKET: musket_moves,
    PieceType.SPY: spy_moves,
}


def move_definitions(piece_type: PieceType, tier: int) -> list[MoveDefinition]:
    """Look up the rule of the piece type and evaluate it for the given tier (1-based stack height)."""
    if tier < 1:
        raise ValueError(f"Tier must be a positive integer, got {tier}")
    return MOVE_DEFINITION_RULES[piece_type](tier)
