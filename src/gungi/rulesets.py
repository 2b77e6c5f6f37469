"""
Level presets: the rule flags and the starting setup of a match.

A ruleset is chosen before the match starts and never changes during it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto

from src.core.exceptions import UnknownLevelError
from src.core.shared_types import Level
from src.gungi.board import Board
from src.gungi.pieces import Piece, PieceType, Side
from src.gungi.square import all_squares


class SetupKind(Enum):
    FIXED = auto()  # pieces start on fixed squares, play starts immediately
    DRAFT = auto()  # both sides place their pieces before play starts


# Both sides on the fixed squares (before excluded piece types are taken off)
FIXED_LAYOUT = "3gmt3/1ia1l1an1/p1fspsf1p/9/9/9/P1FSPSF1P/1IA1L1AN1/3TMG3"

# Reserve each side holds in hand in a fixed setup
FIXED_HAND: tuple[PieceType, ...] = (
    PieceType.MAJOR,
    PieceType.MAJOR,
    PieceType.LANCE,
    PieceType.KNIGHT,
    PieceType.NINJA,
    PieceType.PAWN,
    PieceType.CANNON,
    PieceType.MUSKET,
    PieceType.SPY,
)

# Pool each side drafts from. The Marshal comes first as it has to be placed first.
DRAFT_POOL: tuple[PieceType, ...] = (
    PieceType.MARSHAL,
    PieceType.GENERAL,
    PieceType.LT_GENERAL,
    PieceType.SPY,
    PieceType.MUSKET,
    PieceType.CANNON,
    PieceType.ARCHER,
    PieceType.MAJOR,
    PieceType.MAJOR,
    PieceType.SAMURAI,
    PieceType.SAMURAI,
    PieceType.NINJA,
    PieceType.NINJA,
    PieceType.KNIGHT,
    PieceType.KNIGHT,
    PieceType.FORTRESS,
    PieceType.FORTRESS,
    PieceType.LANCE,
    PieceType.LANCE,
    PieceType.LANCE,
    PieceType.PAWN,
    PieceType.PAWN,
    PieceType.PAWN,
    PieceType.PAWN,
)

SPECIAL_PIECES = frozenset(
    {PieceType.ARCHER, PieceType.MUSKET, PieceType.CANNON, PieceType.SPY}
)


@dataclass(frozen=True)
class Ruleset:
    level: Level
    setup: SetupKind
    max_stack_height: int = 2
    can_marshal_stack: bool = False
    betrayal_enabled: bool = False
    excluded_types: frozenset[PieceType] = field(default_factory=frozenset)
    # layout notation of a fixed setup (unused for a draft)
    layout: str = FIXED_LAYOUT

    @property
    def is_draft(self) -> bool:
        return self.setup == SetupKind.DRAFT

    def starting_board(self) -> Board:
        """Empty for a draft. Otherwise the fixed layout minus the excluded piece types."""
        if self.is_draft:
            return Board.empty()

        board = Board.from_notation(self.layout)
        for square in all_squares():
            stack = board.stack(square)
            if stack and stack[0].type in self.excluded_types:
                board.clear(square)
        return board

    def starting_hand(self, side: Side) -> list[Piece]:
        piece_types = DRAFT_POOL if self.is_draft else FIXED_HAND
        return [
            Piece(piece_type, side)
            for piece_type in piece_types
            if piece_type not in self.excluded_types
        ]


RULESETS: dict[Level, Ruleset] = {
    # no special pieces
    Level.BEGINNER: Ruleset(
        level=Level.BEGINNER,
        setup=SetupKind.FIXED,
        excluded_types=SPECIAL_PIECES,
    ),
    # archers are the only special pieces
    Level.NOVICE: Ruleset(
        level=Level.NOVICE,
        setup=SetupKind.FIXED,
        excluded_types=SPECIAL_PIECES - {PieceType.ARCHER},
    ),
    # full set of pieces, drafted. The Marshal may stack and the Spy may betray.
    Level.INTERMEDIATE: Ruleset(
        level=Level.INTERMEDIATE,
        setup=SetupKind.DRAFT,
        can_marshal_stack=True,
        betrayal_enabled=True,
    ),
}


def get_ruleset(level: str) -> Ruleset:
    """Find the preset for the level id"""
    try:
        preset = Level(level)
    except ValueError as exc:
        raise UnknownLevelError(
            f"Unknown level: {level!r}. \nPick one from {','.join(option.value for option in Level)}"
        ) from exc
    return RULESETS[preset]
