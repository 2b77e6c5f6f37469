"""Defines the types of pieces and the two sides"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto

from src.core.exceptions import InvalidLayoutError


class PieceType(Enum):
    """Values are the type names (hands are searched by type name when a Spy betrays)."""

    MARSHAL = "Marshal"
    GENERAL = "General"
    LT_GENERAL = "LtGeneral"
    MAJOR = "Major"
    SAMURAI = "Samurai"
    LANCE = "Lance"
    KNIGHT = "Knight"
    NINJA = "Ninja"
    FORTRESS = "Fortress"
    PAWN = "Pawn"
    CANNON = "Cannon"
    ARCHER = "Archer"
    MUSKET = "Musket"
    SPY = "Spy"


class Side(Enum):
    FIRST = auto()  # moves "up": towards row 0
    SECOND = auto()  # moves "down": towards row 8

    @property
    def opponent(self) -> Side:
        return Side.SECOND if self == Side.FIRST else Side.FIRST


# The commander: capturing it wins the match, nothing may ever be stacked onto it.
COMMANDER = PieceType.MARSHAL

NOTATION_TO_PIECE: dict[str, PieceType] = {
    "m": PieceType.MARSHAL,
    "g": PieceType.GENERAL,
    "t": PieceType.LT_GENERAL,
    "j": PieceType.MAJOR,
    "s": PieceType.SAMURAI,
    "l": PieceType.LANCE,
    "n": PieceType.KNIGHT,
    "i": PieceType.NINJA,
    "f": PieceType.FORTRESS,
    "p": PieceType.PAWN,
    "c": PieceType.CANNON,
    "a": PieceType.ARCHER,
    "u": PieceType.MUSKET,
    "y": PieceType.SPY,
}

PIECE_TO_NOTATION: dict[PieceType, str] = {
    value: key for key, value in NOTATION_TO_PIECE.items()
}

# Symbols shown on the physical pieces
PIECE_SYMBOLS: dict[PieceType, str] = {
    PieceType.MARSHAL: "帥",
    PieceType.GENERAL: "大",
    PieceType.LT_GENERAL: "中",
    PieceType.MAJOR: "小",
    PieceType.SAMURAI: "侍",
    PieceType.LANCE: "槍",
    PieceType.KNIGHT: "馬",
    PieceType.NINJA: "忍",
    PieceType.FORTRESS: "砦",
    PieceType.PAWN: "兵",
    PieceType.CANNON: "砲",
    PieceType.ARCHER: "弓",
    PieceType.MUSKET: "筒",
    PieceType.SPY: "謀",
}


@dataclass(frozen=True)
class Piece:
    type: PieceType
    side: Side

    @classmethod
    def from_notation(cls, character: str) -> Piece:
        # upper case: first side, lower case: second side
        if character.lower() not in NOTATION_TO_PIECE:
            raise InvalidLayoutError(f"Unknown piece character: {character!r}")
        side = Side.FIRST if character.isupper() else Side.SECOND
        return cls(NOTATION_TO_PIECE[character.lower()], side)

    def to_notation(self) -> str:
        character = PIECE_TO_NOTATION[self.type]
        return character.upper() if self.side == Side.FIRST else character

    @property
    def is_commander(self) -> bool:
        return self.type == COMMANDER

    @property
    def symbol(self) -> str:
        return PIECE_SYMBOLS[self.type]
