"""
Boundary layer data model(s).

These objects are used to compare and rebuild a match across boundaries (two peers of an online match, or a test
checking that both peers ended up in the same state). They hold plain strings only, so nothing of the domain layer leaks.
"""

from dataclasses import dataclass, field
from typing import Optional

# Type aliases to make GameModel easier to read
SideName = str
HandNotation = str


@dataclass
class GameModel:
    """Transport-safe representation of a match used between Service and Game layers."""

    board: str
    hands: dict[SideName, HandNotation]
    turn: str
    phase: str
    level: Optional[str] = None
    winner: Optional[str] = None
    draft_marshal_placed: dict[SideName, bool] = field(default_factory=dict)
    draft_done: dict[SideName, bool] = field(default_factory=dict)
    draft_turn_moved: bool = False
