"""
Type definitions used across layers
"""

from enum import StrEnum

# --- NOTE The domain layer (src/gungi) keeps its own Side / ActionKind / Phase enums. These are the string versions
# --- that cross boundaries (wire messages, GameModel snapshots). Convert between them by member name.


class Level(StrEnum):
    BEGINNER = "beginner"
    NOVICE = "novice"
    INTERMEDIATE = "intermediate"


class Side(StrEnum):
    FIRST = "first"
    SECOND = "second"


class Phase(StrEnum):
    SETUP = "setup"
    DRAFT = "draft"
    PLAYING = "playing"
    FINISHED = "finished"


class ActionKind(StrEnum):
    MOVE = "move"
    ATTACK = "attack"
    STACK = "stack"
    BETRAYAL = "betrayal"
    DROP = "drop"
