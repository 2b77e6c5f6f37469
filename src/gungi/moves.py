"""
Move generation: which cells a piece can reach and what it can do there

Key idea: every move definition of the catalog is a ray. We walk along it until it runs out of reach, leaves the board,
or gets blocked by a stack. Every visited cell is tagged with the action(s) the piece can take there.

Nothing in here mutates the board. Legality w.r.t. turn order / phase is checked later by Game.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol, Sequence

from src.gungi.catalog import MoveDefinition, Vector, move_definitions
from src.gungi.pieces import Piece, PieceType, Side
from src.gungi.square import BOARD_DIMENSIONS, Square, all_squares


class Board(Protocol):
    """Just the parts the move generator needs"""

    def top_piece(self, square: Square) -> Optional[Piece]: ...
    def height(self, square: Square) -> int: ...
    def occupied_squares(self, side: Optional[Side] = None) -> list[Square]: ...


class Ruleset(Protocol):
    """Just the rule flags the move generator needs"""

    @property
    def max_stack_height(self) -> int: ...
    @property
    def can_marshal_stack(self) -> bool: ...
    @property
    def betrayal_enabled(self) -> bool: ...


class ActionKind(Enum):
    MOVE = "move"  # onto an empty cell
    ATTACK = "attack"  # capture the opposing pieces on top of the target stack
    STACK = "stack"  # climb on top of the target stack
    BETRAYAL = "betrayal"  # Spy only: swap the opposing top piece for one of your own from hand, then climb on top
    DROP = "drop"  # from hand onto an empty cell


@dataclass(frozen=True)
class Action:
    """Target cell + what happens there"""

    target: Square
    kind: ActionKind


# Rows each side may place pieces in during the draft: the three rows nearest to its own side of the board
DRAFT_ROWS: dict[Side, range] = {
    Side.FIRST: range(BOARD_DIMENSIONS[0] - 3, BOARD_DIMENSIONS[0]),
    Side.SECOND: range(0, 3),
}


def mirror(vector: Vector, side: Side) -> Vector:
    """Catalog vectors are written for the first side. The second side faces the other way."""
    dr, dc = vector
    return (dr, dc) if side == Side.FIRST else (-dr, -dc)


# --- MOVEMENT RULES ---
def legal_actions(
    board: Board,
    piece: Piece,
    stack_height: int,
    square: Square,
    ruleset: Ruleset,
    hand: Sequence[Piece] = (),
) -> list[Action]:
    """
    All actions of the piece on top of the stack at `square`.
    ---

    `stack_height` is the tier: the height of the stack the piece stands on.
    `hand` is the reserve of the piece's side (a Spy can only betray a piece type it holds in hand).
    """
    actions: list[Action] = []
    for definition in move_definitions(piece.type, stack_height):
        actions.extend(
            raycasting_actions(board, piece, stack_height, square, definition, ruleset, hand)
        )
    return actions


def raycasting_actions(
    board: Board,
    piece: Piece,
    stack_height: int,
    square: Square,
    definition: MoveDefinition,
    ruleset: Ruleset,
    hand: Sequence[Piece] = (),
) -> list[Action]:
    """
    Raycasting algorithm
    -----

    ---
    1. Shift the origin by the offset of the definition (cells passed over by the offset are not looked at).
    2. Step along the direction, at most `reach` cells, until leaving the board.
    3. Empty cell: a move, keep going.
    4. Occupied cell: attack / stack / betrayal depending on owner and heights.
       Keep going only if the definition can leap and the stack is lower than our own stack. Otherwise the ray is blocked.
    """
    dr, dc = mirror(definition.direction, piece.side)
    off_r, off_c = mirror(definition.origin_offset, piece.side)

    actions: list[Action] = []
    target_square = square.offset(off_r + dr, off_c + dc)
    distance = 0
    while target_square.is_within_bounds():
        distance += 1
        if definition.reach is not None and distance > definition.reach:
            break

        target_piece = board.top_piece(target_square)
        if target_piece is None:
            actions.append(Action(target_square, ActionKind.MOVE))
            target_square = target_square.offset(dr, dc)
            continue

        target_height = board.height(target_square)
        actions.extend(
            occupied_cell_actions(
                piece, stack_height, target_square, target_piece, target_height, ruleset, hand
            )
        )

        # only a leaping ray passes over stacks that are lower than the moving stack
        if not (definition.can_leap and target_height < stack_height):
            break
        target_square = target_square.offset(dr, dc)

    return actions


def occupied_cell_actions(
    piece: Piece,
    stack_height: int,
    target_square: Square,
    target_piece: Piece,
    target_height: int,
    ruleset: Ruleset,
    hand: Sequence[Piece] = (),
) -> list[Action]:
    """What the piece can do to a cell that holds a stack (with `target_piece` on top)"""
    stacking = can_stack(piece, target_piece, target_height, ruleset)
    if target_piece.side == piece.side:
        return [Action(target_square, ActionKind.STACK)] if stacking else []

    # a stack can only interact with stacks that are not taller than itself
    if stack_height < target_height:
        return []

    actions = [Action(target_square, ActionKind.ATTACK)]
    if stacking:
        actions.append(Action(target_square, ActionKind.STACK))
        if can_betray(piece, target_piece, ruleset, hand):
            actions.append(Action(target_square, ActionKind.BETRAYAL))
    return actions


def can_stack(
    piece: Piece, target_piece: Piece, target_height: int, ruleset: Ruleset
) -> bool:
    """
    Stacking rules
    ----

    * the target stack is not full yet
    * nothing ever goes on top of a Marshal (of either side)
    * the Marshal itself only climbs onto stacks if the ruleset allows it
    """
    if target_height >= ruleset.max_stack_height:
        return False
    if target_piece.is_commander:
        return False
    return not piece.is_commander or ruleset.can_marshal_stack


def can_betray(
    piece: Piece, target_piece: Piece, ruleset: Ruleset, hand: Sequence[Piece]
) -> bool:
    """The Spy swaps an opposing piece for a piece of the same type held in hand"""
    if piece.type != PieceType.SPY or not ruleset.betrayal_enabled:
        return False
    return any(hand_piece.type == target_piece.type for hand_piece in hand)


def action_kinds(actions: Sequence[Action], target: Square) -> list[ActionKind]:
    """Distinct kinds offered at the target cell, in the order they were generated"""
    kinds: list[ActionKind] = []
    for action in actions:
        if action.target == target and action.kind not in kinds:
            kinds.append(action.kind)
    return kinds


# -- DROP RULES ---
def drop_targets(board: Board, side: Side) -> list[Action]:
    """
    Dropping a piece from hand during play.
    ---

    Not ahead of your own frontline: only empty cells from the row of your most advanced piece back to your own back rank.
    Without pieces on the board, any empty cell.
    """
    own_rows = [square.row for square in board.occupied_squares(side)]
    if not own_rows:
        allowed_rows = range(BOARD_DIMENSIONS[0])
    elif side == Side.FIRST:
        allowed_rows = range(min(own_rows), BOARD_DIMENSIONS[0])
    else:
        allowed_rows = range(0, max(own_rows) + 1)

    return [
        Action(square, ActionKind.DROP)
        for square in all_squares()
        if square.row in allowed_rows and board.top_piece(square) is None
    ]


def draft_targets(board: Board, side: Side) -> list[Action]:
    """Empty cells in the draft rows of the side"""
    return [
        Action(square, ActionKind.DROP)
        for square in all_squares()
        if square.row in DRAFT_ROWS[side] and board.top_piece(square) is None
    ]
