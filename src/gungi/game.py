"""
The Game class is the entrypoint into the domain layer for the service layer.
It is responsible for orchestrating all the business logic required to play a turn of the board game:
the phases of a match (setup, draft, playing, finished), whose turn it is, the hands, and applying actions to the board.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Callable, Optional, Self

from src.core.exceptions import (
    AmbiguousActionError,
    BetrayalInventoryError,
    DraftConstraintError,
    GameError,
    GameStateError,
    IllegalActionError,
    NotYourTurnError,
)
from src.core.models import GameModel
from src.core.shared_types import Phase as PhaseName
from src.core.shared_types import Side as SideName
from src.gungi.board import Board
from src.gungi.moves import (
    DRAFT_ROWS,
    Action,
    ActionKind,
    action_kinds,
    draft_targets,
    drop_targets,
    legal_actions,
)
from src.gungi.pieces import Piece, Side
from src.gungi.rulesets import Ruleset, get_ruleset
from src.gungi.square import Square

logger = logging.getLogger(__name__)


class Phase(Enum):
    SETUP = auto()  # no level chosen yet
    DRAFT = auto()  # both sides place pieces in their own rows
    PLAYING = auto()
    FINISHED = auto()  # a Marshal got captured


@dataclass
class DraftState:
    marshal_placed: dict[Side, bool] = field(
        default_factory=lambda: {side: False for side in Side}
    )
    done: dict[Side, bool] = field(default_factory=lambda: {side: False for side in Side})
    # the side to move already placed its piece this turn
    turn_moved: bool = False


@dataclass(frozen=True)
class Selection:
    """What the side to move currently has picked up: a square on the board, or a piece in hand. Presentation state only."""

    square: Optional[Square] = None
    hand_index: Optional[int] = None

    @property
    def is_hand(self) -> bool:
        return self.hand_index is not None


Observer = Callable[["Game"], None]


@dataclass
class Game:
    # --- DOMAIN LAYER API CALLED BY SERVICE---

    board: Board
    hands: dict[Side, list[Piece]]
    turn: Side
    phase: Phase
    ruleset: Optional[Ruleset] = None
    draft: DraftState = field(default_factory=DraftState)
    winner: Optional[Side] = None
    selection: Optional[Selection] = None
    consistency_errors: list[GameError] = field(
        default_factory=list, repr=False, compare=False
    )
    observers: list[Observer] = field(default_factory=list, repr=False, compare=False)

    @classmethod
    def new(cls) -> Self:
        """A match waiting for its level to be chosen"""
        return cls(
            board=Board.empty(),
            hands={side: [] for side in Side},
            turn=Side.FIRST,
            phase=Phase.SETUP,
        )

    @classmethod
    def from_model(cls, model: GameModel) -> Self:
        """Define how to construct a Game from the information the Service layer actually has"""

        # Validation
        try:
            phase = Phase[PhaseName(model.phase).name]
            turn = Side[SideName(model.turn).name]
            winner = Side[SideName(model.winner).name] if model.winner else None
        except ValueError as exc:
            raise GameStateError(
                f"Invalid snapshot: {exc}. \nPhases: {', '.join(PhaseName)}. Sides: {', '.join(SideName)}"
            ) from exc

        # create the Game
        ruleset = get_ruleset(model.level) if model.level else None
        draft = DraftState(
            marshal_placed={
                side: model.draft_marshal_placed.get(SideName[side.name], False)
                for side in Side
            },
            done={side: model.draft_done.get(SideName[side.name], False) for side in Side},
            turn_moved=model.draft_turn_moved,
        )
        return cls(
            board=Board.from_notation(model.board),
            hands={
                side: [Piece.from_notation(char) for char in model.hands.get(SideName[side.name], "")]
                for side in Side
            },
            turn=turn,
            phase=phase,
            ruleset=ruleset,
            draft=draft,
            winner=winner,
        )

    def to_model(self) -> GameModel:
        """Encode back into a format the Service layer uses"""
        return GameModel(
            board=self.board.to_notation(),
            hands={
                SideName[side.name]: "".join(piece.to_notation() for piece in self.hands[side])
                for side in Side
            },
            turn=SideName[self.turn.name],
            phase=PhaseName[self.phase.name],
            level=self.ruleset.level if self.ruleset else None,
            winner=SideName[self.winner.name] if self.winner else None,
            draft_marshal_placed={
                SideName[side.name]: self.draft.marshal_placed[side] for side in Side
            },
            draft_done={SideName[side.name]: self.draft.done[side] for side in Side},
            draft_turn_moved=self.draft.turn_moved,
        )

    def subscribe(self, observer: Observer) -> None:
        """Observers get called with the game after every state change"""
        self.observers.append(observer)

    # --- LEVEL SELECTION ---
    def start_level(self, ruleset: Ruleset) -> None:
        """
        Start a new match with the given ruleset.
        ---

        The board is replaced as a whole. A fixed setup starts play right away, a draft setup starts the draft.
        The first side always moves first.
        """
        self.ruleset = ruleset
        self.board = ruleset.starting_board()
        self.hands = {side: ruleset.starting_hand(side) for side in Side}
        self.turn = Side.FIRST
        self.winner = None
        self.selection = None
        self.draft = DraftState()
        self.phase = Phase.DRAFT if ruleset.is_draft else Phase.PLAYING
        logger.info("Started level %s (phase: %s)", ruleset.level, self.phase.name)
        self._notify()

    def restart(self) -> None:
        """Back to choosing a level. The current board stays until a new level replaces it."""
        self.phase = Phase.SETUP
        self.selection = None
        self._notify()

    # --- QUERIES ---
    def legal_actions(self, square: Square) -> list[Action]:
        """Actions of the piece on top of the stack at the square (empty list for an empty cell)"""
        ruleset = self._require_ruleset()
        piece = self.board.top_piece(square)
        if piece is None:
            return []
        return legal_actions(
            self.board,
            piece,
            self.board.height(square),
            square,
            ruleset,
            self.hands[piece.side],
        )

    def action_kinds(self, origin: Square, target: Square) -> list[ActionKind]:
        """The different things the piece on `origin` could do on `target`. More than one? The caller has to choose."""
        return action_kinds(self.legal_actions(origin), target)

    def drop_targets(self, hand_index: int) -> list[Action]:
        self._hand_piece(hand_index)
        return drop_targets(self.board, self.turn)

    def draft_targets(self) -> list[Action]:
        return draft_targets(self.board, self.turn)

    # --- SELECTION ---
    def select_square(self, square: Square) -> list[Action]:
        """
        Pick up the piece on the square.
        Only pieces of the side to move, only during play. Anything else just drops the current selection.
        """
        piece = self.board.top_piece(square)
        if self.phase != Phase.PLAYING or piece is None or piece.side != self.turn:
            self.clear_selection()
            return []

        self.selection = Selection(square=square)
        return self.legal_actions(square)

    def select_hand(self, hand_index: int) -> list[Action]:
        """Pick up a piece from the hand of the side to move. Returns where it can be placed."""
        if self.phase == Phase.DRAFT:
            self._assert_can_place_this_turn()
            self._hand_piece(hand_index)
            self.selection = Selection(hand_index=hand_index)
            return self.draft_targets()

        self._assert_phase(Phase.PLAYING)
        targets = self.drop_targets(hand_index)
        self.selection = Selection(hand_index=hand_index)
        return targets

    def clear_selection(self) -> None:
        self.selection = None

    # --- PLAYING PHASE ---
    def make_move(
        self, origin: Square, target: Square, kind: Optional[ActionKind] = None
    ) -> None:
        """
        Attempt to move the piece on top of the origin stack to the target cell.
        -----

        1. check phase and that the piece belongs to the side to move
        2. find which kinds of action the piece can take on the target cell
        3. several kinds? The caller has to pick one (the Game never guesses)
        4. apply the action
        """
        self._assert_phase(Phase.PLAYING)
        self._assert_your_piece(origin)

        kinds = self.action_kinds(origin, target)
        if not kinds:
            raise IllegalActionError(f"No legal action from {origin} to {target}")

        if kind is None:
            if len(kinds) > 1:
                raise AmbiguousActionError(
                    f"Choose one of {', '.join(k.value for k in kinds)} for {target}"
                )
            kind = kinds[0]

        self.apply_action(origin, Action(target, kind))

    def apply_action(self, origin: Square, action: Action) -> None:
        """
        Apply a generated action of the piece on top of the origin stack.
        -----

        1. take the moving piece off its stack
        2. attack: remove opposing pieces from the top of the target stack (a Marshal among them ends the match), then land
        3. stack: land on top of the target stack
        4. betrayal: swap the opposing top piece for the same type from hand, then land on top of it
        5. move: land on the empty cell
        6. clear the selection, hand over the turn, tell the observers
        """
        self._assert_phase(Phase.PLAYING)
        self._assert_your_piece(origin)
        if action not in self.legal_actions(origin):
            raise IllegalActionError(
                f"Action not allowed: {action.kind.value} from {origin} to {action.target}"
            )

        mover = self.board.pop(origin)
        # for the type checker: _assert_your_piece made sure there is a piece
        assert mover is not None

        if action.kind == ActionKind.ATTACK:
            self._capture_opposing_pieces(action.target)
            self.board.push(action.target, mover)
        elif action.kind == ActionKind.BETRAYAL:
            self._betray(action.target, mover)
        else:
            self.board.push(action.target, mover)

        logger.debug(
            "%s: %s %s from %s to %s",
            self.turn.name,
            mover.type.value,
            action.kind.value,
            origin,
            action.target,
        )
        self._finish_turn()

    def drop_piece(self, hand_index: int, target: Square) -> None:
        """Put a piece from hand onto an empty cell, not ahead of your own frontline"""
        self._assert_phase(Phase.PLAYING)
        targets = self.drop_targets(hand_index)
        if Action(target, ActionKind.DROP) not in targets:
            raise IllegalActionError(f"Cannot drop onto {target}")

        piece = self.hands[self.turn].pop(hand_index)
        self.board.push(target, piece)
        logger.debug("%s: dropped %s on %s", self.turn.name, piece.type.value, target)
        self._finish_turn()

    # --- DRAFT PHASE ---
    def draft_drop(self, hand_index: int, target: Square) -> None:
        """
        Place a piece from hand during the draft.
        -----

        * only one piece per turn (then pass or declare done)
        * only in your own three rows, only onto empty cells
        * the Marshal has to be your first piece
        * if your opponent is already done, this was your last draft action: play starts
        """
        self._assert_phase(Phase.DRAFT)
        self._assert_can_place_this_turn()
        side = self.turn
        piece = self._hand_piece(hand_index)

        if not target.is_within_bounds() or target.row not in DRAFT_ROWS[side]:
            raise DraftConstraintError(
                "During the draft pieces can only be placed in your own three rows."
            )
        if not self.board.is_empty(target):
            raise DraftConstraintError("Cannot place a piece onto an occupied cell.")
        if not self.draft.marshal_placed[side] and not piece.is_commander:
            raise DraftConstraintError("Place your Marshal first.")

        self.hands[side].pop(hand_index)
        self.board.push(target, piece)
        if piece.is_commander:
            self.draft.marshal_placed[side] = True
        self.selection = None
        logger.debug("%s: placed %s on %s", side.name, piece.type.value, target)

        if self.draft.done[side.opponent]:
            self._start_play()
            return

        # the turn is NOT handed over automatically: pass or declare done.
        self.draft.turn_moved = True
        self._notify()

    def pass_draft_turn(self) -> None:
        """Hand the draft turn to the opponent. If they are already done, play starts instead."""
        self._assert_phase(Phase.DRAFT)
        side = self.turn
        if self.draft.done[side.opponent]:
            if not self.draft.marshal_placed[side]:
                raise DraftConstraintError(
                    "Place your Marshal before finishing the draft."
                )
            self._start_play()
            return

        self.draft.turn_moved = False
        self.selection = None
        self.turn = side.opponent
        self._notify()

    def declare_setup_done(self) -> None:
        """
        The side to move has finished placing pieces.
        ---

        Requires the Marshal to be on the board. When the second side is done, or both sides are, play starts.
        Otherwise the opponent keeps drafting until they place or pass once more.
        """
        self._assert_phase(Phase.DRAFT)
        side = self.turn
        if not self.draft.marshal_placed[side]:
            raise DraftConstraintError("Cannot finish the draft before placing the Marshal.")

        self.draft.done[side] = True
        logger.info("%s finished the draft", side.name)
        if side == Side.SECOND or self.draft.done[side.opponent]:
            self._start_play()
            return

        self.turn = side.opponent
        self.draft.turn_moved = False
        self.selection = None
        self._notify()

    # -- PRIVATE HELPERS ---
    def _require_ruleset(self) -> Ruleset:
        if self.ruleset is None:
            raise GameStateError("No level chosen yet.")
        return self.ruleset

    def _assert_phase(self, phase: Phase) -> None:
        if self.phase != phase:
            raise GameStateError(
                f"Not allowed in phase {self.phase.name.lower()} (requires {phase.name.lower()})."
            )

    def _assert_your_piece(self, square: Square) -> None:
        piece = self.board.top_piece(square)
        if piece is None:
            raise IllegalActionError(f"No piece to move on {square}")
        if piece.side != self.turn:
            raise NotYourTurnError(
                f"It is not your turn. Waiting for {self.turn.name.lower()} to move first."
            )

    def _assert_can_place_this_turn(self) -> None:
        if self.draft.turn_moved:
            raise DraftConstraintError(
                "Already placed a piece this turn. Pass the turn or declare your setup done."
            )

    def _hand_piece(self, hand_index: int) -> Piece:
        hand = self.hands[self.turn]
        if not 0 <= hand_index < len(hand):
            raise IllegalActionError(f"No piece at hand index {hand_index}")
        return hand[hand_index]

    def _capture_opposing_pieces(self, target: Square) -> None:
        """Consecutive capture: keep taking the top piece while it belongs to the opponent"""
        while True:
            top = self.board.top_piece(target)
            if top is None or top.side == self.turn:
                break
            captured = self.board.pop(target)
            if captured is not None and captured.is_commander:
                self.winner = self.turn
                logger.info("%s captured the Marshal", self.turn.name)

    def _betray(self, target: Square, mover: Piece) -> None:
        """
        The opposing top piece is discarded, replaced by a piece of the same type from our own hand, and the Spy lands on top.
        If our hand has no such piece (the move generator should never offer this), fall back to stacking.
        """
        target_piece = self.board.top_piece(target)
        hand = self.hands[self.turn]
        hand_index = next(
            (
                idx
                for idx, hand_piece in enumerate(hand)
                if target_piece is not None and hand_piece.type == target_piece.type
            ),
            None,
        )

        if hand_index is None:
            error = BetrayalInventoryError(
                f"No {target_piece.type.value if target_piece else 'piece'} in hand of {self.turn.name} "
                f"to exchange on {target}. Stacking instead."
            )
            self.consistency_errors.append(error)
            logger.error("Betrayal failed: %s", error)
            self.board.push(target, mover)
            return

        exchange_piece = hand.pop(hand_index)
        self.board.pop(target)
        self.board.push(target, exchange_piece)
        self.board.push(target, mover)

    def _finish_turn(self) -> None:
        self.selection = None
        if self.winner is not None:
            self.phase = Phase.FINISHED
        self.turn = self.turn.opponent
        self._notify()

    def _start_play(self) -> None:
        self.phase = Phase.PLAYING
        self.turn = Side.FIRST
        self.draft.turn_moved = False
        self.selection = None
        logger.info("Draft finished, play starts")
        self._notify()

    def _notify(self) -> None:
        for observer in self.observers:
            observer(self)
