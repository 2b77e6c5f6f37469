"""
Orchestration of a match: presentation layer (input, rendering, prompts) <-> Game <-> remote peer.

The Game itself is synchronous. The only places a match waits are the prompts of the presentation layer
(which action kind? which level?), and every mutation happens after the answer came back.
"""

import logging
from enum import Enum, auto
from typing import Any, Callable, Optional, Protocol, Sequence

from src.api.messages import (
    ConfigMessage,
    DoneMessage,
    DraftDropMessage,
    DropMessage,
    Message,
    MoveMessage,
    PassMessage,
    WireMessage,
    encode_message,
    parse_message,
)
from src.api.models import load_ruleset
from src.core.exceptions import (
    GameError,
    GameStateError,
    NotYourTurnError,
    RemoteProtocolError,
)
from src.core.shared_types import ActionKind as WireActionKind
from src.core.shared_types import Level
from src.gungi.game import Game, Phase
from src.gungi.moves import Action, ActionKind
from src.gungi.pieces import Side
from src.gungi.rulesets import Ruleset, get_ruleset
from src.gungi.square import Square

logger = logging.getLogger(__name__)

MessageHandler = Callable[[Any], None]


class Presenter(Protocol):
    """Whatever shows the match to the local player (a browser page, a terminal, a test double)"""

    def render(self, game: Game) -> None: ...

    def highlight_candidates(self, actions: Sequence[Action]) -> None: ...

    async def prompt_action_kind(
        self, kinds: Sequence[ActionKind]
    ) -> Optional[ActionKind]:
        """Ask which action to take on a cell that allows several. None: the player cancelled."""
        ...

    def announce_winner(self, side: Side) -> None: ...

    async def prompt_level_choice(self) -> Level: ...

    def show_message(self, text: str) -> None:
        """User-facing message, ex. why an action got rejected"""
        ...


class Transport(Protocol):
    """Reliable, ordered delivery of messages between exactly two peers"""

    def send(self, message: dict[str, Any]) -> None: ...

    def on_message(self, handler: MessageHandler) -> None: ...


class Role(Enum):
    LOCAL = auto()  # both sides play on this device
    HOST = auto()  # online: chooses the level
    CLIENT = auto()  # online: receives the level from the host


class MatchService:
    """Owns the Game of one match."""

    def __init__(
        self,
        presenter: Presenter,
        transport: Optional[Transport] = None,
        role: Role = Role.LOCAL,
    ) -> None:
        if (transport is None) != (role == Role.LOCAL):
            raise ValueError("An online role requires a transport, a local match must not have one.")

        self.presenter = presenter
        self.transport = transport
        self.role = role
        self.game = Game.new()
        self.game.subscribe(self._on_game_changed)
        # side played on this device in an online match (None: both sides)
        self.local_side: Optional[Side] = None
        self._winner_announced = False

        if self.transport is not None:
            self.transport.on_message(self.handle_message)

    @property
    def is_online(self) -> bool:
        return self.role != Role.LOCAL

    # -- Level selection ---
    async def choose_level(self, host_is_first_side: bool = True) -> bool:
        """Ask the presentation layer for the level, then start it."""
        if not self._may_configure():
            self.presenter.show_message("Only the host can choose the level.")
            return False
        level = await self.presenter.prompt_level_choice()
        return self.start_level(level, host_is_first_side)

    def start_level(self, level: str, host_is_first_side: bool = True) -> bool:
        """
        Start a match at the given level.
        ----

        Online, only the host does this: it picks its side and sends the configuration to the client first.
        """
        if not self._may_configure():
            self.presenter.show_message("Only the host can choose the level.")
            return False

        try:
            ruleset = get_ruleset(level)
        except GameError as exc:
            self.presenter.show_message(str(exc))
            return False

        if self.role == Role.HOST:
            self.local_side = Side.FIRST if host_is_first_side else Side.SECOND
            self._send(ConfigMessage(level=ruleset.level, host_is_first_side=host_is_first_side))

        self._start(ruleset)
        return True

    def start_custom_ruleset(self, data: dict[str, Any]) -> bool:
        """
        Start a local match from an externally supplied ruleset configuration (see RulesetConfig).
        ----

        Local matches only: the CONFIG message tells the client a level, not a whole ruleset.
        """
        if self.is_online:
            self.presenter.show_message("Custom rulesets are only available for local matches.")
            return False

        try:
            ruleset = load_ruleset(data)
        except GameError as exc:
            self.presenter.show_message(str(exc))
            return False

        self._start(ruleset)
        return True

    def restart(self) -> bool:
        """
        Back to level selection.
        ----

        The remote peer is not told. Until a new level is started, its actions are dropped and the player is told why.
        """
        if not self._may_configure():
            self.presenter.show_message("Only the host can change the level.")
            return False
        self.game.restart()
        return True

    # -- Local input ---
    async def handle_board_click(self, square: Square) -> None:
        """
        A click on a board cell.
        ----

        * draft: place the piece picked up from hand
        * play: if the cell is a candidate of the current selection, act on it. Otherwise (try to) select the cell.
        """
        if self.game.winner is not None or not self._is_local_turn():
            return

        selection = self.game.selection
        if self.game.phase == Phase.DRAFT:
            if selection is not None and selection.hand_index is not None:
                self.try_draft_drop(selection.hand_index, square)
            return

        if self.game.phase != Phase.PLAYING:
            return

        if selection is not None:
            if selection.hand_index is not None:
                candidates = self.game.drop_targets(selection.hand_index)
            elif selection.square is not None:
                candidates = self.game.legal_actions(selection.square)
            else:
                candidates = []

            if any(action.target == square for action in candidates):
                if selection.square is not None:
                    await self.try_move(selection.square, square)
                elif selection.hand_index is not None:
                    self.try_drop(selection.hand_index, square)
                return

        self.select_square(square)

    def handle_hand_click(self, side: Side, hand_index: int) -> None:
        """A click on a piece in one of the hands. Only the hand of the side to move reacts."""
        if self.game.winner is not None or side != self.game.turn:
            return
        if not self._is_local_turn():
            return
        self.select_hand(hand_index)

    def select_square(self, square: Square) -> list[Action]:
        if not self._is_local_turn():
            return []
        actions = self.game.select_square(square)
        self.presenter.render(self.game)
        self.presenter.highlight_candidates(actions)
        return actions

    def select_hand(self, hand_index: int) -> list[Action]:
        if not self._is_local_turn():
            return []
        try:
            actions = self.game.select_hand(hand_index)
        except GameError as exc:
            self.presenter.show_message(str(exc))
            return []
        self.presenter.render(self.game)
        self.presenter.highlight_candidates(actions)
        return actions

    async def try_move(self, origin: Square, target: Square) -> bool:
        """
        Move the piece on `origin` to `target`.
        ----

        When the target allows several kinds of action, the presentation layer is asked which one.
        Cancelling leaves everything as it was. Once applied, the move is sent to the remote peer.
        """
        try:
            self._assert_local_turn()
            kinds = self.game.action_kinds(origin, target)
        except GameError as exc:
            self.presenter.show_message(str(exc))
            return False

        if not kinds:
            self.presenter.show_message(f"No legal action from {origin} to {target}")
            return False

        kind: Optional[ActionKind] = kinds[0]
        if len(kinds) > 1:
            kind = await self.presenter.prompt_action_kind(kinds)
            if kind is None:
                return False
        chosen_kind = kind

        # nothing was mutated while waiting: the Game re-validates everything here
        if not self._run_local(lambda: self.game.make_move(origin, target, chosen_kind)):
            return False

        self._send(
            MoveMessage(
                from_row=origin.row,
                from_col=origin.col,
                to_row=target.row,
                to_col=target.col,
                action_kind=WireActionKind[chosen_kind.name],
            )
        )
        return True

    def try_drop(self, hand_index: int, target: Square) -> bool:
        if not self._run_local(lambda: self.game.drop_piece(hand_index, target)):
            return False
        self._send(DropMessage(hand_index=hand_index, row=target.row, col=target.col))
        return True

    def try_draft_drop(self, hand_index: int, target: Square) -> bool:
        if not self._run_local(lambda: self.game.draft_drop(hand_index, target)):
            return False
        self._send(
            DraftDropMessage(hand_index=hand_index, row=target.row, col=target.col)
        )
        return True

    def pass_turn(self) -> bool:
        if not self._run_local(self.game.pass_draft_turn):
            return False
        self._send(PassMessage())
        return True

    def declare_done(self) -> bool:
        if not self._run_local(self.game.declare_setup_done):
            return False
        self._send(DoneMessage())
        return True

    # -- Remote input ---
    def handle_message(self, payload: Any) -> None:
        """
        Apply a message of the remote peer as if it was a local action.
        ----

        Everything goes through the same Game operations (and so the same move generator) as local input.
        A message that is malformed, or whose action gets rejected, is logged and dropped. It never changes the state.
        """
        try:
            message = parse_message(payload)
            self._apply_remote(message)
        except GameError as exc:
            logger.warning("Dropped remote message %r: %s", payload, exc)

    def _apply_remote(self, message: Message) -> None:
        if isinstance(message, ConfigMessage):
            if self.role != Role.CLIENT:
                raise RemoteProtocolError("Only the host configures the match.")
            self.local_side = Side.SECOND if message.host_is_first_side else Side.FIRST
            self._start(get_ruleset(message.level))
            return

        if self.game.phase == Phase.SETUP:
            self.presenter.show_message(
                "The opponent is still playing the previous match. Choose a level to start a new one."
            )
            raise GameStateError("Remote action received before a level was chosen.")
        self._assert_remote_turn()
        if isinstance(message, MoveMessage):
            # the kind on the wire only picks between kinds we generate ourselves
            self.game.make_move(
                Square(message.from_row, message.from_col),
                Square(message.to_row, message.to_col),
                ActionKind[message.action_kind.name],
            )
        elif isinstance(message, DropMessage):
            self.game.drop_piece(message.hand_index, Square(message.row, message.col))
        elif isinstance(message, DraftDropMessage):
            self.game.draft_drop(message.hand_index, Square(message.row, message.col))
        elif isinstance(message, PassMessage):
            self.game.pass_draft_turn()
        elif isinstance(message, DoneMessage):
            self.game.declare_setup_done()

    # -- Internal helpers --
    def _start(self, ruleset: Ruleset) -> None:
        self._winner_announced = False
        self.game.start_level(ruleset)

    def _may_configure(self) -> bool:
        return self.role != Role.CLIENT

    def _is_local_turn(self) -> bool:
        return self.local_side is None or self.game.turn == self.local_side

    def _assert_local_turn(self) -> None:
        if not self._is_local_turn():
            raise NotYourTurnError("Waiting for the opponent.")

    def _assert_remote_turn(self) -> None:
        if self.is_online and self.game.turn == self.local_side:
            raise NotYourTurnError("Remote peer acted during our turn.")

    def _run_local(self, operation: Callable[[], None]) -> bool:
        """Run a Game operation for local input. Rejections are shown to the player, never raised."""
        try:
            self._assert_local_turn()
            operation()
        except GameError as exc:
            logger.debug("Rejected local action: %s", exc)
            self.presenter.show_message(str(exc))
            return False
        return True

    def _send(self, message: WireMessage) -> None:
        if self.transport is None:
            return
        self.transport.send(encode_message(message))

    def _on_game_changed(self, game: Game) -> None:
        self.presenter.render(game)
        if game.winner is not None and not self._winner_announced:
            self._winner_announced = True
            self.presenter.announce_winner(game.winner)
