"""
Pytest will auto-discover / import this file called 'conftest.py'.
This file defines fixtures/variables required for testing multiple layers.
"""

from typing import Any, Callable, Optional, Sequence

import pytest

from src.core.shared_types import Level
from src.gungi.board import Board
from src.gungi.game import Game, Phase
from src.gungi.moves import Action, ActionKind
from src.gungi.pieces import Piece, Side
from src.gungi.rulesets import RULESETS, Ruleset


# --- PRESENTATION LAYER / TRANSPORT DOUBLES ---
class FakePresenter:
    """Records every call. Prompts answer with whatever the test queued up."""

    def __init__(self) -> None:
        self.renders: list[str] = []
        self.highlights: list[list[Action]] = []
        self.messages: list[str] = []
        self.winners: list[Side] = []
        self.prompted_kinds: list[list[ActionKind]] = []
        self.kind_answer: Optional[ActionKind] = None
        self.level_answer: Level = Level.BEGINNER

    def render(self, game: Game) -> None:
        self.renders.append(game.board.to_notation())

    def highlight_candidates(self, actions: Sequence[Action]) -> None:
        self.highlights.append(list(actions))

    async def prompt_action_kind(
        self, kinds: Sequence[ActionKind]
    ) -> Optional[ActionKind]:
        self.prompted_kinds.append(list(kinds))
        return self.kind_answer

    def announce_winner(self, side: Side) -> None:
        self.winners.append(side)

    async def prompt_level_choice(self) -> Level:
        return self.level_answer

    def show_message(self, text: str) -> None:
        self.messages.append(text)


class LoopbackTransport:
    """One end of an in-memory connection. Delivers synchronously to the other end."""

    def __init__(self) -> None:
        self.peer: Optional["LoopbackTransport"] = None
        self.handler: Optional[Callable[[Any], None]] = None
        self.sent: list[dict[str, Any]] = []

    def send(self, message: dict[str, Any]) -> None:
        self.sent.append(message)
        if self.peer is not None and self.peer.handler is not None:
            self.peer.handler(message)

    def on_message(self, handler: Callable[[Any], None]) -> None:
        self.handler = handler


@pytest.fixture
def transports() -> tuple[LoopbackTransport, LoopbackTransport]:
    """Two connected ends: (host, client)"""
    host_end, client_end = LoopbackTransport(), LoopbackTransport()
    host_end.peer, client_end.peer = client_end, host_end
    return host_end, client_end


@pytest.fixture
def presenter() -> FakePresenter:
    return FakePresenter()


@pytest.fixture
def client_presenter() -> FakePresenter:
    """Second presenter, for the client of an online match"""
    return FakePresenter()


# --- GAMES ---
def game_from_layout(
    layout: str,
    ruleset: Ruleset,
    turn: Side = Side.FIRST,
    hands: Optional[dict[Side, list[Piece]]] = None,
) -> Game:
    """A game in the playing phase with an arbitrary board"""
    return Game(
        board=Board.from_notation(layout),
        hands=hands if hands is not None else {side: [] for side in Side},
        turn=turn,
        phase=Phase.PLAYING,
        ruleset=ruleset,
    )


@pytest.fixture
def make_game() -> Callable[..., Game]:
    return game_from_layout


@pytest.fixture
def beginner_game() -> Game:
    game = Game.new()
    game.start_level(RULESETS[Level.BEGINNER])
    return game


@pytest.fixture
def draft_game() -> Game:
    game = Game.new()
    game.start_level(RULESETS[Level.INTERMEDIATE])
    return game
