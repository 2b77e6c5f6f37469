"""Unit tests for src/services/match_service.py"""

import logging
from typing import Any

import pytest

from src.core.shared_types import Level
from src.gungi.board import Board
from src.gungi.game import Phase
from src.gungi.moves import ActionKind
from src.gungi.pieces import Side
from src.gungi.rulesets import Ruleset, SetupKind
from src.gungi.square import Square
from src.services.match_service import MatchService, Role


@pytest.fixture
def local_service(presenter: Any) -> MatchService:
    service = MatchService(presenter)
    service.start_level("beginner")
    return service


@pytest.fixture
def online(
    transports: tuple[Any, Any], presenter: Any, client_presenter: Any
) -> tuple[MatchService, MatchService]:
    """(host, client) connected to each other. The host plays with `presenter`."""
    host_end, client_end = transports
    host = MatchService(presenter, host_end, Role.HOST)
    client = MatchService(client_presenter, client_end, Role.CLIENT)
    return host, client


async def make_pawns_meet(service: MatchService) -> None:
    """Beginner layout: after these moves the second side's pawn on (3, 4) faces the first side's pawn on (4, 4)"""
    assert await service.try_move(Square(6, 4), Square(5, 4))
    assert await service.try_move(Square(2, 4), Square(3, 4))
    assert await service.try_move(Square(5, 4), Square(4, 4))


# -- CREATION LOGIC --
def test_online_role_requires_transport(presenter: Any, transports: Any) -> None:
    with pytest.raises(ValueError):
        MatchService(presenter, role=Role.HOST)
    with pytest.raises(ValueError):
        MatchService(presenter, transports[0], Role.LOCAL)


def test_start_level(local_service: MatchService, presenter: Any) -> None:
    assert local_service.game.phase == Phase.PLAYING
    assert local_service.local_side is None
    assert presenter.renders


def test_unknown_level_is_shown(presenter: Any) -> None:
    service = MatchService(presenter)
    assert not service.start_level("expert")
    assert service.game.phase == Phase.SETUP
    assert "Unknown level" in presenter.messages[-1]


@pytest.mark.asyncio
async def test_choose_level_asks_the_presenter(presenter: Any) -> None:
    presenter.level_answer = Level.INTERMEDIATE
    service = MatchService(presenter)
    assert await service.choose_level()
    assert service.game.phase == Phase.DRAFT


def test_restart(local_service: MatchService) -> None:
    assert local_service.restart()
    assert local_service.game.phase == Phase.SETUP


def test_start_custom_ruleset(presenter: Any) -> None:
    layout = "4m4/9/9/9/9/9/9/4P4/4M4"
    service = MatchService(presenter)
    assert service.start_custom_ruleset(
        {"level": "beginner", "maxStackHeight": 3, "initialLayout": layout}
    )
    assert service.game.phase == Phase.PLAYING
    assert service.game.board.to_notation() == layout
    assert service.game.ruleset is not None
    assert service.game.ruleset.max_stack_height == 3


def test_invalid_custom_ruleset_is_shown(presenter: Any) -> None:
    service = MatchService(presenter)
    assert not service.start_custom_ruleset({"level": "beginner", "maxStack": 3})
    assert service.game.phase == Phase.SETUP
    assert "Invalid ruleset configuration" in presenter.messages[-1]


def test_custom_ruleset_is_local_only(
    online: tuple[MatchService, MatchService], presenter: Any
) -> None:
    host, client = online
    assert not host.start_custom_ruleset({"level": "beginner"})
    assert host.game.phase == Phase.SETUP
    assert client.game.phase == Phase.SETUP
    assert "only available for local matches" in presenter.messages[-1]


# -- LOCAL PLAY --
@pytest.mark.asyncio
async def test_single_kind_move_needs_no_prompt(
    local_service: MatchService, presenter: Any
) -> None:
    assert await local_service.try_move(Square(6, 4), Square(5, 4))
    assert local_service.game.turn == Side.SECOND
    assert presenter.prompted_kinds == []


@pytest.mark.asyncio
async def test_cancelled_prompt_changes_nothing(
    local_service: MatchService, presenter: Any
) -> None:
    await make_pawns_meet(local_service)
    before = local_service.game.to_model()

    presenter.kind_answer = None
    assert not await local_service.try_move(Square(3, 4), Square(4, 4))
    assert presenter.prompted_kinds == [[ActionKind.ATTACK, ActionKind.STACK]]
    assert local_service.game.to_model() == before


@pytest.mark.asyncio
async def test_prompted_kind_is_applied(
    local_service: MatchService, presenter: Any
) -> None:
    await make_pawns_meet(local_service)
    presenter.kind_answer = ActionKind.STACK
    assert await local_service.try_move(Square(3, 4), Square(4, 4))
    assert local_service.game.board.height(Square(4, 4)) == 2


@pytest.mark.asyncio
async def test_rejected_move_is_shown(
    local_service: MatchService, presenter: Any
) -> None:
    assert not await local_service.try_move(Square(6, 4), Square(3, 4))
    assert presenter.messages
    assert local_service.game.turn == Side.FIRST


@pytest.mark.asyncio
async def test_click_to_select_then_click_to_move(
    local_service: MatchService, presenter: Any
) -> None:
    await local_service.handle_board_click(Square(6, 4))
    assert local_service.game.selection is not None
    assert {action.target for action in presenter.highlights[-1]} == {
        Square(5, 4),
        Square(7, 4),
    }

    await local_service.handle_board_click(Square(5, 4))
    assert local_service.game.board.top_piece(Square(5, 4)) is not None
    assert local_service.game.turn == Side.SECOND


@pytest.mark.asyncio
async def test_click_on_non_candidate_reselects(local_service: MatchService) -> None:
    await local_service.handle_board_click(Square(6, 4))
    await local_service.handle_board_click(Square(6, 0))
    selection = local_service.game.selection
    assert selection is not None and selection.square == Square(6, 0)
    assert local_service.game.turn == Side.FIRST


@pytest.mark.asyncio
async def test_drop_from_hand_by_clicks(local_service: MatchService) -> None:
    local_service.handle_hand_click(Side.SECOND, 0)  # not their turn
    assert local_service.game.selection is None

    local_service.handle_hand_click(Side.FIRST, 0)
    await local_service.handle_board_click(Square(6, 1))
    assert local_service.game.board.top_piece(Square(6, 1)) is not None
    assert len(local_service.game.hands[Side.FIRST]) == 5


@pytest.mark.asyncio
async def test_draft_by_clicks(presenter: Any) -> None:
    service = MatchService(presenter)
    service.start_level("intermediate")
    service.handle_hand_click(Side.FIRST, 0)
    await service.handle_board_click(Square(7, 4))
    assert service.game.draft.marshal_placed[Side.FIRST]

    assert service.declare_done()
    assert service.game.turn == Side.SECOND
    assert not service.pass_turn()  # second side has no Marshal yet
    assert presenter.messages


@pytest.mark.asyncio
async def test_winner_is_announced_once(presenter: Any) -> None:
    service = MatchService(presenter)
    service.game.start_level(
        Ruleset(level=Level.BEGINNER, setup=SetupKind.FIXED, max_stack_height=3)
    )
    service.game.board = Board.from_notation(
        "/".join(["9", "9", "9", "9", "4[mpp]4", "4[PPP]4", "9", "9", "9"])
    )

    assert await service.try_move(Square(5, 4), Square(4, 4))
    assert presenter.winners == [Side.FIRST]
    assert service.game.phase == Phase.FINISHED

    assert not await service.try_move(Square(4, 4), Square(3, 4))
    service.game.restart()
    assert presenter.winners == [Side.FIRST]


# -- ONLINE PLAY --
@pytest.mark.asyncio
async def test_host_configures_and_moves_replicate(
    online: tuple[MatchService, MatchService], client_presenter: Any
) -> None:
    host, client = online
    assert host.start_level("beginner")
    assert host.local_side == Side.FIRST
    assert client.local_side == Side.SECOND
    assert client.game.phase == Phase.PLAYING

    assert await host.try_move(Square(6, 4), Square(5, 4))
    assert await client.try_move(Square(2, 4), Square(3, 4))
    assert host.game.to_model() == client.game.to_model()
    assert client_presenter.renders


@pytest.mark.asyncio
async def test_chosen_kind_travels_with_the_move(
    online: tuple[MatchService, MatchService], client_presenter: Any, transports: Any
) -> None:
    host, client = online
    host.start_level("beginner")

    assert await host.try_move(Square(6, 4), Square(5, 4))
    assert await client.try_move(Square(2, 4), Square(3, 4))
    assert await host.try_move(Square(5, 4), Square(4, 4))

    client_presenter.kind_answer = ActionKind.ATTACK
    assert await client.try_move(Square(3, 4), Square(4, 4))
    assert transports[1].sent[-1]["actionKind"] == "attack"
    assert host.game.board.height(Square(4, 4)) == 1
    assert host.game.to_model() == client.game.to_model()


@pytest.mark.asyncio
async def test_online_turn_guard(
    online: tuple[MatchService, MatchService], client_presenter: Any, transports: Any
) -> None:
    host, client = online
    host.start_level("beginner")
    sent_before = len(transports[1].sent)

    assert not await client.try_move(Square(2, 4), Square(3, 4))
    assert client_presenter.messages == ["Waiting for the opponent."]
    assert len(transports[1].sent) == sent_before
    assert client.select_square(Square(2, 4)) == []


def test_client_cannot_configure(
    online: tuple[MatchService, MatchService], client_presenter: Any
) -> None:
    _, client = online
    assert not client.start_level("beginner")
    assert not client.restart()
    assert client.game.phase == Phase.SETUP
    assert client_presenter.messages


def test_host_may_play_second(online: tuple[MatchService, MatchService]) -> None:
    host, client = online
    host.start_level("novice", host_is_first_side=False)
    assert host.local_side == Side.SECOND
    assert client.local_side == Side.FIRST
    assert client.game.ruleset == host.game.ruleset


def test_online_draft(online: tuple[MatchService, MatchService]) -> None:
    host, client = online
    host.start_level("intermediate")

    assert host.try_draft_drop(0, Square(7, 4))
    assert host.declare_done()
    assert client.game.turn == Side.SECOND
    assert client.try_draft_drop(0, Square(1, 4))

    assert host.game.phase == client.game.phase == Phase.PLAYING
    assert host.game.to_model() == client.game.to_model()


# -- REMOTE INPUT --
@pytest.mark.parametrize(
    "payload",
    [
        {"kind": "CASTLE"},
        {"kind": "MOVE", "fromRow": 6, "fromCol": 4, "toRow": 3, "toCol": 4, "actionKind": "move"},
        {"kind": "DROP", "handIndex": 99, "row": 2, "col": 1},
        "{broken json",
    ],
)
def test_invalid_remote_messages_are_dropped(
    online: tuple[MatchService, MatchService],
    payload: Any,
    caplog: pytest.LogCaptureFixture,
) -> None:
    host, client = online
    host.start_level("beginner")
    before = client.game.to_model()

    with caplog.at_level(logging.WARNING):
        client.handle_message(payload)

    assert client.game.to_model() == before
    assert "Dropped remote message" in caplog.text


@pytest.mark.asyncio
async def test_remote_cannot_act_during_our_turn(
    online: tuple[MatchService, MatchService],
) -> None:
    host, client = online
    host.start_level("beginner")
    assert await host.try_move(Square(6, 4), Square(5, 4))
    before = client.game.to_model()

    # second side's turn: the client plays it, so the host may not
    client.handle_message(
        {"kind": "MOVE", "fromRow": 2, "fromCol": 4, "toRow": 3, "toCol": 4, "actionKind": "move"}
    )
    assert client.game.to_model() == before


def test_only_the_client_accepts_config(online: tuple[MatchService, MatchService]) -> None:
    host, _ = online
    host.handle_message({"kind": "CONFIG", "level": "beginner", "hostIsFirstSide": True})
    assert host.game.phase == Phase.SETUP


@pytest.mark.asyncio
async def test_remote_action_after_host_restart_is_dropped(
    online: tuple[MatchService, MatchService],
    presenter: Any,
    caplog: pytest.LogCaptureFixture,
) -> None:
    host, client = online
    host.start_level("beginner")
    assert await host.try_move(Square(6, 4), Square(5, 4))
    assert host.restart()

    # the client was not told and plays on
    with caplog.at_level(logging.WARNING):
        assert await client.try_move(Square(2, 4), Square(3, 4))

    assert host.game.phase == Phase.SETUP
    assert "opponent is still playing the previous match" in presenter.messages[-1]
    assert "Dropped remote message" in caplog.text
