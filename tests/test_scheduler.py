import asyncio
import random

import chess
import pytest

from rooms.models import COMPUTER, Difficulty, HumanSeat, RoomMode, Side
from rooms.registry import SessionRegistry
from rooms.scheduler import Ticket

from .conftest import wait_for

pytestmark = pytest.mark.asyncio


async def test_computer_replies_to_human_move(registry, notifier):
    result = await registry.start_computer_game("alice", "Alice", Side.WHITE, Difficulty.HARD)
    room = registry.get(result.room_id)
    await registry.make_move("alice", "e2", "e4")
    assert registry.scheduler.pending(room.id)

    assert await wait_for(lambda: room.last_move is not None and room.last_move.mover is Side.BLACK)
    assert room.turn is Side.WHITE
    assert not registry.scheduler.pending(room.id)

    state = notifier.received("alice", "gameState")[-1]
    assert state["lastMoveBy"] == "b"
    assert state["turn"] == "w"


async def test_computer_opens_when_human_takes_black(registry, notifier):
    result = await registry.start_computer_game("alice", "Alice", Side.BLACK, Difficulty.MEDIUM)
    room = registry.get(result.room_id)
    assert room.seats[Side.WHITE] == COMPUTER
    assert registry.scheduler.pending(room.id)

    assert await wait_for(lambda: room.turn is Side.BLACK)
    assert room.last_move.mover is Side.WHITE
    assert len(room.oracle.board.move_stack) == 1
    assert notifier.received("alice", "gameState")[-1]["lastMoveBy"] == "w"


async def test_spectators_see_computer_moves(registry, notifier):
    result = await registry.start_computer_game("alice", "Alice", Side.BLACK, Difficulty.EASY)
    await registry.spectate("carol", result.room_id)
    room = registry.get(result.room_id)

    assert await wait_for(lambda: room.turn is Side.BLACK)
    assert notifier.received("carol", "gameState")[-1]["lastMoveBy"] == "w"


async def test_stale_ticket_is_discarded(registry, notifier):
    result = await registry.start_computer_game("alice", "Alice", Side.BLACK)
    room = registry.get(result.room_id)
    stale = Ticket(room.id, room.generation, Side.WHITE)
    registry.scheduler.disarm(room.id)

    await registry.reset("alice")
    registry.scheduler.disarm(room.id)
    notifier.clear()

    assert not await registry.scheduler.fire(stale)
    assert room.last_move is None
    assert room.oracle.fen() == chess.STARTING_FEN
    assert notifier.events == []


async def test_reset_during_thinking_discards_reply(notifier):
    registry = SessionRegistry(notifier, ai_delay_ms=50, rng=random.Random(7))
    try:
        result = await registry.start_computer_game("alice", "Alice", Side.WHITE)
        room = registry.get(result.room_id)
        await registry.make_move("alice", "e2", "e4")
        await registry.reset("alice")
        updates = len(notifier.received("alice", "gameState"))

        await asyncio.sleep(0.3)
        assert room.oracle.fen() == chess.STARTING_FEN
        assert room.last_move is None
        assert len(notifier.received("alice", "gameState")) == updates
    finally:
        await registry.shutdown()


async def test_takeover_during_thinking_discards_reply(notifier):
    registry = SessionRegistry(notifier, ai_delay_ms=50, rng=random.Random(7))
    try:
        result = await registry.start_computer_game("alice", "Alice", Side.WHITE)
        room = registry.get(result.room_id)
        await registry.make_move("alice", "e2", "e4")
        await registry.join_listed_room("bob", room.id, "play", None, "Bob")

        await asyncio.sleep(0.3)
        assert room.seats[Side.BLACK] == HumanSeat("bob", "Bob")
        assert room.turn is Side.BLACK
        assert room.last_move.mover is Side.WHITE
    finally:
        await registry.shutdown()


async def test_destroyed_room_ticket_is_discarded(registry):
    result = await registry.start_computer_game("alice", "Alice", Side.BLACK)
    room = registry.get(result.room_id)
    ticket = Ticket(room.id, room.generation, Side.WHITE)

    await registry.leave("alice")
    assert room.closed
    assert not registry.scheduler.pending(room.id)
    assert not await registry.scheduler.fire(ticket)
    assert room.last_move is None


async def test_is_current(registry):
    result = await registry.start_computer_game("alice", "Alice", Side.BLACK)
    room = registry.get(result.room_id)
    registry.scheduler.disarm(room.id)
    scheduler = registry.scheduler

    ticket = Ticket(room.id, room.generation, Side.WHITE)
    assert scheduler.is_current(room, ticket)
    assert not scheduler.is_current(room, Ticket(room.id, room.generation + 1, Side.WHITE))
    assert not scheduler.is_current(room, Ticket(room.id, room.generation, Side.BLACK))

    # Same id, different session object.
    impostor = type(room)(room.id, RoomMode.VS_COMPUTER)
    assert not scheduler.is_current(impostor, ticket)


async def test_arm_is_noop_when_human_to_move(registry):
    result = await registry.start_computer_game("alice", "Alice", Side.WHITE)
    room = registry.get(result.room_id)
    assert registry.scheduler.arm(room) is None
    assert not registry.scheduler.pending(room.id)


async def test_rooms_think_independently(registry):
    first = registry.get((await registry.start_computer_game("alice", "Alice", Side.BLACK)).room_id)
    second = registry.get((await registry.start_computer_game("bob", "Bob", Side.BLACK)).room_id)

    assert await wait_for(lambda: first.turn is Side.BLACK and second.turn is Side.BLACK)
    assert first.last_move.mover is second.last_move.mover is Side.WHITE
