import pytest

from rooms.errors import (
    IllegalMoveError,
    InvalidRoomIdError,
    ModeMismatchError,
    NotYourSideError,
    NotYourTurnError,
    RoomNotFoundError,
    SeatUnavailableError,
)
from rooms.models import COMPUTER, EMPTY, Difficulty, HumanSeat, RoomMode, Side
from rooms.registry import normalize_room_id


def test_normalize_room_id():
    assert normalize_room_id("  Lobby ") == "lobby"
    assert normalize_room_id("x" * 40) == "x" * 24
    with pytest.raises(InvalidRoomIdError):
        normalize_room_id("   ")
    with pytest.raises(InvalidRoomIdError):
        normalize_room_id(None)


@pytest.mark.asyncio
async def test_join_creates_room_and_notifies(registry, notifier):
    result = await registry.join("alice", "Alice", "Lobby", Side.WHITE, RoomMode.PVP)
    assert result.to_dict() == {"roomId": "lobby", "side": "w", "mode": "pvp"}

    assert notifier.received("alice", "joined") == [result.to_dict()]
    state = notifier.received("alice", "gameState")[-1]
    assert state["players"] == {"white": "Alice", "black": "Waiting..."}
    # Everyone connected hears about the new room.
    assert notifier.received("carol", "roomList")[-1][0]["roomId"] == "lobby"


@pytest.mark.asyncio
async def test_second_and_third_players(registry, notifier):
    await registry.join("alice", "Alice", "lobby", None, RoomMode.PVP)
    second = await registry.join("bob", "Bob", "lobby", Side.WHITE, RoomMode.PVP)
    third = await registry.join("carol", "Carol", "lobby", None, RoomMode.PVP)
    assert second.side is Side.BLACK
    assert third.side is None
    assert third.to_dict()["side"] == "spectator"

    state = notifier.received("alice", "gameState")[-1]
    assert state["spectators"] == 1
    assert notifier.received("carol", "gameState")[-1] == state


@pytest.mark.asyncio
async def test_mode_mismatch_leaves_room_unchanged(registry):
    await registry.join("alice", "Alice", "lobby", None, RoomMode.PVP)
    room = registry.get("lobby")
    generation = room.generation
    with pytest.raises(ModeMismatchError):
        await registry.join("bob", "Bob", "lobby", None, RoomMode.VS_COMPUTER)
    assert room.generation == generation
    assert room.seats[Side.BLACK] == EMPTY
    assert registry.room_of("bob") is None


@pytest.mark.asyncio
async def test_rejected_join_keeps_previous_membership(registry):
    await registry.start_computer_game("alice", "Alice", Side.WHITE)
    ai_room = registry.room_of("alice")
    await registry.join("bob", "Bob", "lobby", None, RoomMode.PVP)

    with pytest.raises(SeatUnavailableError):
        await registry.join_listed_room("bob", ai_room.id, "play", Side.WHITE, "Bob")
    assert registry.room_of("bob").id == "lobby"


@pytest.mark.asyncio
async def test_invalid_room_id(registry):
    with pytest.raises(InvalidRoomIdError):
        await registry.join("alice", "Alice", "  ", None, RoomMode.PVP)
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_last_player_leaving_destroys_room(registry, notifier):
    await registry.join("alice", "Alice", "lobby", None, RoomMode.PVP)
    await registry.disconnect("alice")
    assert "lobby" not in registry
    assert registry.list_rooms() == []
    assert notifier.received("bob", "roomList")[-1] == []


@pytest.mark.asyncio
async def test_spectator_keeps_room_alive(registry):
    await registry.join("alice", "Alice", "lobby", None, RoomMode.PVP)
    await registry.spectate("carol", "lobby")
    await registry.leave("alice")
    assert "lobby" in registry
    await registry.leave("carol")
    assert "lobby" not in registry


@pytest.mark.asyncio
async def test_sole_human_leaving_computer_room_destroys_it(registry):
    result = await registry.start_computer_game("alice", "Alice", Side.WHITE, Difficulty.HARD)
    room = registry.get(result.room_id)
    assert room.seats == {Side.WHITE: HumanSeat("alice", "Alice"), Side.BLACK: COMPUTER}

    await registry.leave("alice")
    assert room.seats == {Side.WHITE: EMPTY, Side.BLACK: COMPUTER}
    assert room.closed
    assert result.room_id not in registry
    assert registry.list_rooms() == []


@pytest.mark.asyncio
async def test_computer_room_with_spectator_survives_human_leaving(registry):
    result = await registry.start_computer_game("alice", "Alice", Side.WHITE)
    await registry.spectate("carol", result.room_id)
    await registry.leave("alice")
    room = registry.get(result.room_id)
    assert room is not None
    assert room.seats == {Side.WHITE: EMPTY, Side.BLACK: COMPUTER}

    # A newcomer fills the empty side and keeps the computer opponent.
    rejoin = await registry.join_listed_room("bob", result.room_id, "play", None, "Bob")
    assert rejoin.side is Side.WHITE
    assert room.seats[Side.BLACK] == COMPUTER


@pytest.mark.asyncio
async def test_takeover_and_handback(registry):
    result = await registry.start_computer_game("alice", "Alice", Side.WHITE)
    room = registry.get(result.room_id)
    await registry.make_move("alice", "e2", "e4")
    assert registry.scheduler.pending(room.id)

    takeover = await registry.join_listed_room("bob", room.id, "play", None, "Bob")
    assert takeover.side is Side.BLACK
    assert room.seats[Side.BLACK] == HumanSeat("bob", "Bob")

    # Bob leaves on Black's turn: the computer inherits the seat and is armed.
    registry.scheduler.disarm(room.id)
    await registry.leave("bob")
    assert room.seats[Side.BLACK] == COMPUTER
    assert registry.scheduler.pending(room.id)


@pytest.mark.asyncio
async def test_make_move_errors(registry):
    await registry.join("alice", "Alice", "lobby", None, RoomMode.PVP)
    await registry.join("bob", "Bob", "lobby", None, RoomMode.PVP)
    await registry.spectate("carol", "lobby")

    with pytest.raises(NotYourSideError):
        await registry.make_move("carol", "e2", "e4")
    with pytest.raises(NotYourTurnError):
        await registry.make_move("bob", "e7", "e5")
    with pytest.raises(IllegalMoveError):
        await registry.make_move("alice", "e2", "e5")
    with pytest.raises(NotYourSideError):
        await registry.make_move("nobody", "e2", "e4")
    assert registry.get("lobby").generation == 2


@pytest.mark.asyncio
async def test_make_move_broadcasts_to_room(registry, notifier):
    await registry.join("alice", "Alice", "lobby", None, RoomMode.PVP)
    await registry.join("bob", "Bob", "lobby", None, RoomMode.PVP)
    notifier.clear()

    await registry.make_move("alice", "e2", "e4")
    for identity in ("alice", "bob"):
        state = notifier.received(identity, "gameState")[-1]
        assert state["lastMoveSan"] == "e4"
        assert state["lastMoveBy"] == "w"
        assert state["turn"] == "b"
    assert notifier.received("carol") == []


@pytest.mark.asyncio
async def test_reset(registry, notifier):
    await registry.join("alice", "Alice", "lobby", None, RoomMode.PVP)
    await registry.spectate("carol", "lobby")
    await registry.make_move("alice", "e2", "e4")

    with pytest.raises(NotYourSideError):
        await registry.reset("carol")
    await registry.reset("alice")
    state = notifier.received("carol", "gameState")[-1]
    assert state["lastMoveSan"] is None
    assert state["turn"] == "w"


@pytest.mark.asyncio
async def test_join_listed_room_requires_existing_room(registry):
    with pytest.raises(RoomNotFoundError):
        await registry.join_listed_room("alice", "ghost", "play")
    with pytest.raises(RoomNotFoundError):
        await registry.join_listed_room("alice", "ghost", "spectate")


@pytest.mark.asyncio
async def test_switching_rooms_leaves_previous_one(registry):
    await registry.join("alice", "Alice", "one", None, RoomMode.PVP)
    await registry.join("alice", "Alice", "two", None, RoomMode.PVP)
    assert "one" not in registry
    assert registry.room_of("alice").id == "two"


@pytest.mark.asyncio
async def test_legal_moves_event(registry, notifier):
    await registry.join("alice", "Alice", "lobby", None, RoomMode.PVP)
    await registry.join("bob", "Bob", "lobby", None, RoomMode.PVP)

    await registry.legal_moves("alice", "g1")
    payload = notifier.received("alice", "legalMoves")[-1]
    assert payload["from"] == "g1"
    assert {m["to"] for m in payload["moves"]} == {"f3", "h3"}

    await registry.legal_moves("bob", "g8")
    assert notifier.received("bob", "legalMoves")[-1]["moves"] == []


@pytest.mark.asyncio
async def test_list_rooms_summary(registry):
    await registry.join("alice", "Alice", "lobby", Side.BLACK, RoomMode.PVP)
    await registry.start_computer_game("bob", "Bob", None, Difficulty.EASY)
    rooms = registry.list_rooms()
    assert [r["mode"] for r in rooms] == ["pvp", "ai"]
    assert rooms[0]["openSides"] == ["w"]
    assert rooms[0]["canPlay"] is True
    assert rooms[1]["aiLevel"] == "easy"
    assert rooms[1]["roomId"].startswith("ai-")


@pytest.mark.asyncio
async def test_rejoin_with_wrong_mode_keeps_seat(registry):
    result = await registry.start_computer_game("alice", "Alice", Side.WHITE)
    await registry.spectate("carol", result.room_id)
    room = registry.get(result.room_id)
    generation = room.generation

    with pytest.raises(ModeMismatchError):
        await registry.join("alice", "Alice", result.room_id, None, RoomMode.PVP)
    assert room.seats == {Side.WHITE: HumanSeat("alice", "Alice"), Side.BLACK: COMPUTER}
    assert room.generation == generation
    assert registry.room_of("alice") is room


@pytest.mark.asyncio
async def test_rejoin_own_room_keeps_the_game(registry, notifier):
    result = await registry.start_computer_game("alice", "Alice", Side.WHITE)
    room = registry.get(result.room_id)
    await registry.make_move("alice", "e2", "e4")
    registry.scheduler.disarm(room.id)
    generation = room.generation

    again = await registry.join_listed_room("alice", room.id, "play", Side.BLACK, "Alice")
    assert again.side is Side.WHITE
    assert notifier.received("alice", "joined")[-1]["side"] == "w"
    assert registry.get(room.id) is room
    assert not room.closed
    assert room.generation == generation
    assert room.last_move.san == "e4"


@pytest.mark.asyncio
async def test_spectating_own_room_gives_up_seat_in_place(registry):
    result = await registry.start_computer_game("alice", "Alice", Side.WHITE)
    room = registry.get(result.room_id)

    watched = await registry.join_listed_room("alice", room.id, "spectate")
    assert watched.side is None
    assert registry.get(room.id) is room
    assert room.seats == {Side.WHITE: EMPTY, Side.BLACK: COMPUTER}
    assert room.spectators == {"alice"}
    assert registry.room_of("alice") is room

    # Sitting back down from the spectator seat.
    seated = await registry.join_listed_room("alice", room.id, "play", None, "Alice")
    assert seated.side is Side.WHITE
    assert room.spectators == set()


@pytest.mark.asyncio
async def test_switching_rooms_updates_old_room(registry, notifier):
    await registry.join("alice", "Alice", "one", None, RoomMode.PVP)
    await registry.join("bob", "Bob", "one", None, RoomMode.PVP)
    await registry.join("alice", "Alice", "two", None, RoomMode.PVP)

    state = notifier.received("bob", "gameState")[-1]
    assert state["roomId"] == "one"
    assert state["players"]["white"] == "Waiting..."
    assert [r["roomId"] for r in notifier.received("carol", "roomList")[-1]] == ["one", "two"]
