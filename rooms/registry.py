"""
SessionRegistry: owns every RoomSession and runs the inbound operations.

The registry maps room ids to sessions and identities to the room they are
in. Each public coroutine corresponds to one inbound action. It takes the
room's lock, mutates through RoomSession, broadcasts the new state while
still holding the lock, and arms the AIScheduler when the computer is left
to move. Rejected requests raise a RoomError before anything is mutated.

Rooms are created on first reference and destroyed as soon as no human seat
and no spectator remain. Destruction marks the session closed and disarms
its pending computer move.
"""

import logging
import random
import secrets
from dataclasses import dataclass

from engine.rules import MoveCandidate
from rooms.errors import (
    InvalidRoomIdError,
    ModeMismatchError,
    NotYourSideError,
    RoomNotFoundError,
)
from rooms.models import Difficulty, RoomMode, Side
from rooms.notifier import Notifier
from rooms.scheduler import AIScheduler
from rooms.seating import SeatDecision, choose_seat
from rooms.session import RoomSession

_log = logging.getLogger(__name__)

MAX_ROOM_ID_LENGTH = 24
COMPUTER_ROOM_PREFIX = "ai-"


@dataclass(frozen=True)
class JoinResult:
    room_id: str
    side: Side | None
    mode: RoomMode

    def to_dict(self) -> dict:
        return {
            "roomId": self.room_id,
            "side": self.side.value if self.side else "spectator",
            "mode": self.mode.value,
        }


def normalize_room_id(value: str | None) -> str:
    """
    Trim, lower-case and truncate a room code.

    Raises:
        InvalidRoomIdError: Nothing is left after trimming.
    """
    room_id = str(value or "").strip().lower()[:MAX_ROOM_ID_LENGTH]
    if not room_id:
        raise InvalidRoomIdError()
    return room_id


class SessionRegistry:
    """
    Room id -> RoomSession, plus identity -> room id membership.

    Args:
        notifier:    Receives every outbound event.
        ai_delay_ms: Thinking time before a computer move.
        rng:         Random source for easy computer play.
    """

    def __init__(self, notifier: Notifier, ai_delay_ms: int = 450, rng: random.Random | None = None) -> None:
        self.notifier = notifier
        self.scheduler = AIScheduler(self, delay_ms=ai_delay_ms, rng=rng)
        self._rooms: dict[str, RoomSession] = {}
        self._membership: dict[str, str] = {}

    # -----------------------------------------------------------------------
    # Lookup and lifecycle
    # -----------------------------------------------------------------------

    def get(self, room_id: str) -> RoomSession | None:
        return self._rooms.get(room_id)

    def __contains__(self, room_id: str) -> bool:
        return room_id in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)

    def room_of(self, identity: str) -> RoomSession | None:
        room_id = self._membership.get(identity)
        return self._rooms.get(room_id) if room_id else None

    def _create(self, room_id: str, mode: RoomMode, difficulty: Difficulty | None) -> RoomSession:
        room = RoomSession(room_id, mode, difficulty)
        self._rooms[room_id] = room
        _log.info("room %s created (mode=%s)", room_id, mode.value)
        return room

    def _destroy(self, room: RoomSession) -> None:
        room.closed = True
        self._rooms.pop(room.id, None)
        self.scheduler.disarm(room.id)
        _log.info("room %s destroyed", room.id)

    def _new_computer_room_id(self) -> str:
        while True:
            room_id = f"{COMPUTER_ROOM_PREFIX}{secrets.token_hex(3)}"
            if room_id not in self._rooms:
                return room_id

    def _require_member_room(self, identity: str) -> RoomSession:
        room_id = self._membership.get(identity)
        if room_id is None:
            raise NotYourSideError()
        room = self._rooms.get(room_id)
        if room is None or room.closed:
            raise RoomNotFoundError(room_id)
        return room

    # -----------------------------------------------------------------------
    # Broadcasts
    # -----------------------------------------------------------------------

    def list_rooms(self) -> list[dict]:
        """Summaries of every live room, oldest first. Read only."""
        return [room.summary() for room in self._rooms.values()]

    async def broadcast_state(self, room: RoomSession) -> None:
        await self.notifier.publish(room.members(), "gameState", room.state_payload())

    async def broadcast_room_list(self) -> None:
        await self.notifier.publish_all("roomList", self.list_rooms())

    async def send_room_list(self, identity: str) -> None:
        await self.notifier.send(identity, "roomList", self.list_rooms())

    # -----------------------------------------------------------------------
    # Joining
    # -----------------------------------------------------------------------

    async def join(
        self,
        identity: str,
        display_name: str,
        room_id: str,
        requested_side: Side | None = None,
        mode: RoomMode | None = None,
        difficulty: Difficulty | None = None,
    ) -> JoinResult:
        """
        Seat ``identity`` in ``room_id``, creating the room if ``mode`` is given.

        A ``mode`` of None means "whatever the room is" and requires the room
        to exist. The previous room, if any, is only left once the new seat
        is taken, so a rejected join changes nothing. Joining the room one is
        already in keeps the current seat; a spectator may pick up a free one.

        Raises:
            InvalidRoomIdError, ModeMismatchError, SeatUnavailableError,
            RoomNotFoundError.
        """
        room_id = normalize_room_id(room_id)
        previous = self._membership.get(identity)
        room = self._rooms.get(room_id)
        if room is None:
            if mode is None:
                raise RoomNotFoundError(room_id)
            room = self._create(room_id, mode, difficulty)

        async with room.lock:
            if room.closed:
                raise RoomNotFoundError(room_id)
            if previous == room.id and identity in room.members():
                decision = self._reseat(room, identity, display_name, requested_side, mode)
            else:
                decision = choose_seat(room, requested_side, mode)
                room.seat_player(identity, display_name, decision)
            self._membership[identity] = room.id
            result = JoinResult(room.id, decision.side, room.mode)
            _log.info(
                "%s joined %s as %s%s",
                identity,
                room.id,
                result.to_dict()["side"],
                " (took over computer)" if decision.takeover else "",
            )
            await self.notifier.send(identity, "joined", result.to_dict())
            await self.broadcast_state(room)
            self.scheduler.arm(room)

        if previous is not None and previous != room.id:
            await self._vacate(identity, previous)
        await self.broadcast_room_list()
        return result

    @staticmethod
    def _reseat(
        room: RoomSession,
        identity: str,
        display_name: str,
        requested_side: Side | None,
        mode: RoomMode | None,
    ) -> SeatDecision:
        """Join request for the room ``identity`` is already in."""
        if mode is not None and mode is not room.mode:
            raise ModeMismatchError(room.id, room.mode.value)
        side = room.side_of(identity)
        if side is not None:
            return SeatDecision(side)
        decision = choose_seat(room, requested_side, mode)
        if not decision.spectator:
            room.seat_player(identity, display_name, decision)
        return decision

    async def start_computer_game(
        self,
        identity: str,
        display_name: str,
        preferred_side: Side | None = None,
        difficulty: Difficulty = Difficulty.MEDIUM,
    ) -> JoinResult:
        """Open a fresh computer room and seat ``identity`` against the engine."""
        room_id = self._new_computer_room_id()
        return await self.join(
            identity,
            display_name,
            room_id,
            requested_side=preferred_side,
            mode=RoomMode.VS_COMPUTER,
            difficulty=difficulty,
        )

    async def spectate(self, identity: str, room_id: str) -> JoinResult:
        """
        Watch an existing room without taking a seat.

        A player spectating their own room gives up the seat in place; the
        room survives because they stay in it.
        """
        room_id = normalize_room_id(room_id)
        previous = self._membership.get(identity)
        room = self._rooms.get(room_id)
        if room is None:
            raise RoomNotFoundError(room_id)

        async with room.lock:
            if room.closed:
                raise RoomNotFoundError(room_id)
            changed = room.vacate(identity) if previous == room.id else False
            room.add_spectator(identity)
            self._membership[identity] = room.id
            result = JoinResult(room.id, None, room.mode)
            await self.notifier.send(identity, "joined", result.to_dict())
            await self.broadcast_state(room)
            if changed:
                self.scheduler.arm(room)

        if previous is not None and previous != room.id:
            await self._vacate(identity, previous)
        await self.broadcast_room_list()
        return result

    async def join_listed_room(
        self,
        identity: str,
        room_id: str,
        action: str,
        preferred_side: Side | None = None,
        display_name: str = "Guest",
    ) -> JoinResult:
        """Play in or spectate a room picked from the room list."""
        if action == "spectate":
            return await self.spectate(identity, room_id)
        room_id = normalize_room_id(room_id)
        if room_id not in self._rooms:
            raise RoomNotFoundError(room_id)
        return await self.join(identity, display_name, room_id, requested_side=preferred_side)

    # -----------------------------------------------------------------------
    # Leaving
    # -----------------------------------------------------------------------

    async def leave(self, identity: str) -> None:
        """Remove ``identity`` from its room, if any."""
        room_id = self._membership.pop(identity, None)
        if room_id is None:
            return
        await self._vacate(identity, room_id)
        await self.broadcast_room_list()

    disconnect = leave

    async def _vacate(self, identity: str, room_id: str) -> None:
        """
        Take ``identity`` out of ``room_id`` without touching membership.

        Destroys the room when no human seat and no spectator remain;
        otherwise broadcasts the new state and arms the computer if it
        inherited the side to move.
        """
        room = self._rooms.get(room_id)
        if room is None:
            return

        async with room.lock:
            if room.closed:
                return
            changed = room.vacate(identity)
            if room.is_abandoned():
                self._destroy(room)
            else:
                await self.broadcast_state(room)
                if changed:
                    self.scheduler.arm(room)

    # -----------------------------------------------------------------------
    # Playing
    # -----------------------------------------------------------------------

    async def make_move(
        self,
        identity: str,
        from_sq: str,
        to_sq: str,
        promotion: str | None = None,
    ) -> MoveCandidate:
        """
        Play a move for the side ``identity`` holds.

        Raises:
            NotYourSideError, NotYourTurnError, IllegalMoveError,
            RoomNotFoundError.
        """
        room = self._require_member_room(identity)
        async with room.lock:
            if room.closed:
                raise RoomNotFoundError(room.id)
            played = room.play(identity, from_sq, to_sq, promotion)
            await self.broadcast_state(room)
            self.scheduler.arm(room)
        return played

    async def reset(self, identity: str) -> None:
        """
        Restart the game in ``identity``'s room.

        Raises:
            NotYourSideError, RoomNotFoundError.
        """
        room = self._require_member_room(identity)
        async with room.lock:
            if room.closed:
                raise RoomNotFoundError(room.id)
            room.reset(identity)
            _log.info("room %s reset by %s", room.id, identity)
            await self.broadcast_state(room)
            self.scheduler.arm(room)

    async def legal_moves(self, identity: str, from_square: str) -> list[MoveCandidate]:
        """
        Send ``identity`` the legal moves from ``from_square``.

        Spectators, players off turn and identities in no room get an empty
        list rather than an error.
        """
        room = self.room_of(identity)
        moves = room.legal_moves(identity, from_square) if room is not None else []
        await self.notifier.send(
            identity,
            "legalMoves",
            {"from": from_square, "moves": [move.to_dict() for move in moves]},
        )
        return moves

    async def shutdown(self) -> None:
        await self.scheduler.shutdown()
