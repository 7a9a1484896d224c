"""
RoomSession: the mutable state of one room.

A session owns its seats, spectators, board, last-move record and the
generation token. Every state-mutating method bumps ``generation``; the
scheduler compares a captured token with the live value to decide whether a
computer move computed earlier may still be applied.

The methods here are synchronous and never await. Callers in the registry
hold ``session.lock`` around a mutation and the broadcast that follows it, so
two events for the same room never interleave.
"""

import asyncio
import datetime

import chess

from engine.rules import MoveCandidate, RulesOracle
from rooms.errors import IllegalMoveError, NotYourSideError, NotYourTurnError
from rooms.models import (
    COMPUTER,
    EMPTY,
    SIDE_ORDER,
    ComputerSeat,
    Difficulty,
    EmptySeat,
    HumanSeat,
    LastMove,
    RoomMode,
    Seat,
    Side,
)
from rooms.seating import SeatDecision


def _now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class RoomSession:
    """
    Per-room state.

    Attributes:
        id:          Normalized room identifier.
        mode:        PvP or VsComputer, fixed for the room's lifetime.
        difficulty:  Computer strength; None for PvP rooms.
        seats:       Exactly one Seat per Side.
        spectators:  Identities watching without a seat.
        oracle:      The board position and rules queries.
        last_move:   SAN and mover of the most recent move, if any.
        generation:  State version, strictly increasing on every mutation.
        closed:      Set by the registry when the room is destroyed; a
                     handler that was waiting for the lock must not use it.
    """

    def __init__(self, room_id: str, mode: RoomMode, difficulty: Difficulty | None = None) -> None:
        self.id = room_id
        self.mode = mode
        self.difficulty = difficulty if mode is RoomMode.VS_COMPUTER else None
        if self.mode is RoomMode.VS_COMPUTER and self.difficulty is None:
            self.difficulty = Difficulty.MEDIUM
        self.seats: dict[Side, Seat] = {side: EMPTY for side in SIDE_ORDER}
        self.spectators: set[str] = set()
        self.oracle = RulesOracle()
        self.last_move: LastMove | None = None
        self.generation = 0
        self.created_at = _now()
        self.updated_at = self.created_at
        self.closed = False
        self.lock = asyncio.Lock()

    # -----------------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------------

    @property
    def turn(self) -> Side:
        return Side.from_color(self.oracle.turn)

    def side_of(self, identity: str) -> Side | None:
        for side, seat in self.seats.items():
            if isinstance(seat, HumanSeat) and seat.identity == identity:
                return side
        return None

    def has_human(self) -> bool:
        return any(isinstance(seat, HumanSeat) for seat in self.seats.values())

    def is_abandoned(self) -> bool:
        return not self.has_human() and not self.spectators

    def members(self) -> list[str]:
        """Every identity that should receive this room's broadcasts."""
        seated = [seat.identity for seat in self.seats.values() if isinstance(seat, HumanSeat)]
        return seated + sorted(self.spectators)

    def computer_to_move(self) -> bool:
        return (
            self.mode is RoomMode.VS_COMPUTER
            and isinstance(self.seats[self.turn], ComputerSeat)
            and not self.oracle.is_over()
        )

    def open_sides(self) -> list[Side]:
        return [side for side in SIDE_ORDER if isinstance(self.seats[side], EmptySeat)]

    def can_play(self) -> bool:
        if self.open_sides():
            return True
        return self.mode is RoomMode.VS_COMPUTER and any(
            isinstance(seat, ComputerSeat) for seat in self.seats.values()
        )

    def legal_moves(self, identity: str, from_square: str) -> list[MoveCandidate]:
        """Moves from ``from_square`` if ``identity`` holds the side to move."""
        if self.side_of(identity) is not self.turn:
            return []
        return self.oracle.candidates(from_square)

    # -----------------------------------------------------------------------
    # Mutation
    # -----------------------------------------------------------------------

    def _touch(self) -> None:
        self.generation += 1
        self.updated_at = _now()

    def seat_player(self, identity: str, display_name: str, decision: SeatDecision) -> None:
        """
        Apply a SeatDecision for ``identity``.

        Spectators are only added to the spectator set. A seated human in a
        computer room without a computer gets one on the opposite side if
        that side is empty.
        """
        if decision.spectator:
            self.spectators.add(identity)
            return

        self.spectators.discard(identity)
        side = decision.side
        self.seats[side] = HumanSeat(identity=identity, display_name=display_name)
        if self.mode is RoomMode.VS_COMPUTER:
            has_computer = any(isinstance(seat, ComputerSeat) for seat in self.seats.values())
            if not has_computer and isinstance(self.seats[side.opponent], EmptySeat):
                self.seats[side.opponent] = COMPUTER
        self._touch()

    def add_spectator(self, identity: str) -> None:
        self.spectators.add(identity)

    def vacate(self, identity: str) -> bool:
        """
        Remove ``identity`` from the room.

        A vacated seat becomes empty in PvP rooms. In computer rooms it is
        handed to the computer while the other side is still human, so the
        remaining player keeps a game; otherwise it becomes empty.

        Returns:
            True if a seat changed (and the generation was bumped).
        """
        self.spectators.discard(identity)
        side = self.side_of(identity)
        if side is None:
            return False

        other_is_human = isinstance(self.seats[side.opponent], HumanSeat)
        if self.mode is RoomMode.VS_COMPUTER and other_is_human:
            self.seats[side] = COMPUTER
        else:
            self.seats[side] = EMPTY
        self._touch()
        return True

    def play(self, identity: str, from_sq: str, to_sq: str, promotion: str | None = None) -> MoveCandidate:
        """
        Play a human move.

        Raises:
            NotYourSideError: ``identity`` holds no seat in this room.
            NotYourTurnError: ``identity`` holds the side not to move.
            IllegalMoveError: The rules reject the move.
        """
        side = self.side_of(identity)
        if side is None:
            raise NotYourSideError()
        if side is not self.turn:
            raise NotYourTurnError()
        played = self.oracle.apply(from_sq, to_sq, promotion)
        if played is None:
            raise IllegalMoveError()
        self.last_move = LastMove(san=played.san, mover=side)
        self._touch()
        return played

    def play_computer(self, move: chess.Move) -> MoveCandidate:
        """Commit a move chosen by the engine for the side to move."""
        mover = self.turn
        played = self.oracle.push(move)
        self.last_move = LastMove(san=played.san, mover=mover)
        self._touch()
        return played

    def reset(self, identity: str) -> None:
        """
        Restore the starting position.

        Raises:
            NotYourSideError: ``identity`` holds no seat in this room.
        """
        if self.side_of(identity) is None:
            raise NotYourSideError()
        self.oracle.reset()
        self.last_move = None
        self._touch()

    # -----------------------------------------------------------------------
    # Projections
    # -----------------------------------------------------------------------

    def state_payload(self) -> dict:
        """The gameState event body."""
        white, black = self.seats[Side.WHITE], self.seats[Side.BLACK]
        return {
            "roomId": self.id,
            "mode": self.mode.value,
            "aiLevel": self.difficulty.value if self.difficulty else None,
            "fen": self.oracle.fen(),
            "turn": self.turn.value,
            "status": self.oracle.status_text(),
            "players": {"white": white.display_name, "black": black.display_name},
            "playerTypes": {"white": white.kind, "black": black.kind},
            "spectators": len(self.spectators),
            "lastMoveSan": self.last_move.san if self.last_move else None,
            "lastMoveBy": self.last_move.mover.value if self.last_move else None,
        }

    def summary(self) -> dict:
        """One entry of the room list."""
        white, black = self.seats[Side.WHITE], self.seats[Side.BLACK]
        return {
            "roomId": self.id,
            "mode": self.mode.value,
            "aiLevel": self.difficulty.value if self.difficulty else None,
            "white": white.display_name,
            "black": black.display_name,
            "whiteType": white.kind,
            "blackType": black.kind,
            "openSides": [side.value for side in self.open_sides()],
            "canPlay": self.can_play(),
            "spectators": len(self.spectators),
        }
