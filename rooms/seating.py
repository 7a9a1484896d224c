"""
Seat assignment: decide where a joining player sits.

choose_seat() is a pure function of the room's occupancy, the requested side
and the requester's mode intent. It never mutates the room; the caller applies
the decision with RoomSession.seat_player().

Rules, evaluated in order:
    1. A mode intent that differs from the room's mode is rejected.
    2. A requested side whose seat is empty is granted.
    3. Otherwise the first empty side (White, then Black) is granted.
    4. In a computer room with no empty side, the requester takes over the
       computer's side, unless they demanded the other side, which a human
       already holds; that is rejected.
    5. Otherwise the requester becomes a spectator.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING

from rooms.errors import ModeMismatchError, SeatUnavailableError
from rooms.models import SIDE_ORDER, ComputerSeat, EmptySeat, RoomMode, Side

if TYPE_CHECKING:
    from rooms.session import RoomSession


@dataclass(frozen=True)
class SeatDecision:
    """Outcome of choose_seat(). ``side`` is None for a spectator."""

    side: Side | None
    takeover: bool = False

    @property
    def spectator(self) -> bool:
        return self.side is None


SPECTATE = SeatDecision(side=None)


def choose_seat(
    room: "RoomSession",
    requested: Side | None,
    mode_intent: RoomMode | None = None,
) -> SeatDecision:
    """
    Decide the seat for a player joining ``room``.

    Args:
        room:        The room being joined. Read only.
        requested:   The side asked for, or None for "any".
        mode_intent: The mode the requester expects the room to have, or
                     None to accept whatever the room is.

    Raises:
        ModeMismatchError:    The room was established with another mode.
        SeatUnavailableError: Only the computer's side could be taken over,
                              but the requester insisted on the human side.
    """
    if mode_intent is not None and mode_intent is not room.mode:
        raise ModeMismatchError(room.id, room.mode.value)

    if requested is not None and isinstance(room.seats[requested], EmptySeat):
        return SeatDecision(side=requested)

    for side in SIDE_ORDER:
        if isinstance(room.seats[side], EmptySeat):
            return SeatDecision(side=side)

    if room.mode is RoomMode.VS_COMPUTER:
        for side in SIDE_ORDER:
            if isinstance(room.seats[side], ComputerSeat):
                if requested is not None and requested is not side:
                    raise SeatUnavailableError(requested.label)
                return SeatDecision(side=side, takeover=True)

    return SPECTATE
