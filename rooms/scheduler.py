"""
AIScheduler: delayed computer moves guarded by the room's generation token.

When a mutation leaves a computer seat to move, the registry calls arm().
arm() captures a Ticket (room id, generation, side to move) and schedules a
firing after a short "thinking" delay on the running event loop.

When the timer fires, the ticket is validated against the live room under
the room lock. The computed move is only committed if ALL of these still
hold:

    - the room exists and is the same RoomSession object
    - the room is a computer room
    - room.generation == ticket.generation
    - the side to move is the ticket's side
    - that side's seat is the computer
    - the game is not over

Any mutation in between (a move, a reset, a seat change in either direction,
destruction) bumps or retires the generation, so a stale firing is discarded
silently: no broadcast, no error, no state change. Cancelling the timer on
re-arm or destruction only saves work; the token check is what keeps room
state correct.

The search itself runs in a worker thread (asyncio.to_thread) on a copy of
the board, so the event loop keeps serving other rooms while it thinks. The
ticket is validated again after the search returns, because the room may have
changed while the thread was busy.
"""

import asyncio
import logging
import random
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from engine.search import SearchState, choose_move
from rooms.models import ComputerSeat, RoomMode, Side

if TYPE_CHECKING:
    from rooms.registry import SessionRegistry
    from rooms.session import RoomSession

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Ticket:
    """Immutable snapshot of the room state a computation was armed for."""

    room_id: str
    generation: int
    side: Side


class AIScheduler:
    """
    Arms and fires computer moves for the rooms of one registry.

    Attributes:
        delay: Thinking time in seconds between arm() and the firing.
    """

    def __init__(
        self,
        registry: "SessionRegistry",
        delay_ms: int = 450,
        rng: random.Random | None = None,
    ) -> None:
        self._registry = registry
        self.delay = max(delay_ms, 1) / 1000
        self._rng = rng
        self._timers: dict[str, asyncio.TimerHandle] = {}
        self._tasks: set[asyncio.Task] = set()

    # -----------------------------------------------------------------------
    # Arming
    # -----------------------------------------------------------------------

    def arm(self, room: "RoomSession") -> Ticket | None:
        """
        Schedule a computer move if the computer is to move in ``room``.

        Returns:
            The captured ticket, or None when nothing was scheduled.
        """
        if not room.computer_to_move():
            return None
        ticket = Ticket(room_id=room.id, generation=room.generation, side=room.turn)
        loop = asyncio.get_running_loop()
        self.disarm(room.id)
        self._timers[room.id] = loop.call_later(self.delay, self._spawn, ticket)
        _log.debug("armed %s at generation %d for %s", room.id, ticket.generation, ticket.side.label)
        return ticket

    def disarm(self, room_id: str) -> None:
        handle = self._timers.pop(room_id, None)
        if handle is not None:
            handle.cancel()

    def pending(self, room_id: str) -> bool:
        return room_id in self._timers

    def _spawn(self, ticket: Ticket) -> None:
        self._timers.pop(ticket.room_id, None)
        task = asyncio.create_task(self._run(ticket))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, ticket: Ticket) -> None:
        try:
            await self.fire(ticket)
        except Exception:
            _log.exception("Computer move failed for room %s", ticket.room_id)

    # -----------------------------------------------------------------------
    # Firing
    # -----------------------------------------------------------------------

    def is_current(self, room: "RoomSession", ticket: Ticket) -> bool:
        """True if ``room`` has not diverged since ``ticket`` was captured."""
        return (
            self._registry.get(ticket.room_id) is room
            and not room.closed
            and room.mode is RoomMode.VS_COMPUTER
            and room.generation == ticket.generation
            and room.turn is ticket.side
            and isinstance(room.seats[ticket.side], ComputerSeat)
            and not room.oracle.is_over()
        )

    async def fire(self, ticket: Ticket) -> bool:
        """
        Compute and commit the computer move for ``ticket`` if still valid.

        Returns:
            True if a move was applied, False if the ticket was stale.
        """
        room = self._registry.get(ticket.room_id)
        if room is None:
            _log.debug("discarding computer move: room %s is gone", ticket.room_id)
            return False

        async with room.lock:
            if not self.is_current(room, ticket):
                _log.debug("discarding stale computer move for %s (generation %d)", room.id, ticket.generation)
                return False
            board = room.oracle.board.copy()
            difficulty = room.difficulty

        state = SearchState()
        start = time.monotonic()
        candidate = await asyncio.to_thread(choose_move, board, difficulty, self._rng, state)
        elapsed_ms = int((time.monotonic() - start) * 1000)
        if candidate is None:
            return False

        async with room.lock:
            if not self.is_current(room, ticket):
                _log.debug("discarding computer move %s for %s: room changed during search", candidate.san, room.id)
                return False
            room.play_computer(candidate.move)
            _log.info(
                "room=%s computer=%s move=%s depth=%d nodes=%d time_ms=%d",
                room.id,
                difficulty.value,
                candidate.san,
                state.depth,
                state.node_count,
                elapsed_ms,
            )
            await self._registry.broadcast_state(room)
            # Chained: a no-op unless the computer is to move again.
            self.arm(room)
        return True

    async def shutdown(self) -> None:
        """Cancel every timer and in-flight computation."""
        for room_id in list(self._timers):
            self.disarm(room_id)
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
