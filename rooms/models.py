"""
Shared data types for rooms: sides, seats, modes, and the last-move record.

A Seat is a tagged variant with exactly three cases, one frozen dataclass
each. Code that depends on who sits where dispatches on the seat's type:

    EmptySeat      nobody; anyone may sit down
    HumanSeat      a connected identity with a display name
    ComputerSeat   the built-in opponent (display name "AI")
"""

import enum
from dataclasses import dataclass
from typing import Union

import chess

from engine.search import Difficulty

__all__ = [
    "COMPUTER",
    "ComputerSeat",
    "Difficulty",
    "EMPTY",
    "EmptySeat",
    "HumanSeat",
    "LastMove",
    "RoomMode",
    "Seat",
    "Side",
]


class Side(str, enum.Enum):
    WHITE = "w"
    BLACK = "b"

    @property
    def color(self) -> chess.Color:
        return chess.WHITE if self is Side.WHITE else chess.BLACK

    @property
    def opponent(self) -> "Side":
        return Side.BLACK if self is Side.WHITE else Side.WHITE

    @property
    def label(self) -> str:
        return "white" if self is Side.WHITE else "black"

    @classmethod
    def from_color(cls, color: chess.Color) -> "Side":
        return cls.WHITE if color == chess.WHITE else cls.BLACK


# Seat-filling order when no preference applies.
SIDE_ORDER: tuple[Side, Side] = (Side.WHITE, Side.BLACK)


class RoomMode(str, enum.Enum):
    PVP = "pvp"
    VS_COMPUTER = "ai"


@dataclass(frozen=True)
class EmptySeat:
    display_name: str = "Waiting..."
    kind: str = "open"


@dataclass(frozen=True)
class HumanSeat:
    identity: str
    display_name: str
    kind: str = "human"


@dataclass(frozen=True)
class ComputerSeat:
    display_name: str = "AI"
    kind: str = "ai"


Seat = Union[EmptySeat, HumanSeat, ComputerSeat]

EMPTY = EmptySeat()
COMPUTER = ComputerSeat()


@dataclass(frozen=True)
class LastMove:
    san: str
    mover: Side
