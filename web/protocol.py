"""
WebSocket message models and the dispatcher that routes them to the registry.

Inbound messages are JSON objects with a "type" field naming the action.
They are validated as a discriminated union; anything that does not match
raises pydantic.ValidationError, which the socket loop reports back as an
errorMsg to the sender only.

Outbound messages are {"type": <event>, "payload": <body>} and are produced
by the registry through the Notifier.
"""

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from rooms.models import Difficulty, RoomMode, Side
from rooms.registry import SessionRegistry

MAX_NAME_LENGTH = 24

SideChoice = Literal["w", "b", "auto"]


def to_side(choice: str) -> Side | None:
    """Map a wire side choice to a Side; "auto" means no preference."""
    return None if choice == "auto" else Side(choice)


class _Message(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class _Named(_Message):
    name: str = "Guest"

    @field_validator("name", mode="before")
    @classmethod
    def clean_name(cls, v: object) -> str:
        """Trim and truncate; blank names become "Guest"."""
        return str(v or "").strip()[:MAX_NAME_LENGTH] or "Guest"


class StartAiGame(_Named):
    type: Literal["startAiGame"]
    preferred_side: SideChoice = Field("auto", alias="preferredSide")
    ai_level: Difficulty = Field(Difficulty.MEDIUM, alias="aiLevel")


class JoinHumanRoom(_Named):
    type: Literal["joinHumanRoom"]
    room_id: str = Field("", alias="roomId")
    preferred_side: SideChoice = Field("auto", alias="preferredSide")


class JoinListedRoom(_Named):
    type: Literal["joinListedRoom"]
    room_id: str = Field("", alias="roomId")
    action: Literal["play", "spectate"] = "play"
    preferred_side: SideChoice = Field("auto", alias="preferredSide")


class RequestLegalMoves(_Message):
    type: Literal["requestLegalMoves"]
    from_sq: str = Field(alias="from")


class MakeMove(_Message):
    type: Literal["makeMove"]
    from_sq: str = Field(alias="from")
    to_sq: str = Field(alias="to")
    promotion: Optional[str] = Field(None, max_length=1)


class ResetGame(_Message):
    type: Literal["resetGame"]


class RequestRoomList(_Message):
    type: Literal["requestRoomList"]


InboundMessage = Annotated[
    Union[
        StartAiGame,
        JoinHumanRoom,
        JoinListedRoom,
        RequestLegalMoves,
        MakeMove,
        ResetGame,
        RequestRoomList,
    ],
    Field(discriminator="type"),
]

_INBOUND = TypeAdapter(InboundMessage)


class RoomSummary(BaseModel):
    """One entry of GET /api/rooms and of the roomList event."""

    roomId: str
    mode: str
    aiLevel: Optional[str] = None
    white: str
    black: str
    whiteType: str
    blackType: str
    openSides: list[str]
    canPlay: bool
    spectators: int


def parse_message(raw: object) -> InboundMessage:
    """Validate a decoded JSON value as an inbound message."""
    return _INBOUND.validate_python(raw)


async def dispatch(registry: SessionRegistry, identity: str, raw: object) -> None:
    """
    Validate ``raw`` and perform the action on behalf of ``identity``.

    Raises:
        pydantic.ValidationError: The message is malformed.
        rooms.errors.RoomError:   The action was rejected.
    """
    message = parse_message(raw)

    if isinstance(message, StartAiGame):
        await registry.start_computer_game(
            identity,
            message.name,
            preferred_side=to_side(message.preferred_side),
            difficulty=message.ai_level,
        )
    elif isinstance(message, JoinHumanRoom):
        await registry.join(
            identity,
            message.name,
            message.room_id,
            requested_side=to_side(message.preferred_side),
            mode=RoomMode.PVP,
        )
    elif isinstance(message, JoinListedRoom):
        await registry.join_listed_room(
            identity,
            message.room_id,
            message.action,
            preferred_side=to_side(message.preferred_side),
            display_name=message.name,
        )
    elif isinstance(message, RequestLegalMoves):
        await registry.legal_moves(identity, message.from_sq)
    elif isinstance(message, MakeMove):
        await registry.make_move(identity, message.from_sq, message.to_sq, message.promotion)
    elif isinstance(message, ResetGame):
        await registry.reset(identity)
    elif isinstance(message, RequestRoomList):
        await registry.send_room_list(identity)
