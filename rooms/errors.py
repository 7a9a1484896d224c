"""
Errors raised by room operations.

Every one of these is recoverable: the WebSocket handler catches RoomError,
reports str(exc) to the identity that sent the request, and carries on.
Operations raise before mutating anything, so a rejected request leaves the
room exactly as it was.
"""


class RoomError(Exception):
    """Base class for user-facing room errors."""


class InvalidRoomIdError(RoomError):
    def __init__(self) -> None:
        super().__init__("Room code is required.")


class ModeMismatchError(RoomError):
    def __init__(self, room_id: str, mode: str):
        self.room_id = room_id
        self.mode = mode
        super().__init__(f"Room '{room_id}' is a {mode} room.")


class SeatUnavailableError(RoomError):
    def __init__(self, side: str):
        self.side = side
        super().__init__(f"The {side} seat is already taken.")


class NotYourSideError(RoomError):
    def __init__(self) -> None:
        super().__init__("You are not controlling this side.")


class NotYourTurnError(RoomError):
    def __init__(self) -> None:
        super().__init__("It is not your turn.")


class IllegalMoveError(RoomError):
    def __init__(self) -> None:
        super().__init__("Illegal move.")


class RoomNotFoundError(RoomError):
    def __init__(self, room_id: str):
        self.room_id = room_id
        super().__init__(f"Room '{room_id}' no longer exists.")
