"""
Notifier: the outbound boundary of the room layer.

The registry and scheduler never touch sockets. They hand events to a
Notifier, which delivers them to identities. web/app.py provides the
WebSocket implementation.

Event names match the browser client: joined, gameState, legalMoves,
roomList, errorMsg.
"""

from typing import Any, Iterable


class Notifier:
    """Base notifier. Subclasses implement send() and connected()."""

    async def send(self, identity: str, event: str, payload: Any) -> None:
        raise NotImplementedError

    def connected(self) -> list[str]:
        """Identities that receive global broadcasts such as roomList."""
        return []

    async def publish(self, identities: Iterable[str], event: str, payload: Any) -> None:
        for identity in list(identities):
            await self.send(identity, event, payload)

    async def publish_all(self, event: str, payload: Any) -> None:
        await self.publish(self.connected(), event, payload)
