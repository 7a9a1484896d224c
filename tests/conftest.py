import asyncio
import random
from typing import Any, Iterable

import pytest
import pytest_asyncio

from rooms.notifier import Notifier
from rooms.registry import SessionRegistry


class RecordingNotifier(Notifier):
    """Keeps every delivered event in memory, in delivery order."""

    def __init__(self, identities: Iterable[str] = ()) -> None:
        self.events: list[tuple[str, str, Any]] = []
        self._identities = list(identities)

    def connect(self, identity: str) -> None:
        if identity not in self._identities:
            self._identities.append(identity)

    def connected(self) -> list[str]:
        return list(self._identities)

    async def send(self, identity: str, event: str, payload: Any) -> None:
        self.events.append((identity, event, payload))

    def received(self, identity: str, event: str | None = None) -> list[Any]:
        return [
            payload
            for who, name, payload in self.events
            if who == identity and (event is None or name == event)
        ]

    def clear(self) -> None:
        self.events.clear()


async def wait_for(predicate, timeout: float = 30.0, interval: float = 0.01) -> bool:
    """Poll ``predicate`` on the running loop until it is true or time runs out."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        if predicate():
            return True
        await asyncio.sleep(interval)
    return predicate()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier(["alice", "bob", "carol"])


@pytest_asyncio.fixture
async def registry(notifier):
    reg = SessionRegistry(notifier, ai_delay_ms=10, rng=random.Random(7))
    yield reg
    await reg.shutdown()
