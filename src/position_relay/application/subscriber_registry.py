"""Bookkeeping of the subscriber connections that receive snapshots."""
from __future__ import annotations

import threading
from typing import Protocol, Tuple


class SubscriberConnection(Protocol):
    """Represent a connected client able to receive text messages."""

    async def send_text(self, data: str) -> None:
        """Deliver ``data`` to the client."""

    async def close(self, code: int = 1000) -> None:
        """Close the connection."""


class SubscriberRegistry:
    """Keep the set of live subscriber connections.

    Iteration works on a copy, so connections may join or leave while a
    broadcast is walking the registry.
    """

    def __init__(self) -> None:
        self._connections: dict[int, SubscriberConnection] = {}
        self._lock = threading.Lock()

    def add(self, connection: SubscriberConnection) -> None:
        with self._lock:
            self._connections[id(connection)] = connection

    def remove(self, connection: SubscriberConnection) -> bool:
        """Remove ``connection`` returning ``True`` when it was registered."""

        with self._lock:
            return self._connections.pop(id(connection), None) is not None

    def snapshot(self) -> Tuple[SubscriberConnection, ...]:
        """Return the connections registered at this instant."""

        with self._lock:
            return tuple(self._connections.values())

    def __contains__(self, connection: object) -> bool:
        with self._lock:
            return self._connections.get(id(connection)) is connection

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)
