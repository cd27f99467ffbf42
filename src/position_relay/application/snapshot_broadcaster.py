"""Fan-out of player snapshots to every registered subscriber."""
from __future__ import annotations

import asyncio
import logging

from position_relay.application.subscriber_registry import (
    SubscriberConnection,
    SubscriberRegistry,
)
from position_relay.domain.models.player_snapshot import PlayerSnapshot

logger = logging.getLogger(__name__)


class SnapshotBroadcaster:
    """Store the last known snapshot and deliver snapshots to subscribers.

    Publishes and join replays run one at a time, so every subscriber sees
    snapshots in the order they were published. Within a publish all
    subscribers are sent to concurrently and a subscriber that does not take
    the payload within ``send_timeout_seconds`` is dropped.
    """

    def __init__(
        self,
        registry: SubscriberRegistry,
        debug: bool = False,
        send_timeout_seconds: float = 5.0,
    ) -> None:
        """Initialize the broadcaster with an empty last known snapshot."""

        self._registry = registry
        self._debug = debug
        self._send_timeout_seconds = send_timeout_seconds
        self._last_snapshot = PlayerSnapshot.empty()
        self._delivery_lock = asyncio.Lock()

    @property
    def last_snapshot(self) -> PlayerSnapshot:
        """Return the most recently published snapshot."""

        return self._last_snapshot

    @property
    def subscriber_count(self) -> int:
        """Return how many subscribers are currently registered."""

        return len(self._registry)

    async def publish(self, snapshot: PlayerSnapshot) -> None:
        """Remember ``snapshot`` and send it to every registered subscriber."""

        async with self._delivery_lock:
            self._last_snapshot = snapshot
            subscribers = self._registry.snapshot()
            payload = snapshot.to_json()
            if self._debug:
                logger.debug(
                    "Sending player data to %d connections: %s", len(subscribers), payload
                )
            await asyncio.gather(
                *(self._deliver(connection, payload) for connection in subscribers)
            )

    async def on_subscriber_join(self, connection: SubscriberConnection) -> None:
        """Register ``connection`` and replay the last known snapshot to it."""

        async with self._delivery_lock:
            self._registry.add(connection)
            logger.info("WebSocket connection opened (%d total)", len(self._registry))
            await self._deliver(connection, self._last_snapshot.to_json())

    async def on_subscriber_leave(self, connection: SubscriberConnection) -> None:
        """Deregister ``connection``; calling it twice is harmless."""

        if self._registry.remove(connection):
            logger.info("WebSocket connection closed (%d remaining)", len(self._registry))

    async def close_all(self) -> None:
        """Close and deregister every subscriber."""

        for connection in self._registry.snapshot():
            self._registry.remove(connection)
            try:
                await connection.close()
            except Exception as error:
                logger.warning("Error closing subscriber connection: %s", error)

    async def _deliver(self, connection: SubscriberConnection, payload: str) -> None:
        try:
            await asyncio.wait_for(
                connection.send_text(payload), self._send_timeout_seconds
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Subscriber did not accept snapshot within %.1fs, dropping it",
                self._send_timeout_seconds,
            )
            await self.on_subscriber_leave(connection)
        except Exception as error:
            logger.warning("Failed to send snapshot to subscriber, dropping it: %s", error)
            await self.on_subscriber_leave(connection)
