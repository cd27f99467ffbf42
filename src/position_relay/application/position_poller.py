"""Periodic collection of player positions from the remote console."""
from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from position_relay.application.remote_session import RemoteSession
from position_relay.domain.errors import ParseError, TransportError
from position_relay.domain.models.player_snapshot import PlayerPosition, PlayerSnapshot
from position_relay.domain.services.rcon_response_parser import (
    parse_coordinates,
    parse_dimension,
    parse_player_list,
)

logger = logging.getLogger(__name__)

LIST_COMMAND = "list"
POSITION_COMMAND = "data get entity {name} Pos"
DIMENSION_COMMAND = "data get entity {name} Dimension"


class SnapshotSink(Protocol):
    """Represent the consumer of the snapshots built by the poller."""

    @property
    def subscriber_count(self) -> int:
        """Return how many subscribers would receive a snapshot."""

    async def publish(self, snapshot: PlayerSnapshot) -> None:
        """Deliver ``snapshot`` to the subscribers."""


class PositionPoller:
    """Drive one poll cycle per interval while skipping overlapping cycles."""

    def __init__(
        self,
        session: RemoteSession,
        sink: SnapshotSink,
        interval_seconds: float,
        reconnect_delay_seconds: float,
        error_threshold: int = 5,
    ) -> None:
        """Initialize the poller with its collaborators and timing."""

        self._session = session
        self._sink = sink
        self._interval_seconds = interval_seconds
        self._reconnect_delay_seconds = reconnect_delay_seconds
        self._error_threshold = error_threshold
        self._cycle_in_progress = False
        self._loop_task: asyncio.Task[None] | None = None
        self._cycle_task: asyncio.Task[PlayerSnapshot | None] | None = None
        self._deliveries: set[asyncio.Task[None]] = set()

    @property
    def cycle_in_progress(self) -> bool:
        """Return ``True`` while a cycle's requests are outstanding."""

        return self._cycle_in_progress

    @property
    def running(self) -> bool:
        """Return ``True`` while the periodic loop is active."""

        return self._loop_task is not None and not self._loop_task.done()

    def start(self) -> None:
        """Start ticking every interval on the running event loop."""

        if self.running:
            return
        self._loop_task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop ticking, cancel an outstanding cycle and flush deliveries."""

        for task in (self._loop_task, self._cycle_task):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._loop_task = None
        self._cycle_task = None
        await self.wait_for_deliveries()

    async def wait_for_deliveries(self) -> None:
        """Wait until every snapshot handed to the sink has been delivered."""

        if self._deliveries:
            await asyncio.gather(*self._deliveries, return_exceptions=True)

    def tick(self) -> bool:
        """Launch a cycle unless one is still running; return whether it launched."""

        if self._cycle_in_progress:
            logger.debug("Previous poll cycle still running, skipping this tick")
            return False
        self._cycle_task = asyncio.create_task(self.poll_once())
        self._cycle_task.add_done_callback(self._report_crashed_cycle)
        return True

    @staticmethod
    def _report_crashed_cycle(task: asyncio.Task[PlayerSnapshot | None]) -> None:
        if not task.cancelled() and task.exception() is not None:
            logger.error("Poll cycle crashed", exc_info=task.exception())

    async def _run(self) -> None:
        while True:
            self.tick()
            await asyncio.sleep(self._interval_seconds)

    async def poll_once(self) -> PlayerSnapshot | None:
        """Run one cycle, returning the published snapshot or ``None``."""

        if self._cycle_in_progress:
            return None

        if not self._session.authenticated and not self._session.reconnect_pending:
            self._session.schedule_reconnect(self._reconnect_delay_seconds)

        if not (
            self._session.authenticated
            and self._sink.subscriber_count > 0
            and self._session.consecutive_errors <= self._error_threshold
        ):
            return None

        self._cycle_in_progress = True
        try:
            snapshot = await self._collect_snapshot()
        except (TransportError, ParseError) as error:
            errors = self._session.record_failure()
            logger.debug("Poll cycle failed (%d in a row): %s", errors, error)
            if errors > self._error_threshold:
                await self._session.reset()
            return None
        finally:
            self._cycle_in_progress = False

        self._session.record_success()
        self._hand_off(snapshot)
        return snapshot

    async def _collect_snapshot(self) -> PlayerSnapshot:
        names = parse_player_list(await self._session.send(LIST_COMMAND))
        if not names:
            return PlayerSnapshot.empty()

        results = await asyncio.gather(
            *(self._fetch_player(name) for name in names), return_exceptions=True
        )
        positions: list[PlayerPosition] = []
        for result in results:
            if isinstance(result, BaseException):
                raise result
            positions.append(result)
        return PlayerSnapshot.from_positions(positions)

    async def _fetch_player(self, name: str) -> PlayerPosition:
        x, y, z = parse_coordinates(
            await self._session.send(POSITION_COMMAND.format(name=name))
        )
        dimension = parse_dimension(
            await self._session.send(DIMENSION_COMMAND.format(name=name))
        )
        return PlayerPosition(name=name, x=x, y=y, z=z, dimension=dimension)

    def _hand_off(self, snapshot: PlayerSnapshot) -> None:
        task = asyncio.create_task(self._sink.publish(snapshot))
        self._deliveries.add(task)
        task.add_done_callback(self._deliveries.discard)
