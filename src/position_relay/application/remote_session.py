"""Single point of contact with the game server's remote console."""
from __future__ import annotations

import asyncio
import logging

from position_relay.domain.errors import ConnectError, TransportError
from position_relay.domain.models.session_state import SessionState
from position_relay.domain.repositories.remote_console import RemoteConsole

logger = logging.getLogger(__name__)


class RemoteSession:
    """Own one remote console connection and its reconnect bookkeeping.

    Authentication is the only health signal: the session is usable exactly
    when ``authenticated`` is true. Requests are serialised so at most one
    command is in flight on the connection at any time.
    """

    def __init__(self, console: RemoteConsole, timeout_seconds: float) -> None:
        """Initialize the session without connecting."""

        self._console = console
        self._timeout_seconds = timeout_seconds
        self._state = SessionState()
        self._request_lock = asyncio.Lock()
        self._connecting = False
        self._retry_task: asyncio.Task[None] | None = None

    @property
    def state(self) -> SessionState:
        """Return the live session state."""

        return self._state

    @property
    def authenticated(self) -> bool:
        """Return ``True`` when commands may be sent."""

        return self._state.authenticated

    @property
    def consecutive_errors(self) -> int:
        """Return the number of back-to-back failed poll cycles."""

        return self._state.consecutive_errors

    @property
    def reconnect_pending(self) -> bool:
        """Return ``True`` while a retry timer is armed."""

        return self._retry_task is not None and not self._retry_task.done()

    def record_failure(self) -> int:
        """Count one failed poll cycle and return the new total."""

        self._state.consecutive_errors += 1
        return self._state.consecutive_errors

    def record_success(self) -> None:
        """Clear the failure count after a successful poll cycle."""

        self._state.consecutive_errors = 0

    def schedule_reconnect(self, delay_seconds: float) -> None:
        """Arm a timer that calls ``connect`` after ``delay_seconds``.

        Does nothing if a timer is already armed.
        """

        if self.reconnect_pending:
            return
        self._retry_task = asyncio.create_task(self._reconnect_after(delay_seconds))
        self._state.pending_reconnect = True

    async def _reconnect_after(self, delay_seconds: float) -> None:
        await asyncio.sleep(delay_seconds)
        self._retry_task = None
        self._state.pending_reconnect = False
        await self.connect()

    def cancel_reconnect(self) -> None:
        """Disarm a pending retry timer, if any."""

        task, self._retry_task = self._retry_task, None
        self._state.pending_reconnect = False
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def connect(self) -> None:
        """Connect and authenticate, logging instead of raising on failure."""

        if self._state.authenticated or self._connecting:
            return

        self._connecting = True
        logger.info("Attempting to establish an RCON connection")
        try:
            await asyncio.wait_for(self._console.connect(), self._timeout_seconds)
        except ConnectError as error:
            logger.error("There was an error creating an RCON connection: %s", error)
        except asyncio.TimeoutError:
            logger.error(
                "Timed out after %.1fs establishing an RCON connection",
                self._timeout_seconds,
            )
        except Exception:
            logger.exception("Unexpected error establishing an RCON connection")
        else:
            logger.info("RCON connection established")
            self._state.authenticated = True
            self._state.consecutive_errors = 0
        finally:
            self._connecting = False
            self.cancel_reconnect()

    async def send(self, command: str) -> str:
        """Send ``command`` and return the response text.

        Raises ``TransportError`` when unauthenticated, when the console fails,
        or when no answer arrives within the configured timeout.
        """

        if not self._state.authenticated:
            raise TransportError(f"Cannot send {command!r}: RCON session is not authenticated.")

        async with self._request_lock:
            if not self._state.authenticated:
                raise TransportError(
                    f"Cannot send {command!r}: RCON session was dropped."
                )
            try:
                return await asyncio.wait_for(
                    self._console.send(command), self._timeout_seconds
                )
            except asyncio.TimeoutError as error:
                # The abandoned worker thread still owns the socket.
                logger.warning("RCON command %r timed out, dropping the connection", command)
                await self.disconnect()
                raise TransportError(
                    f"RCON command {command!r} timed out after {self._timeout_seconds:.1f}s"
                ) from error

    async def disconnect(self) -> None:
        """Drop the connection, logging a failure to close it."""

        self.cancel_reconnect()
        self._state.authenticated = False
        try:
            await self._console.disconnect()
        except TransportError as error:
            logger.error("Error disconnecting RCON: %s", error)

    async def reset(self) -> None:
        """Disconnect and reconnect after repeated failures."""

        logger.info("Too many RCON errors, attempting to re-establish connection...")
        await self.disconnect()
        await self.connect()
