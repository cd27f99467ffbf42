"""Tests for the remote session connect, send and reset behaviour."""
from __future__ import annotations

import asyncio

import pytest

from position_relay.application.remote_session import RemoteSession
from position_relay.domain.errors import ConnectError, TransportError


class _StubRemoteConsole:
    """Scriptable remote console recording every interaction."""

    def __init__(
        self,
        connect_failures: int = 0,
        responses: dict[str, str] | None = None,
        send_delay: float = 0.0,
        fail_disconnect: bool = False,
    ) -> None:
        self.connect_failures = connect_failures
        self.responses = responses or {}
        self.send_delay = send_delay
        self.fail_disconnect = fail_disconnect
        self.connect_calls = 0
        self.disconnect_calls = 0
        self.sent: list[str] = []
        self.active_requests = 0
        self.max_active_requests = 0

    async def connect(self) -> None:
        self.connect_calls += 1
        if self.connect_failures:
            self.connect_failures -= 1
            raise ConnectError("authentication failed")

    async def send(self, command: str) -> str:
        self.sent.append(command)
        self.active_requests += 1
        self.max_active_requests = max(self.max_active_requests, self.active_requests)
        try:
            await asyncio.sleep(self.send_delay)
            if command not in self.responses:
                raise TransportError(f"no response for {command}")
            return self.responses[command]
        finally:
            self.active_requests -= 1

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        if self.fail_disconnect:
            raise TransportError("socket already closed")


def test_connect_marks_session_authenticated_and_clears_errors() -> None:
    """A successful handshake makes the session usable again."""

    console = _StubRemoteConsole()
    session = RemoteSession(console, timeout_seconds=1.0)
    session.record_failure()
    session.record_failure()

    asyncio.run(session.connect())

    assert session.authenticated is True
    assert session.consecutive_errors == 0
    assert console.connect_calls == 1


def test_connect_is_noop_when_already_authenticated() -> None:
    """Connecting twice must not open a second connection."""

    console = _StubRemoteConsole()
    session = RemoteSession(console, timeout_seconds=1.0)

    async def run() -> None:
        await session.connect()
        await session.connect()

    asyncio.run(run())

    assert console.connect_calls == 1


def test_connect_is_noop_while_attempt_is_pending() -> None:
    """Concurrent connect calls share the attempt already in progress."""

    class _SlowConsole(_StubRemoteConsole):
        async def connect(self) -> None:
            await asyncio.sleep(0.05)
            await super().connect()

    console = _SlowConsole()
    session = RemoteSession(console, timeout_seconds=1.0)

    async def run() -> None:
        await asyncio.gather(session.connect(), session.connect())

    asyncio.run(run())

    assert console.connect_calls == 1
    assert session.authenticated is True


def test_connect_failure_is_logged_not_raised(caplog) -> None:
    """A rejected handshake leaves the session unauthenticated without raising."""

    console = _StubRemoteConsole(connect_failures=1)
    session = RemoteSession(console, timeout_seconds=1.0)

    with caplog.at_level("ERROR"):
        asyncio.run(session.connect())

    assert session.authenticated is False
    assert "error creating an RCON connection" in caplog.text


def test_connect_times_out_instead_of_hanging() -> None:
    """A handshake slower than the timeout counts as a failed attempt."""

    class _HangingConsole(_StubRemoteConsole):
        async def connect(self) -> None:
            self.connect_calls += 1
            await asyncio.sleep(10)

    console = _HangingConsole()
    session = RemoteSession(console, timeout_seconds=0.05)

    asyncio.run(session.connect())

    assert session.authenticated is False


def test_send_requires_authentication() -> None:
    """Commands cannot be issued before the session is authenticated."""

    console = _StubRemoteConsole(responses={"list": "0 players online"})
    session = RemoteSession(console, timeout_seconds=1.0)

    with pytest.raises(TransportError):
        asyncio.run(session.send("list"))
    assert console.sent == []


def test_send_returns_response_text() -> None:
    """The console reply is passed back verbatim."""

    console = _StubRemoteConsole(responses={"list": "1 players online: Alice"})
    session = RemoteSession(console, timeout_seconds=1.0)

    async def run() -> str:
        await session.connect()
        return await session.send("list")

    assert asyncio.run(run()) == "1 players online: Alice"


def test_send_fails_with_transport_error_after_timeout() -> None:
    """A slow reply is reported as a transport failure."""

    console = _StubRemoteConsole(responses={"list": "0 players online"}, send_delay=1.0)
    session = RemoteSession(console, timeout_seconds=0.05)

    async def run() -> None:
        await session.connect()
        await session.send("list")

    with pytest.raises(TransportError):
        asyncio.run(run())


def test_send_keeps_one_request_in_flight() -> None:
    """Concurrent callers are serialised on the single connection."""

    responses = {f"cmd {index}": str(index) for index in range(5)}
    console = _StubRemoteConsole(responses=responses, send_delay=0.01)
    session = RemoteSession(console, timeout_seconds=1.0)

    async def run() -> list[str]:
        await session.connect()
        return await asyncio.gather(*(session.send(cmd) for cmd in responses))

    assert asyncio.run(run()) == ["0", "1", "2", "3", "4"]
    assert console.max_active_requests == 1


def test_reset_disconnects_then_reconnects() -> None:
    """Reset opens a fresh connection and clears the error count."""

    console = _StubRemoteConsole()
    session = RemoteSession(console, timeout_seconds=1.0)

    async def run() -> None:
        await session.connect()
        for _ in range(6):
            session.record_failure()
        await session.reset()

    asyncio.run(run())

    assert console.disconnect_calls == 1
    assert console.connect_calls == 2
    assert session.authenticated is True
    assert session.consecutive_errors == 0


def test_reset_reconnects_even_when_disconnect_fails() -> None:
    """A failing disconnect is logged and the reconnect still happens."""

    console = _StubRemoteConsole(fail_disconnect=True)
    session = RemoteSession(console, timeout_seconds=1.0)

    async def run() -> None:
        await session.connect()
        await session.reset()

    asyncio.run(run())

    assert console.connect_calls == 2
    assert session.authenticated is True


def test_scheduled_reconnect_fires_after_delay() -> None:
    """An armed retry timer connects once and then disarms itself."""

    console = _StubRemoteConsole()
    session = RemoteSession(console, timeout_seconds=1.0)

    async def run() -> None:
        session.schedule_reconnect(0.01)
        session.schedule_reconnect(0.01)
        assert session.reconnect_pending is True
        assert session.state.pending_reconnect is True
        await asyncio.sleep(0.05)

    asyncio.run(run())

    assert console.connect_calls == 1
    assert session.authenticated is True
    assert session.reconnect_pending is False
    assert session.state.pending_reconnect is False


def test_successful_connect_cancels_pending_retry() -> None:
    """Connecting directly disarms a retry timer armed earlier."""

    console = _StubRemoteConsole()
    session = RemoteSession(console, timeout_seconds=1.0)

    async def run() -> None:
        session.schedule_reconnect(10)
        await session.connect()
        assert session.reconnect_pending is False

    asyncio.run(run())

    assert console.connect_calls == 1


def test_send_timeout_drops_connection_before_next_request() -> None:
    """A timed-out request leaves the socket unusable, so the session disconnects."""

    console = _StubRemoteConsole(responses={"list": "0 players online"}, send_delay=1.0)
    session = RemoteSession(console, timeout_seconds=0.05)

    async def run() -> None:
        await session.connect()
        with pytest.raises(TransportError):
            await session.send("list")
        console.send_delay = 0.0
        with pytest.raises(TransportError):
            await session.send("list")

    asyncio.run(run())

    assert session.authenticated is False
    assert console.disconnect_calls == 1
    assert console.sent == ["list"]


def test_queued_send_fails_once_timeout_drops_connection() -> None:
    """Requests waiting behind a timed-out one are not sent on the dropped socket."""

    console = _StubRemoteConsole(responses={"a": "1", "b": "2"}, send_delay=1.0)
    session = RemoteSession(console, timeout_seconds=0.05)

    async def run() -> list[object]:
        await session.connect()
        return await asyncio.gather(
            session.send("a"), session.send("b"), return_exceptions=True
        )

    results = asyncio.run(run())

    assert all(isinstance(result, TransportError) for result in results)
    assert console.sent == ["a"]
