"""Remote console implementation backed by the Source RCON protocol client."""
from __future__ import annotations

import asyncio
import logging
from typing import Callable

from rcon.exceptions import EmptyResponse, SessionTimeout, WrongPassword
from rcon.source import Client

from position_relay.domain.errors import ConnectError, TransportError
from position_relay.domain.repositories.remote_console import RemoteConsole

logger = logging.getLogger(__name__)

ClientFactory = Callable[..., Client]


class SourceRemoteConsole(RemoteConsole):
    """Talk to a Minecraft server through its RCON port.

    The underlying client is blocking, so every call is moved to a worker
    thread to keep the event loop free for subscriber traffic.
    """

    def __init__(
        self,
        host: str,
        port: int,
        password: str,
        timeout_seconds: float,
        client_factory: ClientFactory = Client,
    ) -> None:
        """Store the endpoint details; no connection is opened here."""

        self._host = host
        self._port = port
        self._password = password
        self._timeout_seconds = timeout_seconds
        self._client_factory = client_factory
        self._client: Client | None = None

    async def connect(self) -> None:
        """Open a fresh RCON connection and log in."""

        client = self._client_factory(
            self._host,
            self._port,
            timeout=self._timeout_seconds,
            passwd=self._password,
        )
        try:
            await asyncio.to_thread(client.connect, True)
        except WrongPassword as error:
            await asyncio.to_thread(client.close)
            raise ConnectError("RCON server rejected the configured password.") from error
        except (OSError, EmptyResponse, SessionTimeout) as error:
            await asyncio.to_thread(client.close)
            raise ConnectError(
                f"Could not connect to RCON at {self._host}:{self._port}: {error}"
            ) from error
        self._client = client

    async def send(self, command: str) -> str:
        """Run ``command`` and return the server's reply."""

        client = self._client
        if client is None:
            raise TransportError("RCON connection is not open.")
        try:
            return await asyncio.to_thread(client.run, command)
        except UnicodeDecodeError as error:
            raise TransportError(
                f"RCON reply to {command!r} is not valid UTF-8: {error}"
            ) from error
        except (OSError, ValueError, EmptyResponse, SessionTimeout) as error:
            raise TransportError(f"RCON command {command!r} failed: {error}") from error

    async def disconnect(self) -> None:
        """Close the current connection if one is open."""

        client, self._client = self._client, None
        if client is None:
            return
        try:
            await asyncio.to_thread(client.close)
        except OSError as error:
            raise TransportError(f"Error closing RCON connection: {error}") from error
