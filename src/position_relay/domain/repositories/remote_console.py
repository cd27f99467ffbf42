"""Contract for the administrative text console exposed by the game server."""
from __future__ import annotations

from typing import Protocol


class RemoteConsole(Protocol):
    """Provide raw access to the remote console of a game server.

    Implementations raise ``ConnectError`` when ``connect`` fails and
    ``TransportError`` when ``send`` or ``disconnect`` fails.
    """

    async def connect(self) -> None:
        """Open the connection and authenticate with the configured credential."""

    async def send(self, command: str) -> str:
        """Run ``command`` on the server and return its textual response."""

    async def disconnect(self) -> None:
        """Close the connection to the server."""
