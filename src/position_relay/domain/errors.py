"""Failures raised while talking to the remote console and decoding its replies."""
from __future__ import annotations


class ConnectError(Exception):
    """Signal that the handshake or authentication with the remote console failed."""


class TransportError(Exception):
    """Signal that a command could not be delivered or answered in time."""


class ParseError(ValueError):
    """Signal that a remote console response does not have the expected shape."""
