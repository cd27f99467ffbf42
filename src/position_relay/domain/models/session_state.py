"""State tracked for the connection to the remote console."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass
class SessionState:
    """Mutable bookkeeping owned exclusively by the remote session."""

    authenticated: bool = False
    consecutive_errors: int = 0
    pending_reconnect: bool = False

    def to_dict(self) -> dict[str, bool | int]:
        """Serialize the state for the status endpoint."""

        return {
            "authenticated": self.authenticated,
            "consecutiveErrors": self.consecutive_errors,
            "pendingReconnect": self.pending_reconnect,
        }
