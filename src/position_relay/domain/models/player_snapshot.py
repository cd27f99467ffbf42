"""Domain models describing the player positions published to subscribers."""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Mapping


@dataclass(frozen=True)
class PlayerPosition:
    """Describe where a single online player currently stands."""

    name: str
    x: float
    y: float
    z: float
    dimension: str

    def to_dict(self) -> dict[str, Any]:
        """Serialize the position into a JSON-ready dictionary."""

        return {
            "name": self.name,
            "x": self.x,
            "y": self.y,
            "z": self.z,
            "dimension": self.dimension,
        }


@dataclass(frozen=True)
class PlayerSnapshot:
    """Represent every player position gathered during one poll cycle."""

    players: Mapping[str, PlayerPosition] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @classmethod
    def from_positions(cls, positions: Iterable[PlayerPosition]) -> "PlayerSnapshot":
        """Build a snapshot keyed by each position's player name."""

        return cls(players=MappingProxyType({p.name: p for p in positions}))

    @classmethod
    def empty(cls) -> "PlayerSnapshot":
        """Return the snapshot used before any poll cycle has completed."""

        return cls()

    def __len__(self) -> int:
        return len(self.players)

    def __contains__(self, name: object) -> bool:
        return name in self.players

    def to_dict(self) -> dict[str, dict[str, Any]]:
        """Return a JSON-serializable mapping of player name to position."""

        return {name: position.to_dict() for name, position in self.players.items()}

    def to_json(self) -> str:
        """Return the UTF-8 JSON payload delivered to subscribers."""

        return json.dumps(self.to_dict(), ensure_ascii=False)
