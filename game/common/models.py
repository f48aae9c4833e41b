"""Game data models shared by server and client."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

Cell = tuple[int, int]
Endpoint = tuple[str, int]


class Direction(str, Enum):
    W = "W"
    A = "A"
    S = "S"
    D = "D"

    @property
    def delta(self) -> tuple[int, int]:
        """(dx, dy) on a grid whose y axis grows downwards."""
        return _DELTAS[self]


_DELTAS = {
    Direction.W: (0, -1),
    Direction.A: (-1, 0),
    Direction.S: (0, 1),
    Direction.D: (1, 0),
}


@dataclass
class PlayerState:
    x: int = 0
    y: int = 0
    score: int = 0

    @property
    def cell(self) -> Cell:
        return (self.x, self.y)

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "score": self.score}


@dataclass
class Snapshot:
    """Full authoritative world state as carried by one broadcast."""

    time_remaining: int = 0
    players: dict[int, PlayerState] = field(default_factory=dict)
    treasures: set[Cell] = field(default_factory=set)
    traps: set[Cell] = field(default_factory=set)

    def leaderboard(self) -> list[dict]:
        """Players sorted by score descending, ties broken by id."""
        ranked = sorted(self.players.items(), key=lambda kv: (-kv[1].score, kv[0]))
        return [
            {"rank": i + 1, "id": pid, "score": p.score}
            for i, (pid, p) in enumerate(ranked)
        ]

    def to_dict(self) -> dict:
        return {
            "time_remaining": self.time_remaining,
            "players": {str(pid): p.to_dict() for pid, p in sorted(self.players.items())},
            "treasures": [list(c) for c in sorted(self.treasures)],
            "traps": [list(c) for c in sorted(self.traps)],
            "leaderboard": self.leaderboard(),
        }
