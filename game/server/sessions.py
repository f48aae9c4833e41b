"""Endpoint → PlayerId sessions with inactivity eviction."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from game.common import config
from game.common.models import Endpoint

from .world import CapacityExceeded, GameWorld

log = logging.getLogger("sessions")


@dataclass
class Session:
    player_id: int
    endpoint: Endpoint
    last_seen_sequence: int = 0
    last_seen_at: float = field(default_factory=time.monotonic)
    connected_at: float = field(default_factory=time.monotonic)

    def to_dict(self) -> dict:
        return {
            "player_id": self.player_id,
            "endpoint": f"{self.endpoint[0]}:{self.endpoint[1]}",
            "last_seen_sequence": self.last_seen_sequence,
        }


class SessionManager:
    """Owns the bijection between admitted endpoints and player ids."""

    def __init__(
        self,
        world: GameWorld,
        timeout: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.world = world
        self.timeout = config.SESSION_TIMEOUT_SEC if timeout is None else timeout
        self._clock = clock
        self._by_endpoint: dict[Endpoint, Session] = {}
        self._by_player: dict[int, Session] = {}

        # Called with the removed session on disconnect and on eviction
        self.on_removed: Optional[Callable[[Session], None]] = None

    def __len__(self) -> int:
        return len(self._by_player)

    def __iter__(self):
        return iter(list(self._by_player.values()))

    def admit(self, endpoint: Endpoint) -> Optional[int]:
        """Return the endpoint's player id, creating a session if a slot is free.

        None means the server is full; the caller stays silent in that case.
        """
        session = self._by_endpoint.get(endpoint)
        if session is not None:
            session.last_seen_at = self._clock()
            return session.player_id

        try:
            player_id = self.world.apply_connect()
        except CapacityExceeded:
            log.warning(f"Rejected connect from {endpoint}: server full")
            return None

        now = self._clock()
        session = Session(
            player_id=player_id,
            endpoint=endpoint,
            last_seen_at=now,
            connected_at=now,
        )
        self._by_endpoint[endpoint] = session
        self._by_player[player_id] = session
        log.info(f"Player {player_id} connected from {endpoint} (total: {len(self)})")
        return player_id

    def lookup(self, endpoint: Endpoint) -> Optional[Session]:
        return self._by_endpoint.get(endpoint)

    def get(self, player_id: int) -> Optional[Session]:
        return self._by_player.get(player_id)

    def touch(self, player_id: int, sequence: Optional[int] = None):
        session = self._by_player.get(player_id)
        if session is None:
            return
        session.last_seen_at = self._clock()
        if sequence is not None:
            session.last_seen_sequence = max(session.last_seen_sequence, sequence)

    def disconnect(self, player_id: int) -> Optional[Session]:
        session = self._by_player.pop(player_id, None)
        if session is None:
            return None
        self._by_endpoint.pop(session.endpoint, None)
        self.world.remove_player(player_id)
        log.info(f"Player {player_id} disconnected ({session.endpoint})")
        if self.on_removed:
            self.on_removed(session)
        return session

    def evict_stale(self, now: Optional[float] = None) -> list[int]:
        """Drop sessions idle for longer than the timeout; returns evicted ids."""
        if not self.timeout:
            return []
        now = self._clock() if now is None else now
        stale = [
            s.player_id for s in self._by_player.values()
            if now - s.last_seen_at > self.timeout
        ]
        for player_id in stale:
            log.info(f"Evicting idle player {player_id}")
            self.disconnect(player_id)
        return stale

    def endpoints(self) -> list[Endpoint]:
        return list(self._by_endpoint)
