"""
Authoritative game world: grid bounds, player roster, treasures, traps and
the countdown timer.

All transitions are plain synchronous methods with no I/O; the UDP server is
the only caller that mutates the world.
"""

from __future__ import annotations

import copy
import logging
from typing import Iterable, Optional

from game.common import config
from game.common.models import Cell, Direction, PlayerState, Snapshot

log = logging.getLogger("world")


class CapacityExceeded(Exception):
    """Raised when a connect arrives while every player slot is taken."""


class GameWorld:
    def __init__(
        self,
        width: int,
        height: int,
        treasures: Iterable[Cell] = (),
        traps: Iterable[Cell] = (),
        duration: int = 60,
        player_cap: int = 3,
    ):
        self.width = width
        self.height = height
        self.player_cap = player_cap
        self.time_remaining = duration
        self.players: dict[int, PlayerState] = {}
        self.treasures: set[Cell] = {tuple(c) for c in treasures}
        self.traps: set[Cell] = {tuple(c) for c in traps}

        overlap = self.treasures & self.traps
        if overlap:
            raise ValueError(f"Cells hold both treasure and trap: {sorted(overlap)}")
        for cell in self.treasures | self.traps:
            if not self.in_bounds(cell):
                raise ValueError(f"Cell {cell} outside {width}x{height} grid")

    @classmethod
    def from_config(cls) -> "GameWorld":
        return cls(
            width=config.GRID_WIDTH,
            height=config.GRID_HEIGHT,
            treasures=config.DEFAULT_TREASURES,
            traps=config.DEFAULT_TRAPS,
            duration=config.GAME_DURATION_SEC,
            player_cap=config.PLAYER_CAP,
        )

    def in_bounds(self, cell: Cell) -> bool:
        x, y = cell
        return 0 <= x < self.width and 0 <= y < self.height

    @property
    def is_over(self) -> bool:
        return self.time_remaining == 0

    # ------------------------------------------------------------------
    # Roster
    # ------------------------------------------------------------------
    def apply_connect(self) -> int:
        """Admit a new player at (0, 0) with score 0 under the lowest free id."""
        for player_id in range(1, self.player_cap + 1):
            if player_id not in self.players:
                self.players[player_id] = PlayerState()
                log.info(f"Player {player_id} spawned (total: {len(self.players)})")
                return player_id
        raise CapacityExceeded(f"All {self.player_cap} player slots taken")

    def remove_player(self, player_id: int) -> Optional[PlayerState]:
        state = self.players.pop(player_id, None)
        if state is not None:
            log.info(f"Player {player_id} removed (final score: {state.score})")
        return state

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def apply_move(self, player_id: int, direction: Direction):
        """Move one cell, clamped to the grid, then resolve what is on the new cell."""
        player = self.players[player_id]
        dx, dy = Direction(direction).delta
        player.x = min(max(player.x + dx, 0), self.width - 1)
        player.y = min(max(player.y + dy, 0), self.height - 1)
        self.collect_at(player_id)

    def collect_at(self, player_id: int):
        player = self.players[player_id]
        cell = player.cell
        if cell in self.treasures:
            self.treasures.discard(cell)
            player.score += config.TREASURE_VALUE
            log.info(f"Player {player_id} found treasure at {cell} (score: {player.score})")
        elif cell in self.traps:
            self.traps.discard(cell)
            player.score = 0
            log.info(f"Player {player_id} hit trap at {cell} (score reset)")

    def tick(self):
        if self.time_remaining > 0:
            self.time_remaining -= 1
            if self.time_remaining == 0:
                log.info("Timer reached 0")

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------
    def snapshot(self) -> Snapshot:
        return Snapshot(
            time_remaining=self.time_remaining,
            players=copy.deepcopy(self.players),
            treasures=set(self.treasures),
            traps=set(self.traps),
        )
