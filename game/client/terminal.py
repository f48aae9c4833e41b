"""
Terminal front end for the client: key capture and grid drawing.

The client only depends on the two small protocols below; CursesTerminal is
the stock implementation used by `python -m game.client`.
"""

from __future__ import annotations

import curses
from typing import Optional, Protocol

from game.common import config
from game.common.models import Snapshot


class KeySource(Protocol):
    def poll(self) -> Optional[str]:
        """Return a pending key press without blocking, or None."""


class Renderer(Protocol):
    def render(self, snapshot: Optional[Snapshot]) -> None:
        ...


def grid_rows(snapshot: Snapshot, width: int, height: int) -> list[str]:
    """Text rows for the grid: player id digit, T treasure, X trap, . empty."""
    occupied = {p.cell: str(pid) for pid, p in sorted(snapshot.players.items(), reverse=True)}
    rows = []
    for y in range(height):
        row = []
        for x in range(width):
            cell = (x, y)
            if cell in occupied:
                row.append(occupied[cell])
            elif cell in snapshot.treasures:
                row.append("T")
            elif cell in snapshot.traps:
                row.append("X")
            else:
                row.append(".")
        rows.append(" ".join(row))
    return rows


class CursesTerminal:
    def __init__(self, stdscr, player_number: int):
        self.stdscr = stdscr
        self.player_number = player_number
        curses.curs_set(0)
        stdscr.nodelay(True)

    def poll(self) -> Optional[str]:
        ch = self.stdscr.getch()
        if ch == -1 or not 0 <= ch < 256:
            return None
        return chr(ch)

    def render(self, snapshot: Optional[Snapshot]):
        scr = self.stdscr
        scr.erase()
        if snapshot is None:
            scr.addstr(0, 0, f"Player {self.player_number}: waiting for game state...")
            scr.refresh()
            return

        scores = "  ".join(f"P{e['id']}:{e['score']}" for e in snapshot.leaderboard())
        scr.addstr(0, 0, f"Time Remaining: {snapshot.time_remaining:<5} {scores}")
        max_y, max_x = scr.getmaxyx()
        for i, row in enumerate(grid_rows(snapshot, config.GRID_WIDTH, config.GRID_HEIGHT)):
            if i + 2 >= max_y - 1:
                break
            scr.addstr(i + 2, max(0, (max_x - len(row)) // 2), row[: max_x - 1])
        footer = "W/A/S/D move, Q quit"
        if config.GRID_HEIGHT + 3 < max_y:
            scr.addstr(config.GRID_HEIGHT + 3, 0, footer)
        scr.refresh()
