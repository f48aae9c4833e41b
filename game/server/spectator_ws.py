"""
Spectator WebSocket feed.

Viewers connect on SPECTATOR_WS_PORT and receive every snapshot the UDP
server broadcasts, as the same GAME_STATE text. The current snapshot is sent
immediately on connect. Viewers never send commands; inbound frames are
ignored.
"""

from __future__ import annotations

import logging
from typing import Optional

import websockets

from game.common import codec, config

from .udp_server import GameServer

log = logging.getLogger("spectator_ws")


class SpectatorFeed:
    def __init__(self, server: GameServer, host: Optional[str] = None, port: Optional[int] = None):
        self.game = server
        self.host = config.SPECTATOR_WS_HOST if host is None else host
        self.port = config.SPECTATOR_WS_PORT if port is None else port
        self._viewers: set = set()
        self._server = None

        self.game.on_snapshot = self._broadcast

    @property
    def viewer_count(self) -> int:
        return len(self._viewers)

    async def start(self):
        self._server = await websockets.serve(self._viewer_handler, self.host, self.port)
        self.port = self._server.sockets[0].getsockname()[1]
        log.info(f"Spectator feed on ws://{self.host}:{self.port}")

    async def stop(self):
        if self._server:
            self._server.close()
            await self._server.wait_closed()
            self._server = None

    async def _viewer_handler(self, websocket):
        self._viewers.add(websocket)
        log.info(f"Viewer connected: {websocket.remote_address} (total: {len(self._viewers)})")
        try:
            await websocket.send(codec.encode_snapshot(self.game.world.snapshot()).decode("utf-8"))
            async for _ in websocket:
                pass
        except websockets.exceptions.ConnectionClosed:
            pass
        finally:
            self._viewers.discard(websocket)
            log.info(f"Viewer disconnected: {websocket.remote_address}")

    async def _broadcast(self, frame: bytes):
        if not self._viewers:
            return
        text = frame.decode("utf-8")
        stale = set()
        for ws in list(self._viewers):
            try:
                await ws.send(text)
            except websockets.exceptions.ConnectionClosed:
                stale.add(ws)
        self._viewers -= stale
