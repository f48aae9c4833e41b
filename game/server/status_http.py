"""Read-only HTTP status endpoint: GET /health and GET /state."""

from __future__ import annotations

import logging
from typing import Optional

from aiohttp import web

from game.common import config

from .udp_server import GameServer

log = logging.getLogger("status_http")

GAME_KEY = web.AppKey("game", GameServer)


async def health(_request):
    return web.json_response({"status": "ok"})


async def state(request):
    game: GameServer = request.app[GAME_KEY]
    body = game.world.snapshot().to_dict()
    body["grid"] = {"width": game.world.width, "height": game.world.height}
    body["sessions"] = [s.to_dict() for s in game.sessions]
    body["stats"] = dict(game.stats)
    return web.json_response(body)


def create_app(game: GameServer) -> web.Application:
    app = web.Application()
    app[GAME_KEY] = game
    app.router.add_get("/health", health)
    app.router.add_get("/state", state)
    return app


class StatusServer:
    def __init__(self, game: GameServer, host: Optional[str] = None, port: Optional[int] = None):
        self.game = game
        self.host = config.STATUS_HTTP_HOST if host is None else host
        self.port = config.STATUS_HTTP_PORT if port is None else port
        self._runner = None

    async def start(self):
        self._runner = web.AppRunner(create_app(self.game))
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        log.info(f"Status endpoint on http://{self.host}:{self.port}")

    async def stop(self):
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
