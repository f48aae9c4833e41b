"""Entry point: python -m game.server"""

import asyncio
import logging
import sys

from game.common import config

from .spectator_ws import SpectatorFeed
from .status_http import StatusServer
from .udp_server import GameServer

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s %(message)s",
    datefmt="%H:%M:%S",
)
log = logging.getLogger("server")


async def serve():
    server = GameServer()
    extras = []
    if config.SPECTATOR_WS_PORT is not None:
        extras.append(SpectatorFeed(server))
    if config.STATUS_HTTP_PORT is not None:
        extras.append(StatusServer(server))

    await server.start()
    for extra in extras:
        await extra.start()
    try:
        await asyncio.Future()  # run until cancelled
    finally:
        for extra in reversed(extras):
            await extra.stop()
        await server.stop()


def main():
    try:
        asyncio.run(serve())
    except OSError as e:
        log.error(f"Cannot bind: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        log.info("Shutting down")


if __name__ == "__main__":
    main()
