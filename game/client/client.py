"""
Game client: handshake, move intents and snapshot reception over UDP.

States: DISCONNECTED → CONNECTING → PLAYING → QUITTING

The client holds no game logic. It forwards W/A/S/D through the reliable
sender and keeps the most recent snapshot for the renderer; a snapshot is
replaced as a whole and never mutated after decoding.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Optional, Union

from game.common import codec, config
from game.common.codec import MalformedSnapshot
from game.common.models import Direction, Endpoint, Snapshot

from .reliable import ReliableSender, SendTimeout
from .terminal import KeySource, Renderer

log = logging.getLogger("client")

QUIT = "Q"


class ClientState(str, Enum):
    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    PLAYING = "PLAYING"
    QUITTING = "QUITTING"


def key_to_intent(key: Optional[str]) -> Optional[Union[Direction, str]]:
    """Map a raw key to a Direction, QUIT, or None for anything else."""
    if not key:
        return None
    key = key.upper()
    if key == QUIT:
        return QUIT
    try:
        return Direction(key)
    except ValueError:
        return None


def client_port(player_number: int) -> int:
    if not 1 <= player_number <= config.PLAYER_CAP:
        raise ValueError(f"Player number must be between 1 and {config.PLAYER_CAP}")
    return config.CLIENT_BASE_PORT + player_number - 1


class GameClientProtocol(asyncio.DatagramProtocol):
    def __init__(self, client: "GameClient"):
        self.client = client

    def connection_made(self, transport):
        self.client.transport = transport

    def datagram_received(self, data: bytes, addr):
        self.client.handle_datagram(data)

    def error_received(self, exc):
        log.debug(f"Socket error: {exc}")


class GameClient:
    def __init__(
        self,
        player_number: int,
        key_source: Optional[KeySource] = None,
        renderer: Optional[Renderer] = None,
        server_addr: Optional[Endpoint] = None,
        local_port: Optional[int] = None,
    ):
        self.player_number = player_number
        self.local_port = client_port(player_number) if local_port is None else local_port
        self.server_addr = server_addr or (config.SERVER_HOST, config.SERVER_PORT)
        self.key_source = key_source
        self.renderer = renderer

        self.state = ClientState.DISCONNECTED
        self.transport: Optional[asyncio.DatagramTransport] = None
        self.sender = ReliableSender(self._send_to_server)
        self.latest_snapshot: Optional[Snapshot] = None
        self.snapshots_received = 0

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------
    async def start(self):
        """Bind the local port. OSError (port in use) propagates to the caller."""
        loop = asyncio.get_running_loop()
        await loop.create_datagram_endpoint(
            lambda: GameClientProtocol(self),
            local_addr=(config.CLIENT_HOST, self.local_port),
        )
        self.local_port = self.transport.get_extra_info("sockname")[1]
        log.info(f"Player {self.player_number} bound to {config.CLIENT_HOST}:{self.local_port}")

    def close(self):
        if self.transport is not None:
            self.transport.close()
            self.transport = None

    def _send_to_server(self, data: bytes):
        if self.transport is None:
            return
        self.transport.sendto(data, self.server_addr)

    def handle_datagram(self, data: bytes):
        ack = codec.decode_ack(data)
        if ack is not None:
            self.sender.ack_received(ack)
        elif codec.is_snapshot(data):
            try:
                snapshot = codec.decode_snapshot(data)
            except MalformedSnapshot as e:
                log.warning(f"Bad snapshot: {e}")
                return
            self.latest_snapshot = snapshot
            self.snapshots_received += 1
        else:
            log.debug(f"Ignoring datagram: {data[:32]!r}")

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------
    async def connect(self):
        """Handshake; PLAYING follows whether or not the server acknowledged."""
        self.state = ClientState.CONNECTING
        try:
            await self.sender.connect()
            log.info("Connected")
        except SendTimeout as e:
            log.warning(f"Handshake not acknowledged, continuing: {e}")
        self.state = ClientState.PLAYING

    async def handle_key(self, key: Optional[str]) -> bool:
        """Act on one key press; returns False once the client is quitting."""
        intent = key_to_intent(key)
        if intent == QUIT:
            log.info("Quitting")
            self.state = ClientState.QUITTING
            return False
        if isinstance(intent, Direction):
            try:
                await self.sender.send_move(intent)
            except SendTimeout as e:
                log.warning(f"Move {intent.value} dropped: {e}")
        return True

    async def _input_loop(self):
        while self.state is ClientState.PLAYING:
            key = self.key_source.poll() if self.key_source else None
            if key and not await self.handle_key(key):
                return
            await asyncio.sleep(config.POLL_INTERVAL_SEC)

    async def _render_loop(self):
        while True:
            if self.renderer:
                self.renderer.render(self.latest_snapshot)
            await asyncio.sleep(config.POLL_INTERVAL_SEC)

    async def run(self):
        if self.transport is None:
            await self.start()
        render_task = asyncio.ensure_future(self._render_loop())
        try:
            await self.connect()
            await self._input_loop()
        finally:
            render_task.cancel()
            try:
                await render_task
            except asyncio.CancelledError:
                pass
            self.close()
