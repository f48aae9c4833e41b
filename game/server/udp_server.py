"""
Authoritative UDP game server.

Every inbound datagram runs through the same pipeline:

    decode → admission path (connect) | command path (sequenced move)
           → ACK → apply → broadcast full snapshot to every session

The server is a single asyncio event loop, so the world has exactly one
mutator and needs no locking. A background tick task drives the countdown,
evicts idle sessions and rebroadcasts.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from game.common import codec, config
from game.common.codec import Command, MalformedMessage
from game.common.models import Endpoint

from .dedup import SequenceFilter
from .sessions import Session, SessionManager
from .world import GameWorld

log = logging.getLogger("udp_server")


class GameServerProtocol(asyncio.DatagramProtocol):
    def __init__(self, server: "GameServer"):
        self.server = server

    def connection_made(self, transport):
        self.server.transport = transport

    def datagram_received(self, data: bytes, addr):
        self.server.handle_datagram(data, (addr[0], addr[1]))

    def error_received(self, exc):
        # ICMP port unreachable from a client that went away
        log.debug(f"Socket error: {exc}")


class GameServer:
    """Owns the world, the sessions and the sequence filter."""

    def __init__(
        self,
        world: Optional[GameWorld] = None,
        sessions: Optional[SessionManager] = None,
        host: Optional[str] = None,
        port: Optional[int] = None,
        tick_interval: Optional[float] = None,
    ):
        self.world = world if world is not None else GameWorld.from_config()
        self.sessions = sessions if sessions is not None else SessionManager(self.world)
        self.filter = SequenceFilter()
        self.sessions.on_removed = self._session_removed
        self.host = config.SERVER_HOST if host is None else host
        self.port = config.SERVER_PORT if port is None else port
        self.tick_interval = config.TICK_INTERVAL_SEC if tick_interval is None else tick_interval
        self.transport: Optional[asyncio.DatagramTransport] = None
        self._tick_task: Optional[asyncio.Task] = None
        self.stats = {
            "received": 0,
            "malformed": 0,
            "duplicates": 0,
            "acks_sent": 0,
            "broadcasts": 0,
        }

        # Set by the spectator feed
        self.on_snapshot: Optional[Callable[[bytes], Awaitable[None]]] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def start(self):
        """Bind the UDP socket. OSError (address in use) propagates to the caller."""
        loop = asyncio.get_running_loop()
        await loop.create_datagram_endpoint(
            lambda: GameServerProtocol(self),
            local_addr=(self.host, self.port),
        )
        self.host, self.port = self.address
        log.info(f"Server listening on udp://{self.host}:{self.port}")
        if self.tick_interval:
            self._tick_task = asyncio.ensure_future(self._tick_loop())

    async def stop(self):
        if self._tick_task and not self._tick_task.done():
            self._tick_task.cancel()
            try:
                await self._tick_task
            except asyncio.CancelledError:
                pass
        self._tick_task = None
        if self.transport is not None:
            self.transport.close()
            self.transport = None
        log.info("Server stopped")

    @property
    def address(self) -> Endpoint:
        host, port = self.transport.get_extra_info("sockname")[:2]
        return host, port

    async def _tick_loop(self):
        while True:
            await asyncio.sleep(self.tick_interval)
            self.tick()

    def tick(self):
        """One timer step: countdown, idle eviction, rebroadcast."""
        self.world.tick()
        self.sessions.evict_stale()
        self.broadcast()

    def _session_removed(self, session: Session):
        # A new occupant of the slot starts with a fresh sequence window
        self.filter.forget(session.player_id)

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------
    def handle_datagram(self, data: bytes, endpoint: Endpoint):
        self.stats["received"] += 1
        try:
            command = codec.decode_command(data)
        except MalformedMessage as e:
            self.stats["malformed"] += 1
            log.warning(f"Malformed message from {endpoint}: {e}")
        else:
            if command.is_connect:
                self._handle_connect(command, endpoint)
            else:
                self._handle_command(command, endpoint)
        # Broadcast after every datagram, even a dropped one
        self.broadcast()

    def _handle_connect(self, command: Command, endpoint: Endpoint):
        player_id = self.sessions.admit(endpoint)
        if player_id is None:
            return
        if command.sequence is None:
            return

        # A repeated connect is acknowledged again: its first ACK may have been lost
        if self.filter.accept(player_id, command.sequence):
            self.sessions.touch(player_id, command.sequence)
        self._send_ack(command.sequence, endpoint)

    def _handle_command(self, command: Command, endpoint: Endpoint):
        session = self.sessions.lookup(endpoint)
        if session is None:
            # Unknown or evicted sender: admit it if a slot is free
            player_id = self.sessions.admit(endpoint)
            if player_id is None:
                log.warning(f"Command from unknown endpoint {endpoint}: {command.payload!r}")
                return
            log.info(f"Admitted {endpoint} as player {player_id} on {command.payload!r}")
        else:
            player_id = session.player_id

        if not self.filter.accept(player_id, command.sequence):
            self.stats["duplicates"] += 1
            return

        self.sessions.touch(player_id, command.sequence)
        self._send_ack(command.sequence, endpoint)

        if command.is_move:
            try:
                direction = command.direction
            except MalformedMessage as e:
                log.warning(f"Player {player_id}: {e}")
                return
            self.world.apply_move(player_id, direction)
            log.debug(f"Player {player_id} moved {direction.value} (seq {command.sequence})")
        else:
            log.info(f"Player {player_id}: ignoring command {command.payload!r}")

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------
    def _sendto(self, data: bytes, endpoint: Endpoint):
        if self.transport is None:
            return
        self.transport.sendto(data, endpoint)

    def _send_ack(self, sequence: int, endpoint: Endpoint):
        self._sendto(codec.encode_ack(sequence), endpoint)
        self.stats["acks_sent"] += 1

    def broadcast(self) -> bytes:
        """Send the current full snapshot to every admitted session."""
        frame = codec.encode_snapshot(self.world.snapshot())
        if len(frame) > config.MAX_DATAGRAM_BYTES:
            log.warning(f"Snapshot is {len(frame)} bytes (limit {config.MAX_DATAGRAM_BYTES})")
        for endpoint in self.sessions.endpoints():
            self._sendto(frame, endpoint)
        self.stats["broadcasts"] += 1

        if self.on_snapshot:
            asyncio.ensure_future(self.on_snapshot(frame))
        return frame
