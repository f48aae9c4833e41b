"""
Reliable sender: sequence numbers, ACK wait and bounded retry over UDP.

Single-outstanding discipline: at most one message per sender is waiting
for its ACK. A retransmission reuses the original sequence number, so the
server's sequence filter turns a late duplicate into a no-op.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Optional

from game.common import codec, config
from game.common.models import Direction

log = logging.getLogger("reliable")


class SendTimeout(Exception):
    """Raised when no ACK arrived within the retry budget."""

    def __init__(self, sequence: int, attempts: int, reason: str = "timeout"):
        super().__init__(f"seq {sequence} not acknowledged after {attempts} attempts ({reason})")
        self.sequence = sequence
        self.attempts = attempts
        self.reason = reason


class ReliableSender:
    def __init__(
        self,
        send_datagram: Callable[[bytes], None],
        retry_limit: Optional[int] = None,
        retry_timeout: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._send_datagram = send_datagram
        self.retry_limit = config.RETRY_LIMIT if retry_limit is None else retry_limit
        self.retry_timeout = config.RETRY_TIMEOUT_SEC if retry_timeout is None else retry_timeout
        self._clock = clock
        self.next_sequence = 1

        self._lock = asyncio.Lock()
        self._inflight: Optional[int] = None
        self._acked: Optional[asyncio.Event] = None

        self.attempts_total = 0
        self.acked_total = 0
        self.failed_total = 0

    @property
    def inflight(self) -> Optional[int]:
        return self._inflight

    async def send(self, payload: str) -> int:
        """Deliver payload; returns its sequence once acknowledged.

        Raises SendTimeout after retry_limit attempts or once the overall
        budget (retry_limit * retry_timeout) is spent, whichever comes first.
        """
        async with self._lock:
            sequence = self.next_sequence
            self.next_sequence += 1
            datagram = codec.encode_command(sequence, payload)

            self._inflight = sequence
            self._acked = asyncio.Event()
            deadline = self._clock() + self.retry_limit * self.retry_timeout
            attempts = 0
            try:
                while attempts < self.retry_limit:
                    remaining = deadline - self._clock()
                    if remaining <= 0:
                        break
                    self._send_datagram(datagram)
                    attempts += 1
                    self.attempts_total += 1
                    try:
                        await asyncio.wait_for(
                            self._acked.wait(), timeout=min(self.retry_timeout, remaining)
                        )
                    except asyncio.TimeoutError:
                        log.debug(f"No ACK for seq {sequence} (attempt {attempts}/{self.retry_limit})")
                        continue
                    self.acked_total += 1
                    return sequence
            finally:
                self._inflight = None
                self._acked = None

            self.failed_total += 1
            raise SendTimeout(sequence, attempts)

    async def connect(self) -> int:
        return await self.send(config.CONNECT)

    async def send_move(self, direction: Direction) -> int:
        return await self.send(codec.move_payload(direction))

    def ack_received(self, sequence: int) -> bool:
        """Feed an inbound ACK; True if it completed the in-flight send."""
        if self._inflight is None or sequence != self._inflight:
            log.debug(f"Ignoring ACK:{sequence} (in flight: {self._inflight})")
            return False
        self._acked.set()
        return True
