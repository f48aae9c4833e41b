"""Reliable sender: ACK matching, retransmission and give-up."""

import asyncio

import pytest

from game.client.reliable import ReliableSender, SendTimeout
from game.common.models import Direction


class Wire:
    """Records outgoing datagrams; optionally ACKs the Nth attempt."""

    def __init__(self, ack_on_attempt=None):
        self.sent: list[bytes] = []
        self.ack_on_attempt = ack_on_attempt
        self.sender: ReliableSender = None

    def __call__(self, data: bytes):
        self.sent.append(data)
        if self.ack_on_attempt and len(self.sent) % self.ack_on_attempt == 0:
            seq = int(data.split(b":", 1)[0])
            asyncio.get_running_loop().call_soon(self.sender.ack_received, seq)


def make_sender(ack_on_attempt=None, retry_timeout=0.05):
    wire = Wire(ack_on_attempt)
    sender = ReliableSender(wire, retry_limit=3, retry_timeout=retry_timeout)
    wire.sender = sender
    return wire, sender


def test_first_attempt_acked():
    async def scenario():
        wire, sender = make_sender(ack_on_attempt=1)
        assert await sender.send_move(Direction.D) == 1
        assert await sender.connect() == 2
        return wire, sender

    wire, sender = asyncio.run(scenario())
    assert wire.sent == [b"1:MOVE:D", b"2:connect"]
    assert sender.attempts_total == 2
    assert sender.acked_total == 2


def test_retransmission_reuses_sequence():
    async def scenario():
        wire, sender = make_sender(ack_on_attempt=2)
        await sender.send("MOVE:W")
        return wire, sender

    wire, sender = asyncio.run(scenario())
    assert wire.sent == [b"1:MOVE:W", b"1:MOVE:W"]
    assert sender.next_sequence == 2


def test_silent_peer_gives_up_after_retry_limit():
    async def scenario():
        wire, sender = make_sender()
        with pytest.raises(SendTimeout) as exc:
            await sender.send("MOVE:S")
        return wire, sender, exc.value

    wire, sender, err = asyncio.run(scenario())
    assert len(wire.sent) == 3
    assert set(wire.sent) == {b"1:MOVE:S"}
    assert err.attempts == 3
    assert err.sequence == 1
    assert err.reason == "timeout"
    assert sender.failed_total == 1
    assert sender.inflight is None


def test_failed_send_does_not_block_next():
    async def scenario():
        wire, sender = make_sender()
        with pytest.raises(SendTimeout):
            await sender.send("MOVE:S")
        wire.ack_on_attempt = 1
        wire.sent.clear()
        return await sender.send("MOVE:A"), wire

    seq, wire = asyncio.run(scenario())
    assert seq == 2
    assert wire.sent == [b"2:MOVE:A"]


def test_mismatched_ack_is_ignored():
    async def scenario():
        wire, sender = make_sender(retry_timeout=0.2)
        task = asyncio.ensure_future(sender.send("MOVE:D"))
        await asyncio.sleep(0.01)
        assert not sender.ack_received(99)
        assert sender.ack_received(1)
        return await task

    assert asyncio.run(scenario()) == 1


def test_single_outstanding():
    async def scenario():
        wire, sender = make_sender(retry_timeout=0.5)
        first = asyncio.ensure_future(sender.send("MOVE:D"))
        second = asyncio.ensure_future(sender.send("MOVE:S"))
        await asyncio.sleep(0.05)
        pending = list(wire.sent)
        sender.ack_received(1)
        await first
        await asyncio.sleep(0.01)
        sender.ack_received(2)
        await second
        return pending, wire.sent

    pending, sent = asyncio.run(scenario())
    assert pending == [b"1:MOVE:D"]
    assert sent == [b"1:MOVE:D", b"2:MOVE:S"]


def test_ack_after_completion_is_ignored():
    async def scenario():
        wire, sender = make_sender(ack_on_attempt=1)
        await sender.send("MOVE:D")
        return sender.ack_received(1)

    assert asyncio.run(scenario()) is False
