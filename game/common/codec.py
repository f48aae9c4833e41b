"""
Wire codec: text encoding of commands, ACKs and state snapshots.

Client → server:  "<seq>:connect" | "<seq>:MOVE:<W|A|S|D>" | bare "connect"
Server → client:  "ACK:<seq>"
                  "GAME_STATE|TIME:<n>|P<id>:(<x>, <y>, <score>)|...|<treasures>|<traps>"

Commands are decoded strictly (anything off-format raises MalformedMessage)
because they feed authoritative state. Snapshots are decoded leniently: a
numeric field that fails to parse becomes 0 and the rest of the record is
kept.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from . import config
from .models import Cell, Direction, PlayerState, Snapshot

_TUPLE_RE = re.compile(r"\(([^()]*)\)")


class ProtocolError(ValueError):
    """Base class for undecodable datagrams."""


class MalformedMessage(ProtocolError):
    pass


class MalformedSnapshot(ProtocolError):
    pass


@dataclass(frozen=True)
class Command:
    sequence: Optional[int]   # None for the bare handshake
    payload: str

    @property
    def is_connect(self) -> bool:
        return self.payload == config.CONNECT

    @property
    def is_move(self) -> bool:
        return self.payload.startswith(config.MOVE_PREFIX)

    @property
    def direction(self) -> Direction:
        if not self.is_move:
            raise MalformedMessage(f"Not a move command: {self.payload!r}")
        raw = self.payload[len(config.MOVE_PREFIX):]
        try:
            return Direction(raw)
        except ValueError:
            raise MalformedMessage(f"Unknown direction: {raw!r}") from None


# ----------------------------------------------------------------------
# Commands
# ----------------------------------------------------------------------
def encode_command(sequence: int, payload: str) -> bytes:
    return f"{sequence}:{payload}".encode("utf-8")


def move_payload(direction: Direction) -> str:
    return f"{config.MOVE_PREFIX}{Direction(direction).value}"


def encode_move(sequence: int, direction: Direction) -> bytes:
    return encode_command(sequence, move_payload(direction))


def _parse_sequence(raw: str) -> Optional[int]:
    """Decimal sequence in 0..MAX_SEQUENCE, or None."""
    if not (raw.isascii() and raw.isdigit()):
        return None
    # Length check first: int() refuses very long digit strings
    if len(raw.lstrip("0")) > len(str(config.MAX_SEQUENCE)):
        return None
    sequence = int(raw)
    return sequence if sequence <= config.MAX_SEQUENCE else None


def decode_command(data: bytes) -> Command:
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError:
        raise MalformedMessage(f"Not UTF-8: {data[:32]!r}") from None

    if text == config.CONNECT:
        return Command(sequence=None, payload=text)

    parts = text.split(":", 1)
    if len(parts) < 2:
        raise MalformedMessage(f"Missing sequence field: {text[:64]!r}")

    seq_field, payload = parts
    sequence = _parse_sequence(seq_field)
    if sequence is None:
        raise MalformedMessage(f"Invalid sequence number: {seq_field[:32]!r}")
    return Command(sequence=sequence, payload=payload)


# ----------------------------------------------------------------------
# ACKs
# ----------------------------------------------------------------------
def encode_ack(sequence: int) -> bytes:
    return f"{config.ACK_PREFIX}{sequence}".encode("utf-8")


def decode_ack(data: bytes) -> Optional[int]:
    """Return the acknowledged sequence, or None if data is not a valid ACK."""
    text = data.decode("utf-8", errors="replace")
    if not text.startswith(config.ACK_PREFIX):
        return None
    return _parse_sequence(text[len(config.ACK_PREFIX):])


# ----------------------------------------------------------------------
# Snapshots
# ----------------------------------------------------------------------
def _encode_cells(cells) -> str:
    return ",".join(f"({x}, {y})" for x, y in sorted(cells))


def encode_snapshot(snapshot: Snapshot) -> bytes:
    players = "|".join(
        f"P{pid}:({p.x}, {p.y}, {p.score})"
        for pid, p in sorted(snapshot.players.items())
    )
    segments = [
        config.SNAPSHOT_TAG,
        f"{config.TIME_PREFIX}{snapshot.time_remaining}",
        players,
        _encode_cells(snapshot.treasures),
        _encode_cells(snapshot.traps),
    ]
    return "|".join(segments).encode("utf-8")


def is_snapshot(data: bytes) -> bool:
    return data.startswith(f"{config.SNAPSHOT_TAG}|".encode("utf-8"))


def _int_or_zero(raw: str) -> int:
    try:
        return int(raw.strip())
    except ValueError:
        return 0


def _decode_cells(segment: str) -> set[Cell]:
    cells = set()
    for inner in _TUPLE_RE.findall(segment):
        coords = inner.split(",")
        if len(coords) != 2:
            continue
        cells.add((_int_or_zero(coords[0]), _int_or_zero(coords[1])))
    return cells


def _decode_player(segment: str) -> tuple[int, PlayerState]:
    head, _, body = segment[1:].partition(":")
    fields = body.strip().strip("()").split(",")
    fields += [""] * (3 - len(fields))
    x, y, score = (_int_or_zero(f) for f in fields[:3])
    return _int_or_zero(head), PlayerState(x=x, y=y, score=score)


def decode_snapshot(data: bytes) -> Snapshot:
    text = data.decode("utf-8", errors="replace")
    parts = text.split("|")
    if len(parts) < 4:
        raise MalformedSnapshot(f"Expected at least 4 segments, got {len(parts)}")
    if parts[0] != config.SNAPSHOT_TAG:
        raise MalformedSnapshot(f"Not a snapshot: {parts[0]!r}")

    time_field = parts[1]
    if time_field.startswith(config.TIME_PREFIX):
        time_field = time_field[len(config.TIME_PREFIX):]

    players = {}
    for segment in parts[2:-2]:
        if segment.startswith("P"):
            pid, state = _decode_player(segment)
            players[pid] = state

    return Snapshot(
        time_remaining=_int_or_zero(time_field),
        players=players,
        treasures=_decode_cells(parts[-2]),
        traps=_decode_cells(parts[-1]),
    )
