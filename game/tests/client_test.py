import pytest

from game.client.client import QUIT, GameClient, client_port, key_to_intent
from game.client.terminal import grid_rows
from game.common import config
from game.common.models import Direction, PlayerState, Snapshot


@pytest.mark.parametrize(
    "key,intent",
    [("w", Direction.W), ("A", Direction.A), ("s", Direction.S), ("d", Direction.D),
     ("q", QUIT), ("Q", QUIT), ("x", None), ("", None), (None, None)],
)
def test_key_to_intent(key, intent):
    assert key_to_intent(key) == intent


def test_client_port_follows_player_number():
    assert client_port(1) == config.CLIENT_BASE_PORT
    assert client_port(3) == config.CLIENT_BASE_PORT + 2
    for bad in (0, 4):
        with pytest.raises(ValueError):
            client_port(bad)


def test_snapshot_replaces_latest():
    client = GameClient(1)
    client.handle_datagram(b"GAME_STATE|TIME:10|P1:(1, 0, 0)|(2, 3)|")
    first = client.latest_snapshot
    client.handle_datagram(b"GAME_STATE|TIME:9|P1:(2, 0, 0)||")
    assert client.latest_snapshot is not first
    assert first.players[1] == PlayerState(1, 0, 0)
    assert client.latest_snapshot.time_remaining == 9
    assert client.snapshots_received == 2


def test_bad_snapshot_keeps_previous():
    client = GameClient(2)
    client.handle_datagram(b"GAME_STATE|TIME:10|||")
    client.handle_datagram(b"GAME_STATE|TIME:")
    assert client.latest_snapshot.time_remaining == 10


def test_ack_is_routed_to_sender():
    client = GameClient(1)
    # Nothing in flight, so the ACK is ignored rather than raising
    client.handle_datagram(b"ACK:1")
    client.handle_datagram(b"hello")
    assert client.latest_snapshot is None


def test_grid_rows():
    snap = Snapshot(
        time_remaining=5,
        players={1: PlayerState(0, 0, 0), 2: PlayerState(2, 1, 10)},
        treasures={(1, 0)},
        traps={(0, 1)},
    )
    assert grid_rows(snap, 3, 2) == ["1 T .", "X . 2"]


def test_leaderboard():
    snap = Snapshot(players={1: PlayerState(score=0), 2: PlayerState(score=20), 3: PlayerState(score=20)})
    assert [e["id"] for e in snap.leaderboard()] == [2, 3, 1]
