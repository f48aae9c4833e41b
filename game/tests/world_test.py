import pytest

from game.common import config
from game.common.models import Direction, PlayerState
from game.server.world import CapacityExceeded, GameWorld


@pytest.fixture
def world():
    return GameWorld(width=10, height=10, treasures=[(2, 3)], traps=[(4, 0)], duration=3)


def move_to(world, player_id, x, y):
    """Walk along x then y with the real transition function."""
    p = world.players[player_id]
    while p.x != x:
        world.apply_move(player_id, Direction.D if x > p.x else Direction.A)
    while p.y != y:
        world.apply_move(player_id, Direction.S if y > p.y else Direction.W)


def test_connect_assigns_lowest_free_id(world):
    assert world.apply_connect() == 1
    assert world.apply_connect() == 2
    world.remove_player(1)
    assert world.apply_connect() == 1
    assert world.players[1] == PlayerState(0, 0, 0)


def test_capacity(world):
    for _ in range(3):
        world.apply_connect()
    with pytest.raises(CapacityExceeded):
        world.apply_connect()
    assert len(world.players) == 3


def test_moves_follow_wasd(world):
    pid = world.apply_connect()
    world.apply_move(pid, Direction.D)
    world.apply_move(pid, Direction.S)
    assert world.players[pid].cell == (1, 1)
    world.apply_move(pid, Direction.W)
    world.apply_move(pid, Direction.A)
    assert world.players[pid].cell == (0, 0)


def test_clamps_at_edges(world):
    pid = world.apply_connect()
    world.players[pid].y = 5
    world.apply_move(pid, Direction.A)
    assert world.players[pid].cell == (0, 5)

    world.players[pid].x, world.players[pid].y = 9, 9
    world.apply_move(pid, Direction.D)
    world.apply_move(pid, Direction.S)
    assert world.players[pid].cell == (9, 9)

    world.players[pid].y = 0
    world.apply_move(pid, Direction.W)
    assert world.players[pid].cell == (9, 0)


def test_treasure_is_collected_once(world):
    first = world.apply_connect()
    second = world.apply_connect()
    move_to(world, first, 2, 3)
    assert world.players[first].score == config.TREASURE_VALUE
    assert (2, 3) not in world.treasures

    move_to(world, second, 2, 3)
    assert world.players[second].score == 0


def test_trap_resets_score_and_is_consumed(world):
    pid = world.apply_connect()
    world.players[pid].score = 30
    move_to(world, pid, 4, 0)
    assert world.players[pid].score == 0
    assert (4, 0) not in world.traps

    world.players[pid].score = 10
    world.apply_move(pid, Direction.D)
    world.apply_move(pid, Direction.A)
    assert world.players[pid].score == 10


def test_tick_saturates_at_zero(world):
    for _ in range(5):
        world.tick()
    assert world.time_remaining == 0
    assert world.is_over


def test_moves_still_apply_after_timer_expires(world):
    pid = world.apply_connect()
    world.time_remaining = 0
    world.apply_move(pid, Direction.D)
    assert world.players[pid].cell == (1, 0)


def test_snapshot_is_a_copy(world):
    pid = world.apply_connect()
    snap = world.snapshot()
    world.apply_move(pid, Direction.D)
    assert snap.players[pid].cell == (0, 0)
    assert snap.treasures == {(2, 3)}


def test_rejects_overlapping_or_out_of_bounds_cells():
    with pytest.raises(ValueError):
        GameWorld(5, 5, treasures=[(1, 1)], traps=[(1, 1)])
    with pytest.raises(ValueError):
        GameWorld(5, 5, treasures=[(5, 0)])


def test_from_config():
    world = GameWorld.from_config()
    assert (world.width, world.height) == (config.GRID_WIDTH, config.GRID_HEIGHT)
    assert world.time_remaining == config.GAME_DURATION_SEC
    assert not world.treasures & world.traps
