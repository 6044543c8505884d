import math
from typing import Sequence

import numpy as np
import pytest

from rl_learning_tool.envs import (
    Action,
    ContractViolationError,
    Environment,
    GridWorld,
    MountainCar,
    StateKey,
    TransitionResult,
    valid_actions,
)


class NoActionsEnv(Environment):
    """
    Broken environment: it never reports a valid action.
    """

    actions = ()

    @property
    def current_state(self) -> StateKey:
        return "s"

    def reset(self) -> StateKey:
        return "s"

    def step(self, action: Action) -> TransitionResult:
        return TransitionResult(next_state="s", reward=0.0, done=False)

    def probe(self, state: StateKey, action: Action) -> TransitionResult:
        return TransitionResult(next_state="s", reward=0.0, done=False)

    def get_valid_actions(self, state: StateKey) -> Sequence[Action]:
        return ()


def test_gridworld_step_into_top_edge_stays_in_place() -> None:
    """
    From the start cell (0,0), "up" leaves the grid: the agent is clamped back in place.
    """
    env = GridWorld()
    assert env.reset() == "0,0"

    tr = env.step("up")
    assert tr.next_state == "0,0"
    assert np.isclose(a=tr.reward, b=-0.1)
    assert tr.done is False
    assert env.current_state == "0,0"


def test_gridworld_obstacle_is_a_no_op() -> None:
    """
    Moving into an obstacle keeps the agent where it is (and still costs a step).
    """
    env = GridWorld()

    # (1,1) is an obstacle right below (0,1)
    tr = env.probe("0,1", "down")
    assert tr.next_state == "0,1"
    assert np.isclose(a=tr.reward, b=-0.1)
    assert tr.done is False


def test_gridworld_shortest_path_reaches_goal() -> None:
    """
    Right x4 then down x4 is an obstacle-free path from (0,0) to the goal (4,4).

    Only the last transition is terminal and pays the goal reward.
    """
    env = GridWorld()
    env.reset()

    path = ["right"] * 4 + ["down"] * 4
    results = [env.step(a) for a in path]

    assert [tr.done for tr in results] == [False] * 7 + [True]
    assert all(np.isclose(a=tr.reward, b=-0.1) for tr in results[:-1])
    assert np.isclose(a=results[-1].reward, b=10.0)
    assert env.current_state == "4,4"


def test_gridworld_probe_does_not_move_the_agent() -> None:
    """
    probe() answers "what if" questions: the live position must not change.
    """
    env = GridWorld()
    env.reset()
    env.step("right")
    env.step("right")

    before = env.current_state
    for s in env.get_all_states():
        for a in env.actions:
            env.probe(s, a)

    assert env.current_state == before == "0,2"


def test_gridworld_probe_matches_step() -> None:
    """
    probe(s, a) and step(a) from s share the same transition function.
    """
    env = GridWorld()
    env.reset()

    for a in ["right", "down", "down", "left", "up"]:
        expected = env.probe(env.current_state, a)
        assert env.step(a) == expected


def test_gridworld_invalid_action_raises() -> None:
    """
    Actions outside the alphabet are a contract violation (which is also a ValueError).
    """
    env = GridWorld()
    env.reset()

    with pytest.raises(ContractViolationError):
        env.step("jump")
    with pytest.raises(ValueError):
        env.probe("0,0", "diagonal")

    # the live state is untouched by the failed call
    assert env.current_state == "0,0"


def test_gridworld_enumerates_every_cell_row_major() -> None:
    env = GridWorld()
    states = env.get_all_states()

    assert len(states) == 25
    assert states[0] == "0,0"
    assert states[1] == "0,1"
    assert states[-1] == "4,4"
    assert len(set(states)) == 25


def test_gridworld_rejects_bad_geometry() -> None:
    with pytest.raises(ValueError):
        GridWorld(goal=(5, 5))
    with pytest.raises(ValueError):
        GridWorld(obstacles=[(0, 0)])
    with pytest.raises(ValueError):
        GridWorld(rows=0)


def test_gridworld_state_key_round_trip() -> None:
    assert GridWorld.state_key(3, 1) == "3,1"
    assert GridWorld.parse_key("3,1") == (3, 1)


def test_mountain_car_reset_state() -> None:
    """
    Every episode starts at position -0.5 with zero velocity.
    """
    env = MountainCar()
    env.step("right")

    state = env.reset()
    assert state == MountainCar.state_key(-0.5, 0.0)
    assert env.position == -0.5
    assert env.velocity == 0.0
    assert env.current_step == 0


def test_mountain_car_start_bin() -> None:
    """
    Test Goal:
        The start position -0.5 sits exactly on a bin edge and must land in bin 7, not 6.

    Why this matters:
        Dividing by the bin width (0.7 / 0.1 = 6.999...) silently shifts every episode's
        first state into the neighbouring bin.
    """
    assert MountainCar.state_key(-0.5, 0.0) == "7,7"
    assert MountainCar().reset() == "7,7"


def test_mountain_car_bins_follow_the_scaled_floor() -> None:
    """
    Key = floor((p + 1.2) * 10), floor((v + 0.07) * 100), including the positions on bin edges.
    """
    for p in [-1.2, -0.6, -0.5, -0.3, 0.0, 0.2, 0.45]:
        for v in [-0.07, -0.02, 0.0, 0.03]:
            expected = f"{math.floor((p + 1.2) * 10)},{math.floor((v + 0.07) * 100)}"
            assert MountainCar.state_key(p, v) == expected


def test_mountain_car_probe_does_not_touch_live_car() -> None:
    env = MountainCar()
    env.reset()
    env.step("left")
    env.step("left")

    live = (env.position, env.velocity, env.current_step)
    for a in env.actions:
        env.probe(env.current_state, a)
        env.probe("3,7", a)

    assert (env.position, env.velocity, env.current_step) == live


def test_mountain_car_episode_cap() -> None:
    """
    Without reaching the flag, the episode ends exactly at max_steps with reward -1 per step.
    """
    env = MountainCar(max_steps=5)
    env.reset()

    results = [env.step("none") for _ in range(5)]
    assert [tr.done for tr in results] == [False, False, False, False, True]
    assert all(np.isclose(a=tr.reward, b=-1.0) for tr in results)


def test_mountain_car_reaching_goal_gives_zero_reward() -> None:
    env = MountainCar()
    env.reset()
    env.position, env.velocity = 0.49, 0.07

    tr = env.step("right")
    assert tr.done is True
    assert np.isclose(a=tr.reward, b=0.0)
    assert env.position >= 0.5


def test_mountain_car_velocity_and_position_are_clipped() -> None:
    env = MountainCar()
    env.reset()
    env.position, env.velocity = -1.19, -0.07

    env.step("left")
    assert env.position == -1.2
    assert env.velocity == 0.0  # hitting the left wall stops the car


def test_mountain_car_bin_center_maps_back_to_its_key() -> None:
    for key in ["0,0", "3,7", "17,13"]:
        assert MountainCar.state_key(*MountainCar.bin_center(key)) == key


def test_mountain_car_does_not_enumerate_states() -> None:
    env = MountainCar()
    assert env.get_all_states() == []
    assert list(env.get_valid_actions(env.current_state)) == ["left", "none", "right"]


def test_empty_valid_actions_is_a_contract_violation() -> None:
    """
    An environment reporting no valid actions must fail loudly at the boundary.
    """
    env = NoActionsEnv()

    with pytest.raises(ContractViolationError):
        valid_actions(env, "s")
    with pytest.raises(ContractViolationError):
        env.first_action()
