from typing import Sequence

import numpy as np

from rl_learning_tool.envs import Action, Environment, GridWorld, StateKey, TransitionResult
from rl_learning_tool.tabular import SARSA, MonteCarloControl, QLearning, TDLearning


class LoopEnv(Environment):
    """
    Two states "a" <-> "b" that never terminate.

    Only "move" is valid in "a"; both "move" and "stay" are valid in "b".
    """

    actions = ("stay", "move")

    def __init__(self):
        self.state = "a"

    @property
    def current_state(self) -> StateKey:
        return self.state

    def reset(self) -> StateKey:
        self.state = "a"
        return self.state

    def _next(self, state: StateKey, action: Action) -> StateKey:
        if action == "stay":
            return state
        return "b" if state == "a" else "a"

    def step(self, action: Action) -> TransitionResult:
        self.check_action(self.state, action)
        self.state = self._next(self.state, action)
        return TransitionResult(next_state=self.state, reward=-1.0, done=False)

    def probe(self, state: StateKey, action: Action) -> TransitionResult:
        self.check_action(state, action)
        return TransitionResult(next_state=self._next(state, action), reward=-1.0, done=False)

    def get_valid_actions(self, state: StateKey) -> Sequence[Action]:
        return ("move",) if state == "a" else ("stay", "move")


def test_q_learning_one_step_update_non_terminal() -> None:
    """
    Q-learning update (non-terminal):

        Q <- Q + alpha * (r + gamma * max Q(s',.) - Q)

    This test checks the numerical update exactly.
    """
    agent = QLearning(GridWorld(), alpha=0.5, gamma=0.9, epsilon=0.0, seed=0)

    # Set a known Q table
    agent.q_table.set("0,1", "up", 2.0)
    agent.q_table.set("0,1", "down", 1.0)  # max at next_state is 2.0

    # target = 1 + 0.9 * 2 = 2.8
    # old Q = 0
    # new Q = 0 + 0.5 * (2.8 - 0) = 1.4
    agent.update("0,0", "right", 1.0, "0,1", False)
    assert np.isclose(a=agent.q_table.get("0,0", "right"), b=1.4)


def test_q_learning_one_step_update_terminal() -> None:
    """
    Q-learning update (terminal): no bootstrap from next state.

        target = r
    """
    agent = QLearning(GridWorld(), alpha=0.5, gamma=0.9, epsilon=0.0, seed=0)
    agent.q_table.set("4,4", "up", 5.0)  # must be ignored

    # target = 1
    # new Q = 0 + 0.5 * (1 - 0) = 0.5
    agent.update("3,4", "down", 1.0, "4,4", True)
    assert np.isclose(a=agent.q_table.get("3,4", "down"), b=0.5)


def test_q_learning_unseen_next_state_does_not_bootstrap() -> None:
    agent = QLearning(GridWorld(), alpha=0.5, gamma=0.9, epsilon=0.0, seed=0)
    agent.q_table.set("0,0", "right", -2.0)

    # target = -1, new Q = -2 + 0.5 * (-1 + 2) = -1.5
    agent.update("0,0", "right", -1.0, "0,1", False)
    assert np.isclose(a=agent.q_table.get("0,0", "right"), b=-1.5)


def test_sarsa_one_step_update_non_terminal() -> None:
    """
    SARSA update (non-terminal):

        Q <- Q + alpha * (r + gamma * Q(s',a') - Q)

    This test checks the numerical update exactly.
    """
    agent = SARSA(GridWorld(), alpha=0.5, gamma=0.9, epsilon=0.0, seed=0)

    agent.q_table.set("0,1", "right", 2.0)  # Q(next_state, next_action)
    agent.q_table.set("0,1", "up", 5.0)  # larger, but not the action taken next

    # target = 1 + 0.9 * 2 = 2.8
    # old Q = 0
    # new Q = 0 + 0.5 * (2.8 - 0) = 1.4
    agent.update("0,0", "right", 1.0, "0,1", "right", False)
    assert np.isclose(a=agent.q_table.get("0,0", "right"), b=1.4)


def test_sarsa_one_step_update_terminal() -> None:
    """
    SARSA update (terminal): no bootstrap from next state.

        target = r
    """
    agent = SARSA(GridWorld(), alpha=0.5, gamma=0.9, epsilon=0.0, seed=0)
    agent.q_table.set("4,4", "up", 5.0)

    # target = 1
    # new Q = 0 + 0.5 * (1 - 0) = 0.5
    agent.update("3,4", "down", 1.0, "4,4", "up", True)  # next action irrelevant when done=True
    assert np.isclose(a=agent.q_table.get("3,4", "down"), b=0.5)


def test_td0_one_step_update() -> None:
    """
    TD(0) update:

        V(s) <- V(s) + alpha * (r + gamma * V(s') - V(s))
    """
    agent = TDLearning(GridWorld(), alpha=0.5, gamma=0.9, seed=0)
    agent.V["0,1"] = 2.0

    # target = 1 + 0.9 * 2 = 2.8, new V = 0.5 * 2.8 = 1.4
    agent.update("0,0", 1.0, "0,1", False)
    assert np.isclose(a=agent.V["0,0"], b=1.4)

    # terminal: target = r
    agent.update("3,4", 1.0, "4,4", True)
    assert np.isclose(a=agent.V["3,4"], b=0.5)


def test_td0_policy_is_greedy_lookahead_on_V() -> None:
    """
    After an episode, TD's policy for a cell next to the goal points at the goal.
    """
    agent = TDLearning(GridWorld(), alpha=0.5, gamma=0.9, seed=0)
    agent.train_episode()

    assert agent.get_policy()["3,4"] == "down"
    assert agent.get_policy()["4,3"] == "right"
    assert len(agent.get_values()) == 25


def test_greedy_action_uses_first_max_and_first_action_default() -> None:
    agent = QLearning(GridWorld(), alpha=0.5, gamma=0.9, epsilon=0.0, seed=0)

    # never seen: the environment's first action
    assert agent.choose_action("2,3") == "up"

    # tie between "down" and "right": the earlier one in action order wins
    agent.q_table.set("0,0", "down", 1.0)
    agent.q_table.set("0,0", "right", 1.0)
    assert agent.choose_action("0,0") == "down"
    assert agent.get_policy() == {"0,0": "down"}
    assert np.isclose(a=agent.get_values()["0,0"], b=1.0)


def test_epsilon_one_explores_uniformly() -> None:
    agent = QLearning(GridWorld(), alpha=0.5, gamma=0.9, epsilon=1.0, seed=0)
    agent.q_table.set("0,0", "down", 100.0)

    picks = [agent.choose_action("0,0") for _ in range(400)]
    assert set(picks) == set(GridWorld.actions)


def test_episodes_are_bounded_by_max_steps() -> None:
    """
    Test Goal:
        On an environment that never terminates, every online algorithm stops after max_steps.

    Why this matters:
        Without the cap an episode on such an environment would never return.
    """
    for agent in [
        MonteCarloControl(LoopEnv(), gamma=0.9, epsilon=0.2, seed=0, max_steps=10),
        TDLearning(LoopEnv(), alpha=0.5, gamma=0.9, seed=0, max_steps=10),
        SARSA(LoopEnv(), alpha=0.5, gamma=0.9, epsilon=0.2, seed=0, max_steps=10),
        QLearning(LoopEnv(), alpha=0.5, gamma=0.9, epsilon=0.2, seed=0, max_steps=10),
    ]:
        total = agent.train_episode()
        assert agent.last_episode_length == 10
        assert np.isclose(a=total, b=-10.0)


def test_restricted_valid_actions_are_respected() -> None:
    """
    In state "a" only "move" is valid: no learner may ever take (or store) "stay" there.
    """
    for agent in [
        MonteCarloControl(LoopEnv(), gamma=0.9, epsilon=0.5, seed=1, max_steps=20),
        SARSA(LoopEnv(), alpha=0.5, gamma=0.9, epsilon=0.5, seed=1, max_steps=20),
        QLearning(LoopEnv(), alpha=0.5, gamma=0.9, epsilon=0.5, seed=1, max_steps=20),
    ]:
        for _ in range(5):
            agent.train_episode()

        q = agent.get_q_table()
        assert set(q["a"]) == {"move"}
        assert agent.get_policy()["a"] == "move"


def test_values_use_only_valid_actions() -> None:
    """
    Test Goal:
        On LoopEnv, V(s) = max over the *valid* actions of Q(s, .), and pi(s) attains it.

    Why this matters:
        Every reward is -1, so all learned Q values are negative. If the invalid "stay" in "a"
        were included it would read as 0.0 and win the max.
    """
    for agent in [
        MonteCarloControl(LoopEnv(), gamma=0.9, epsilon=0.5, seed=2, max_steps=20),
        SARSA(LoopEnv(), alpha=0.5, gamma=0.9, epsilon=0.5, seed=2, max_steps=20),
        QLearning(LoopEnv(), alpha=0.5, gamma=0.9, epsilon=0.5, seed=2, max_steps=20),
    ]:
        for _ in range(5):
            agent.train_episode()

        env = agent.env
        values, policy, q = agent.get_values(), agent.get_policy(), agent.get_q_table()
        assert set(values) == set(q)
        for s in q:
            best = max(agent.q_table.get(s, a) for a in env.get_valid_actions(s))
            assert np.isclose(a=values[s], b=best)
            assert policy[s] in env.get_valid_actions(s)
            assert np.isclose(a=agent.q_table.get(s, policy[s]), b=best)

        assert values["a"] < 0.0


def test_same_seed_same_learning() -> None:
    a = QLearning(GridWorld(), alpha=0.1, gamma=0.9, epsilon=0.2, seed=7)
    b = QLearning(GridWorld(), alpha=0.1, gamma=0.9, epsilon=0.2, seed=7)

    rewards_a = [a.train_episode() for _ in range(5)]
    rewards_b = [b.train_episode() for _ in range(5)]

    assert rewards_a == rewards_b
    assert a.get_q_table() == b.get_q_table()
