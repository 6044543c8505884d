from __future__ import annotations

import warnings
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Sequence

from rl_learning_tool.common.seeding import SeedLike, make_rng, sample_index
from rl_learning_tool.envs.base import Action, Environment, StateKey, valid_actions
from rl_learning_tool.tabular.tables import QTable, ValueTable

MAX_EPISODE_STEPS = 200  # per-episode step cap for the online learners
THETA = 0.001  # convergence threshold for value iteration


@dataclass(frozen=True)
class EpisodeStep:
    """
    One recorded step of an episode: the action taken in `state` and the reward that followed.
    """
    state: StateKey
    action: Action
    reward: float


def check_gamma(gamma: float) -> float:
    gamma = float(gamma)
    if not 0.0 <= gamma <= 1.0:
        raise ValueError(f"gamma must be in [0, 1], got {gamma}")
    return gamma


def check_alpha(alpha: float) -> float:
    alpha = float(alpha)
    if not 0.0 < alpha <= 1.0:
        raise ValueError(f"alpha must be in (0, 1], got {alpha}")
    return alpha


def check_epsilon(epsilon: float) -> float:
    epsilon = float(epsilon)
    if not 0.0 <= epsilon <= 1.0:
        raise ValueError(f"epsilon must be in [0, 1], got {epsilon}")
    return epsilon


def action_value(env: Environment, V: ValueTable, state: StateKey, action: Action, gamma: float) -> float:
    """
    One-step lookahead q(s,a) = r + gamma * V(s') computed with env.probe().

    No bootstrapping past a terminal transition (V(s') counts as 0 when done=True),
    and unseen next states read as 0 through the ValueTable default.

    :param env: Environment providing probe().
        :type env: Environment
    :param V: Current value estimate.
        :type V: ValueTable
    :param state: State key.
        :type state: StateKey
    :param action: Action to evaluate.
        :type action: Action
    :param gamma: Discount factor.
        :type gamma: float

    :return: One-step lookahead action value.
        :rtype: float
    """
    tr = env.probe(state, action)
    bootstrap = 0.0 if tr.done else gamma * V[tr.next_state]
    return tr.reward + bootstrap


def greedy_backup(env: Environment, V: ValueTable, state: StateKey, gamma: float) -> tuple[Action, float]:
    """
    Best action and its value for `state` under a one-step lookahead on V.

    Ties go to the earliest action in get_valid_actions() order (first max).

    :param env: Environment providing probe().
        :type env: Environment
    :param V: Current value estimate.
        :type V: ValueTable
    :param state: State key.
        :type state: StateKey
    :param gamma: Discount factor.
        :type gamma: float

    :return: (best_action, best_value)
        :rtype: tuple[Action, float]
    """
    best_action: Action | None = None
    best_value = float("-inf")
    for a in valid_actions(env, state):
        q = action_value(env, V, state, a, gamma)
        if q > best_value:
            best_action, best_value = a, q
    return best_action, best_value


class PlanningAlgorithm(ABC):
    """
    Model-based algorithm that sweeps every enumerable state with env.probe().

    These need get_all_states() to be non-empty. Given an environment that cannot
    enumerate its states, every sweep has zero length: training is a no-op
    (a RuntimeWarning is emitted when the algorithm is built).
    """

    def __init__(self, env: Environment, gamma: float):
        self.env = env
        self.gamma = check_gamma(gamma)

        self.iterations_run = 0  # sweeps (VI) or evaluate/improve cycles (PI) done by the last train()

        self.states = list(env.get_all_states())
        if not self.states:
            warnings.warn(
                message=f"{type(env).__name__} does not enumerate its states; "
                        f"{type(self).__name__} sweeps will be empty and training will do nothing.",
                category=RuntimeWarning,
            )

    @abstractmethod
    def train(self, iterations: int) -> tuple[dict[StateKey, float], dict[StateKey, Action]]:
        """Run up to `iterations` planning iterations and return (values, policy)."""

    @abstractmethod
    def get_values(self) -> dict[StateKey, float]:
        ...

    @abstractmethod
    def get_policy(self) -> dict[StateKey, Action]:
        ...


class OnlineAlgorithm(ABC):
    """
    Algorithm that learns from episodes generated with env.reset()/env.step().

    :param env: Environment.
        :type env: Environment
    :param gamma: Discount factor.
        :type gamma: float
    :param seed: Seed or shared Generator for action sampling.
        :type seed: int | None | np.random.Generator
    :param max_steps: Per-episode step cap.
        :type max_steps: int
    """

    def __init__(self, env: Environment, gamma: float, seed: SeedLike = None, max_steps: int = MAX_EPISODE_STEPS):
        self.env = env
        self.gamma = check_gamma(gamma)
        self.rng = make_rng(seed)

        self.max_steps = int(max_steps)
        if self.max_steps < 1:
            raise ValueError("max_steps must be >= 1")

        self.last_episode_length = 0

    def random_action(self, state: StateKey) -> Action:
        actions = valid_actions(self.env, state)
        return actions[sample_index(self.rng, len(actions))]

    @abstractmethod
    def train_episode(self) -> float:
        """Run one episode (learning along the way) and return its undiscounted total reward."""

    @abstractmethod
    def get_values(self) -> dict[StateKey, float]:
        ...

    @abstractmethod
    def get_policy(self) -> dict[StateKey, Action]:
        ...


class QControlAlgorithm(OnlineAlgorithm):
    """
    Shared plumbing for the control methods that learn Q(s,a) with an ε-greedy behaviour policy
    (Monte Carlo control, SARSA, Q-learning).

    - ε-greedy: with probability ε a uniformly random valid action, else the greedy one
    - greedy: first max over valid actions; states never written to fall back to their first valid action
    - V(s) = max_a Q(s,a) and pi(s) = greedy action, derived on demand for every visited state
    """

    def __init__(
        self,
        env: Environment,
        gamma: float,
        epsilon: float,
        seed: SeedLike = None,
        max_steps: int = MAX_EPISODE_STEPS,
    ):
        super().__init__(env=env, gamma=gamma, seed=seed, max_steps=max_steps)
        self.epsilon = check_epsilon(epsilon)
        self.q_table = QTable()

    def best_action(self, state: StateKey) -> Action:
        # unseen entries read as 0.0, so a state never written to gets its first valid action
        return self.q_table.best_action(state, valid_actions(self.env, state))

    def choose_action(self, state: StateKey) -> Action:
        """
        Select an action using ε-greedy.

        1. With probability epsilon: explore -> uniformly random valid action
        2. Else: exploit -> greedy action (first max)

        :param state: Current state key.
            :type state: StateKey

        :return: Action.
            :rtype: Action
        """
        # Exploration
        if self.rng.random() < self.epsilon:
            return self.random_action(state)

        # Exploitation
        return self.best_action(state)

    def max_q(self, state: StateKey) -> float:
        return self.q_table.max_value(state, valid_actions(self.env, state))

    def get_values(self) -> dict[StateKey, float]:
        return {s: self.max_q(s) for s in self.q_table.states()}

    def get_policy(self) -> dict[StateKey, Action]:
        return {s: self.best_action(s) for s in self.q_table.states()}

    def get_q_table(self) -> dict[StateKey, dict[Action, float]]:
        return self.q_table.to_dict()


def greedy_policy(env: Environment, V: ValueTable, states: Sequence[StateKey], gamma: float) -> dict[StateKey, Action]:
    """
    Greedy policy w.r.t. V for the given states (one-step lookahead, first max).

    :param env: Environment providing probe().
        :type env: Environment
    :param V: Value estimate.
        :type V: ValueTable
    :param states: States to compute an action for.
        :type states: Sequence[StateKey]
    :param gamma: Discount factor.
        :type gamma: float

    :return: Mapping state -> greedy action.
        :rtype: dict[StateKey, Action]
    """
    return {s: greedy_backup(env, V, s, gamma)[0] for s in states}
