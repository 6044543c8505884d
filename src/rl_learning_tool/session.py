"""
Training session: the explicit replacement for a process-wide "current training state".

A TrainingSession owns one environment and one algorithm built from a TrainingConfig,
plus everything a front-end wants to show: reward history, counters, the latest values
and policy. Switching the environment or the algorithm rebuilds both, so no learned
table ever outlives the algorithm that owns it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from rl_learning_tool.envs import (
    Action,
    Environment,
    GridWorld,
    MountainCar,
    StateKey,
    ToyTextEnvironment,
    TransitionResult,
    valid_actions,
)
from rl_learning_tool.tabular import (
    MAX_EPISODE_STEPS,
    SARSA,
    MonteCarloControl,
    OnlineAlgorithm,
    PlanningAlgorithm,
    PolicyIteration,
    QLearning,
    TDLearning,
    ValueIteration,
)


@dataclass(frozen=True)
class TrainingConfig:
    """
    Hyper-parameters for a training session.

    :param gamma: Discount factor.
        :type gamma: float
    :param alpha: Learning rate (TD, SARSA, Q-learning).
        :type alpha: float
    :param epsilon: Exploration probability (Monte Carlo, SARSA, Q-learning).
        :type epsilon: float
    :param episodes: Episodes per train() call for the online algorithms.
        :type episodes: int
    :param max_steps: Per-episode step cap.
        :type max_steps: int
    :param planning_iterations: Iteration budget per train() call for the planning algorithms.
        :type planning_iterations: int
    :param snapshot_every: Publish a snapshot every this many episodes.
        :type snapshot_every: int
    :param seed: Seed for the algorithm's random source.
        :type seed: int | None
    """

    gamma: float = 0.9
    alpha: float = 0.1
    epsilon: float = 0.1
    episodes: int = 100
    max_steps: int = MAX_EPISODE_STEPS
    planning_iterations: int = 50
    snapshot_every: int = 5
    seed: int | None = None

    def __post_init__(self):
        if not 0.0 <= self.gamma <= 1.0:
            raise ValueError(f"gamma must be in [0, 1], got {self.gamma}")
        if not 0.0 < self.alpha <= 1.0:
            raise ValueError(f"alpha must be in (0, 1], got {self.alpha}")
        if not 0.0 <= self.epsilon <= 1.0:
            raise ValueError(f"epsilon must be in [0, 1], got {self.epsilon}")
        for name in ("episodes", "max_steps", "planning_iterations", "snapshot_every"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be >= 1, got {getattr(self, name)}")


# the config step cap also bounds environments that carry their own episode limit
ENVIRONMENTS: dict[str, Callable[[TrainingConfig], Environment]] = {
    "gridworld": lambda cfg: GridWorld(),
    "mountaincar": lambda cfg: MountainCar(max_steps=cfg.max_steps),
    "cliffwalking": lambda cfg: ToyTextEnvironment(seed=cfg.seed),
}

ALGORITHMS: dict[str, Callable[[Environment, TrainingConfig], PlanningAlgorithm | OnlineAlgorithm]] = {
    "value-iteration": lambda env, cfg: ValueIteration(env, gamma=cfg.gamma),
    "policy-iteration": lambda env, cfg: PolicyIteration(env, gamma=cfg.gamma, seed=cfg.seed),
    "monte-carlo": lambda env, cfg: MonteCarloControl(
        env, gamma=cfg.gamma, epsilon=cfg.epsilon, seed=cfg.seed, max_steps=cfg.max_steps
    ),
    "td": lambda env, cfg: TDLearning(env, alpha=cfg.alpha, gamma=cfg.gamma, seed=cfg.seed, max_steps=cfg.max_steps),
    "sarsa": lambda env, cfg: SARSA(
        env, alpha=cfg.alpha, gamma=cfg.gamma, epsilon=cfg.epsilon, seed=cfg.seed, max_steps=cfg.max_steps
    ),
    "q-learning": lambda env, cfg: QLearning(
        env, alpha=cfg.alpha, gamma=cfg.gamma, epsilon=cfg.epsilon, seed=cfg.seed, max_steps=cfg.max_steps
    ),
}

ONLINE_ALGORITHMS = ("monte-carlo", "td", "sarsa", "q-learning")

# planners need an enumerable state space, Mountain Car has none
COMPATIBLE_ALGORITHMS: dict[str, tuple[str, ...]] = {
    "gridworld": ("value-iteration", "policy-iteration", *ONLINE_ALGORITHMS),
    "mountaincar": ONLINE_ALGORITHMS,
    "cliffwalking": ("value-iteration", "policy-iteration", *ONLINE_ALGORITHMS),
}


def is_compatible(env_name: str, algorithm_name: str) -> bool:
    return algorithm_name in COMPATIBLE_ALGORITHMS.get(env_name, ())


def make_environment(name: str, config: TrainingConfig | None = None) -> Environment:
    """
    Build an environment by registry name.

    :param name: One of ENVIRONMENTS.
        :type name: str
    :param config: Hyper-parameters (max_steps, seed). Defaults to TrainingConfig().
        :type config: TrainingConfig | None

    :return: Fresh environment.
        :rtype: Environment
    """
    if name not in ENVIRONMENTS:
        raise ValueError(f"Unknown environment {name!r}. Choose one of {sorted(ENVIRONMENTS)}")
    return ENVIRONMENTS[name](config if config is not None else TrainingConfig())


def make_algorithm(name: str, env: Environment, config: TrainingConfig) -> PlanningAlgorithm | OnlineAlgorithm:
    """
    Build an algorithm by registry name, with fresh tables.

    :param name: One of ALGORITHMS.
        :type name: str
    :param env: Environment the algorithm trains on.
        :type env: Environment
    :param config: Hyper-parameters.
        :type config: TrainingConfig

    :return: Fresh algorithm instance.
        :rtype: PlanningAlgorithm | OnlineAlgorithm
    """
    if name not in ALGORITHMS:
        raise ValueError(f"Unknown algorithm {name!r}. Choose one of {sorted(ALGORITHMS)}")
    return ALGORITHMS[name](env, config)


@dataclass(frozen=True)
class Snapshot:
    """
    What a front-end needs to redraw after some training: tables + reward curve.
    """
    episode: int
    values: dict[StateKey, float]
    policy: dict[StateKey, Action]
    reward_history: tuple[float, ...]


@dataclass
class RolloutResult:
    total_reward: float = 0.0
    discounted_return: float = 0.0
    steps: int = 0
    done: bool = False
    states: list[StateKey] = field(default_factory=list)


def rollout_policy(
    env: Environment,
    policy: dict[StateKey, Action],
    gamma: float = 1.0,
    max_steps: int = 100,
) -> RolloutResult:
    """
    Replay a deterministic policy from env.reset() without learning.

    Stops on done, after `max_steps` steps, or as soon as the policy has no action
    for the current state.

    :param env: Environment (its live state is reset and mutated).
        :type env: Environment
    :param policy: Mapping state -> action.
        :type policy: dict[StateKey, Action]
    :param gamma: Discount used for discounted_return.
        :type gamma: float
    :param max_steps: Step cap.
        :type max_steps: int

    :return: Rollout summary, including the visited states (start state first).
        :rtype: RolloutResult
    """
    result = RolloutResult()
    state = env.reset()
    result.states.append(state)
    discount = 1.0

    for _ in range(max_steps):
        action = policy.get(state)
        if action is None:
            break

        tr = env.step(action)
        result.steps += 1
        result.total_reward += tr.reward
        result.discounted_return += discount * tr.reward
        discount *= gamma

        state = tr.next_state
        result.states.append(state)
        if tr.done:
            result.done = True
            break

    return result


class TrainingSession:
    """
    One environment + one algorithm + the bookkeeping around training them.

    :param env_name: Environment registry name.
        :type env_name: str
    :param algorithm_name: Algorithm registry name.
        :type algorithm_name: str
    :param config: Hyper-parameters.
        :type config: TrainingConfig | None
    """

    def __init__(self, env_name: str = "gridworld", algorithm_name: str = "value-iteration", config: TrainingConfig | None = None):
        self.config = config if config is not None else TrainingConfig()
        self.env_name = env_name
        self.algorithm_name = algorithm_name
        self.reset()

    def reset(self) -> None:
        """
        Rebuild environment and algorithm from scratch and clear every counter.
        """
        if not is_compatible(self.env_name, self.algorithm_name):
            raise ValueError(
                f"{self.algorithm_name!r} cannot train on {self.env_name!r}. "
                f"Compatible: {list(COMPATIBLE_ALGORITHMS.get(self.env_name, ()))}"
            )

        self.env = make_environment(self.env_name, self.config)
        self.algorithm = make_algorithm(self.algorithm_name, self.env, self.config)

        self.episode_count = 0
        self.step_count = 0
        self.total_reward = 0.0
        self.reward_history: list[float] = []
        self.values: dict[StateKey, float] = {}
        self.policy: dict[StateKey, Action] = {}

    def switch(self, env_name: str | None = None, algorithm_name: str | None = None, config: TrainingConfig | None = None) -> None:
        """
        Change environment, algorithm or config. Tables are always rebuilt.
        """
        if env_name is not None:
            self.env_name = env_name
        if algorithm_name is not None:
            self.algorithm_name = algorithm_name
        if config is not None:
            self.config = config
        self.reset()

    @property
    def is_planning(self) -> bool:
        return isinstance(self.algorithm, PlanningAlgorithm)

    def snapshot(self) -> Snapshot:
        return Snapshot(
            episode=self.episode_count,
            values=dict(self.values),
            policy=dict(self.policy),
            reward_history=tuple(self.reward_history),
        )

    def train(self, on_snapshot: Callable[[Snapshot], None] | None = None) -> Snapshot:
        """
        Run one training request.

        Planning algorithms run one train(planning_iterations) call. episode_count then holds
        the iterations actually run (fewer when value iteration converges early).

        Online algorithms run `episodes` episodes, record each episode's reward, and publish
        a snapshot every `snapshot_every` episodes (and after the last one) through `on_snapshot`.

        :param on_snapshot: Optional callback receiving intermediate snapshots.
            :type on_snapshot: Callable[[Snapshot], None] | None

        :return: Final snapshot.
            :rtype: Snapshot
        """
        self.reward_history = []
        self.episode_count = 0
        self.total_reward = 0.0

        if isinstance(self.algorithm, PlanningAlgorithm):
            self.values, self.policy = self.algorithm.train(self.config.planning_iterations)
            self.episode_count = self.algorithm.iterations_run
            snap = self.snapshot()
            if on_snapshot is not None:
                on_snapshot(snap)
            return snap

        episodes = self.config.episodes
        for i in range(episodes):
            reward = self.algorithm.train_episode()
            self.reward_history.append(reward)
            self.episode_count = i + 1
            self.total_reward = reward

            if i % self.config.snapshot_every == 0 or i == episodes - 1:
                self.values = self.algorithm.get_values()
                self.policy = self.algorithm.get_policy()
                if on_snapshot is not None:
                    on_snapshot(self.snapshot())

        return self.snapshot()

    def run_policy(self, max_steps: int = 100) -> RolloutResult:
        """
        Replay the current greedy policy from the start state.

        :param max_steps: Step cap for the replay.
            :type max_steps: int

        :return: Rollout summary.
            :rtype: RolloutResult
        """
        if not self.policy:
            raise RuntimeError("No policy yet: call train() before run_policy().")

        result = rollout_policy(self.env, self.policy, gamma=self.config.gamma, max_steps=max_steps)
        self.step_count = result.steps
        self.total_reward = result.total_reward
        return result

    def step_agent(self) -> TransitionResult:
        """
        Take a single step from the live state with the current policy
        (the first valid action where the policy has no entry).

        :return: Transition result.
            :rtype: TransitionResult
        """
        state = self.env.current_state
        action = self.policy[state] if state in self.policy else valid_actions(self.env, state)[0]

        tr = self.env.step(action)
        self.step_count += 1
        self.total_reward += tr.reward
        return tr
