from __future__ import annotations

from typing import Iterable

import gymnasium as gym

from rl_learning_tool.envs.base import Action, ContractViolationError, Environment, StateKey, TransitionResult

CLIFFWALKING_IDS = ("CliffWalking-v1", "CliffWalking-v0")


def make_first_available(env_ids: Iterable[str], **kwargs) -> gym.Env:
    """
    Try environment IDs in order and return the first one that works.

    This is useful because toy-text env IDs can differ slightly across versions.

    :param env_ids: Candidate Gymnasium environment IDs.
        :type env_ids: Iterable[str]
    :param kwargs: Extra keyword arguments forwarded to gym.make.
        :type kwargs: Any

    :return: A created Gymnasium environment.
        :rtype: gym.Env
    """
    env_ids = list(env_ids)
    last_err: Exception | None = None
    for env_id in env_ids:
        try:
            return gym.make(env_id, **kwargs)
        except Exception as e:
            last_err = e
    raise RuntimeError(f"None of the env IDs worked: {env_ids}") from last_err


class ToyTextEnvironment(Environment):
    """
    Adapter that exposes a deterministic Gymnasium toy-text environment as an Environment.

    Toy-text environments (CliffWalking, FrozenLake with is_slippery=False, ...) ship
    their full model in `env.unwrapped.P`:

        P[s][a] -> list of (prob, next_state, reward, done)

    probe() reads that model directly, so planning algorithms can sweep the state space
    without ever touching the live Gymnasium episode. step() drives the live env.

    State keys are the decimal state index ("0", "1", ...), actions are the integer
    action indices of the wrapped env.

    :param env: A Gymnasium environment, or None to build CliffWalking.
        :type env: gym.Env | None
    :param seed: Seed passed to the first reset of the wrapped env.
        :type seed: int | None
    """

    def __init__(self, env: gym.Env | None = None, seed: int | None = None):
        self.env = env if env is not None else make_first_available(CLIFFWALKING_IDS)
        unwrapped = getattr(self.env, "unwrapped", self.env)  # Gymnasium environments are often wrapped

        self.P = getattr(unwrapped, "P", None)
        if self.P is None:
            raise ValueError(f"{type(unwrapped).__name__} does not expose a transition model P")

        self.n_states = int(self.env.observation_space.n)
        self.actions = tuple(range(int(self.env.action_space.n)))

        self._seed = seed
        self._state = self._reset_env()

    def _reset_env(self) -> int:
        obs, _ = self.env.reset(seed=self._seed)
        self._seed = None  # only seed the first reset, later resets continue the same RNG stream
        return int(obs)

    @property
    def current_state(self) -> StateKey:
        return str(self._state)

    def reset(self) -> StateKey:
        self._state = self._reset_env()
        return self.current_state

    def step(self, action: Action) -> TransitionResult:
        self.check_action(self.current_state, action)

        obs, reward, terminated, truncated, _ = self.env.step(action)
        self._state = int(obs)
        return TransitionResult(
            next_state=self.current_state,
            reward=float(reward),
            done=bool(terminated or truncated),
        )

    def probe(self, state: StateKey, action: Action) -> TransitionResult:
        self.check_action(state, action)

        outcomes = self.P[int(state)][action]
        if len(outcomes) != 1:
            raise ContractViolationError(
                f"probe() needs deterministic transitions, state {state} action {action} has {len(outcomes)} outcomes"
            )

        _, next_state, reward, done = outcomes[0]
        return TransitionResult(next_state=str(int(next_state)), reward=float(reward), done=bool(done))

    def get_all_states(self) -> list[StateKey]:
        return [str(s) for s in range(self.n_states)]

    def close(self) -> None:
        self.env.close()
