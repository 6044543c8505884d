from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Hashable, Sequence

StateKey = str
Action = Hashable


class ContractViolationError(ValueError):
    """
    Raised when a caller (or an environment) breaks the environment contract.

    Examples:
    - stepping or probing with an action that is not valid in that state
    - an environment reporting an empty set of valid actions
    """


@dataclass(frozen=True)  # frozen=True makes the dataclass immutable -> you cannot reassign its attributes after creation
class TransitionResult:
    """
    Result of one (real or hypothetical) transition.

    :param next_state: Key of the state reached.
        :type next_state: StateKey
    :param reward: Reward received for the transition.
        :type reward: float
    :param done: Whether the reached state is terminal (no bootstrapping past it).
        :type done: bool
    """
    next_state: StateKey
    reward: float
    done: bool


class Environment(ABC):
    """
    Interface shared by every MDP in this package.

    The algorithms only talk to an environment through these methods:

    - reset() / step(action): the live trajectory (mutates the current state)
    - probe(state, action): "what would happen if...", without touching the live trajectory
    - get_all_states(): full enumeration, or an empty list if the state space is not enumerable
    - get_valid_actions(state): non-empty subset of `actions` legal from `state`

    Planning algorithms (value/policy iteration) need get_all_states() and probe().
    Online algorithms (Monte Carlo, TD, SARSA, Q-learning) need reset() and step().
    """

    #: Full action alphabet. The first entry is the default action for unseen states.
    actions: tuple[Action, ...] = ()

    @property
    @abstractmethod
    def current_state(self) -> StateKey:
        """Key of the live state."""

    @abstractmethod
    def reset(self) -> StateKey:
        """Return to the start configuration and clear per-episode counters."""

    @abstractmethod
    def step(self, action: Action) -> TransitionResult:
        """Apply `action` to the live state."""

    @abstractmethod
    def probe(self, state: StateKey, action: Action) -> TransitionResult:
        """Compute the transition from `state` without mutating the live state."""

    def get_all_states(self) -> list[StateKey]:
        """
        Enumerate the state space.

        Environments whose state space is not finitely enumerable keep this default
        and return an empty list.

        :return: List of state keys (possibly empty).
            :rtype: list[StateKey]
        """
        return []

    def get_valid_actions(self, state: StateKey) -> Sequence[Action]:
        return self.actions

    def first_action(self) -> Action:
        if not self.actions:
            raise ContractViolationError(f"{type(self).__name__} declares no actions.")
        return self.actions[0]

    def check_action(self, state: StateKey, action: Action) -> None:
        """
        Raise ContractViolationError if `action` is not valid in `state`.

        :param state: State key.
            :type state: StateKey
        :param action: Candidate action.
            :type action: Action

        :return: None
            :rtype: None
        """
        if action not in valid_actions(self, state):
            raise ContractViolationError(
                f"Action {action!r} is not valid in state {state!r} for {type(self).__name__}."
            )


def valid_actions(env: Environment, state: StateKey) -> Sequence[Action]:
    """
    Fetch the valid actions for `state`, refusing an empty answer.

    Every algorithm goes through this helper, so a broken environment fails loudly
    at the boundary instead of producing a max() over nothing.

    :param env: Environment instance.
        :type env: Environment
    :param state: State key.
        :type state: StateKey

    :return: Non-empty sequence of actions.
        :rtype: Sequence[Action]
    """
    actions = env.get_valid_actions(state)
    if len(actions) == 0:
        raise ContractViolationError(f"{type(env).__name__} returned no valid actions for state {state!r}.")
    return actions
