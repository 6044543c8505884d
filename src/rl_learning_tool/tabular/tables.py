"""
Mapping-based tables shared by the tabular algorithms.

All tables are keyed by state keys (strings) and fail soft:
- a missing value reads as 0.0
- a missing policy entry reads as the default action (the environment's first action)

Nothing is inserted on read, so the set of stored keys is exactly the set of
states (and state-action pairs) an algorithm has written to.
"""

from __future__ import annotations

from typing import Iterator, Sequence

import numpy as np

from rl_learning_tool.envs.base import Action, StateKey


class ValueTable:
    """
    State-value table V(s) with a zero default.

    :param states: Optional states to pre-populate with 0.0.
        :type states: Sequence[StateKey] | None
    """

    def __init__(self, states: Sequence[StateKey] | None = None):
        self._values: dict[StateKey, float] = {s: 0.0 for s in (states or ())}

    def __getitem__(self, state: StateKey) -> float:
        return self._values.get(state, 0.0)

    def __setitem__(self, state: StateKey, value: float) -> None:
        self._values[state] = float(value)

    def __contains__(self, state: StateKey) -> bool:
        return state in self._values

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[StateKey]:
        return iter(self._values)

    def to_dict(self) -> dict[StateKey, float]:
        return dict(self._values)


class PolicyTable:
    """
    Deterministic policy table pi(s) with a default action for unseen states.

    :param default_action: Action returned for states never written to.
        :type default_action: Action
    """

    def __init__(self, default_action: Action):
        self.default_action = default_action
        self._actions: dict[StateKey, Action] = {}

    def __getitem__(self, state: StateKey) -> Action:
        return self._actions.get(state, self.default_action)

    def __setitem__(self, state: StateKey, action: Action) -> None:
        self._actions[state] = action

    def __contains__(self, state: StateKey) -> bool:
        return state in self._actions

    def __len__(self) -> int:
        return len(self._actions)

    def to_dict(self) -> dict[StateKey, Action]:
        return dict(self._actions)


class QTable:
    """
    Action-value table Q(s, a) stored as nested dicts, zero default.

    Greedy helpers use first-max tie-breaking: the earliest action in the given
    order wins ties. This keeps the greedy policy deterministic, which is what
    the derived policies (and their tests) rely on.
    """

    def __init__(self):
        self._q: dict[StateKey, dict[Action, float]] = {}

    def get(self, state: StateKey, action: Action) -> float:
        return self._q.get(state, {}).get(action, 0.0)

    def set(self, state: StateKey, action: Action, value: float) -> None:
        self._q.setdefault(state, {})[action] = float(value)

    def has_state(self, state: StateKey) -> bool:
        return state in self._q

    def states(self) -> list[StateKey]:
        return list(self._q)

    def row(self, state: StateKey) -> dict[Action, float]:
        return dict(self._q.get(state, {}))

    def max_value(self, state: StateKey, actions: Sequence[Action]) -> float:
        """
        max_a Q(state, a) over `actions` (unseen entries count as 0.0).

        :param state: State key.
            :type state: StateKey
        :param actions: Actions to maximise over (non-empty).
            :type actions: Sequence[Action]

        :return: Maximum action value.
            :rtype: float
        """
        return max(self.get(state, a) for a in actions)

    def best_action(self, state: StateKey, actions: Sequence[Action]) -> Action:
        """
        First action in `actions` with the maximum Q value.

        :param state: State key.
            :type state: StateKey
        :param actions: Candidate actions in tie-break order (non-empty).
            :type actions: Sequence[Action]

        :return: Greedy action.
            :rtype: Action
        """
        best = actions[0]
        best_value = self.get(state, best)
        for a in actions[1:]:
            value = self.get(state, a)
            if value > best_value:  # strict > keeps the first max
                best, best_value = a, value
        return best

    def to_dict(self) -> dict[StateKey, dict[Action, float]]:
        return {s: dict(row) for s, row in self._q.items()}

    def __len__(self) -> int:
        return len(self._q)


class ReturnsBuffer:
    """
    Per (state, action) record of the Monte Carlo returns.

    By default only the visit count and the running mean are stored:

        N <- N + 1
        mean <- mean + (G - mean) / N

    which is the same sample average as storing every return, in O(1) memory.
    With keep_history=True every return is also kept (one entry per visit, never evicted),
    which is handy to inspect the variance of the returns.

    :param keep_history: Whether to store every return.
        :type keep_history: bool
    """

    def __init__(self, keep_history: bool = False):
        self.keep_history = bool(keep_history)
        self._count: dict[tuple[StateKey, Action], int] = {}
        self._mean: dict[tuple[StateKey, Action], float] = {}
        self._history: dict[tuple[StateKey, Action], list[float]] = {}

    def add(self, state: StateKey, action: Action, G: float) -> float:
        """
        Record one return and give back the updated average.

        :param state: State key.
            :type state: StateKey
        :param action: Action taken.
            :type action: Action
        :param G: Discounted return observed from (state, action).
            :type G: float

        :return: Average of all returns recorded for (state, action).
            :rtype: float
        """
        key = (state, action)
        n = self._count.get(key, 0) + 1
        self._count[key] = n

        if self.keep_history:
            history = self._history.setdefault(key, [])
            history.append(float(G))
            mean = float(np.mean(history))
        else:
            old = self._mean.get(key, 0.0)
            mean = old + (float(G) - old) / n

        self._mean[key] = mean
        return mean

    def count(self, state: StateKey, action: Action) -> int:
        return self._count.get((state, action), 0)

    def mean(self, state: StateKey, action: Action) -> float:
        return self._mean.get((state, action), 0.0)

    def history(self, state: StateKey, action: Action) -> list[float]:
        if not self.keep_history:
            raise RuntimeError("Returns history is only stored with keep_history=True.")
        return list(self._history.get((state, action), []))
