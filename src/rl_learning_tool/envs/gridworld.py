from __future__ import annotations

from typing import Iterable

from rl_learning_tool.envs.base import Action, Environment, StateKey, TransitionResult


class GridWorld(Environment):
    """
    A small deterministic Grid World MDP.

    The agent starts at `start` and must reach `goal`, avoiding obstacle cells.
    It is small enough to be solved by planning (value/policy iteration) and
    learned from experience (Monte Carlo, TD, SARSA, Q-learning).

    States are "row,col" strings, so they can be used directly as table keys
    and printed without any conversion.

    Actions:
    - "up", "down", "left", "right"

    Behaviour:
    - stepping off the grid keeps you in the same cell (clamped at the edge)
    - stepping into an obstacle keeps you in the same cell (no-op, not an error)
    - every step gives `step_reward` (default -0.1)
    - reaching the goal gives `goal_reward` (default +10) and done=True

    :param rows: Number of rows.
        :type rows: int
    :param cols: Number of columns.
        :type cols: int
    :param start: Start cell as (row, col).
        :type start: tuple[int, int]
    :param goal: Goal cell as (row, col).
        :type goal: tuple[int, int]
    :param obstacles: Blocked cells as (row, col) positions.
        :type obstacles: Iterable[tuple[int, int]]
    :param step_reward: Reward for every non-goal transition.
        :type step_reward: float
    :param goal_reward: Reward for the transition that reaches the goal.
        :type goal_reward: float
    """

    actions = ("up", "down", "left", "right")

    def __init__(
        self,
        rows: int = 5,
        cols: int = 5,
        start: tuple[int, int] = (0, 0),
        goal: tuple[int, int] = (4, 4),
        obstacles: Iterable[tuple[int, int]] = ((1, 1), (2, 2), (3, 1)),
        step_reward: float = -0.1,
        goal_reward: float = 10.0,
    ):
        self.rows = int(rows)
        self.cols = int(cols)
        if self.rows < 1 or self.cols < 1:
            raise ValueError(f"Grid must be at least 1x1, got {self.rows}x{self.cols}")

        self.start = (int(start[0]), int(start[1]))
        self.goal = (int(goal[0]), int(goal[1]))
        self.obstacles = frozenset((int(r), int(c)) for (r, c) in obstacles)

        for name, cell in (("start", self.start), ("goal", self.goal), *(("obstacle", o) for o in self.obstacles)):
            if not self.in_bounds(*cell):
                raise ValueError(f"{name} cell {cell} is outside the {self.rows}x{self.cols} grid")
        if self.start in self.obstacles or self.goal in self.obstacles:
            raise ValueError("start and goal cells cannot be obstacles")

        self.step_reward = float(step_reward)
        self.goal_reward = float(goal_reward)

        self.position = self.start

    # keys

    @staticmethod
    def state_key(row: int, col: int) -> StateKey:
        """
        Convert a grid position (row, col) to its state key.

        :param row: Row index.
            :type row: int
        :param col: Column index.
            :type col: int

        :return: State key "row,col".
            :rtype: StateKey
        """
        return f"{int(row)},{int(col)}"

    @staticmethod
    def parse_key(state: StateKey) -> tuple[int, int]:
        """
        Convert a state key back to a grid position.

        :param state: State key "row,col".
            :type state: StateKey

        :return: (row, col) position.
            :rtype: tuple[int, int]
        """
        row, col = state.split(",")
        return int(row), int(col)

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self.rows and 0 <= col < self.cols

    def is_obstacle(self, row: int, col: int) -> bool:
        return (row, col) in self.obstacles

    def is_goal(self, row: int, col: int) -> bool:
        return (row, col) == self.goal

    # dynamics

    def _move(self, row: int, col: int, action: Action) -> TransitionResult:
        """
        Pure transition function shared by step() and probe().

        :param row: Row of the state the action is applied to.
            :type row: int
        :param col: Column of the state the action is applied to.
            :type col: int
        :param action: One of "up", "down", "left", "right".
            :type action: Action

        :return: Transition result.
            :rtype: TransitionResult
        """
        if action == "up":
            row2, col2 = max(0, row - 1), col
        elif action == "down":
            row2, col2 = min(self.rows - 1, row + 1), col
        elif action == "left":
            row2, col2 = row, max(0, col - 1)
        else:  # "right" (validated by the caller)
            row2, col2 = row, min(self.cols - 1, col + 1)

        if self.is_obstacle(row2, col2):
            # bumping into an obstacle is a no-op
            row2, col2 = row, col

        done = self.is_goal(row2, col2)
        reward = self.goal_reward if done else self.step_reward
        return TransitionResult(next_state=self.state_key(row2, col2), reward=float(reward), done=bool(done))

    @property
    def current_state(self) -> StateKey:
        return self.state_key(*self.position)

    def reset(self) -> StateKey:
        self.position = self.start
        return self.current_state

    def step(self, action: Action) -> TransitionResult:
        self.check_action(self.current_state, action)

        tr = self._move(*self.position, action)
        self.position = self.parse_key(tr.next_state)
        return tr

    def probe(self, state: StateKey, action: Action) -> TransitionResult:
        self.check_action(state, action)
        return self._move(*self.parse_key(state), action)

    def get_all_states(self) -> list[StateKey]:
        # row-major order, exactly rows * cols keys (obstacles and goal included)
        return [self.state_key(r, c) for r in range(self.rows) for c in range(self.cols)]
