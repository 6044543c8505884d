from __future__ import annotations

import math

from rl_learning_tool.envs.base import Action, Environment, StateKey, TransitionResult

MIN_POSITION = -1.2
MAX_POSITION = 0.6
MAX_SPEED = 0.07
GOAL_POSITION = 0.5

FORCE = 0.001
GRAVITY = 0.0025

# bins per unit of position / velocity in the state key
POSITION_SCALE = 10
VELOCITY_SCALE = 100


class MountainCar(Environment):
    """
    Mountain Car with a discretized state key.

    An under-powered car sits in a valley and must rock back and forth to reach the
    flag at position 0.5. The dynamics are continuous (position, velocity), but the
    tabular learners only ever see a binned key "posBin,velBin":

        posBin = floor((position + 1.2) * 10)
        velBin = floor((velocity + 0.07) * 100)

    Physics (one step):
        velocity += 0.001 * force - 0.0025 * cos(3 * position)   (force in {-1, 0, +1})
        velocity  = clip(velocity, -0.07, 0.07)
        position += velocity
        position  = clip(position, -1.2, 0.6)
        hitting the left wall while moving left zeroes the velocity

    Reward is -1 per step until the goal is reached (then 0).
    The episode ends at the goal or after `max_steps` steps.

    The state space is not pre-enumerated, so get_all_states() returns an empty list:
    this environment is meant for the online learners only.

    :param max_steps: Step cap per episode.
        :type max_steps: int
    """

    actions = ("left", "none", "right")

    def __init__(self, max_steps: int = 200):
        self.max_steps = int(max_steps)
        if self.max_steps < 1:
            raise ValueError("max_steps must be >= 1")

        self.position = -0.5
        self.velocity = 0.0
        self.current_step = 0

    @staticmethod
    def state_key(position: float, velocity: float) -> StateKey:
        """
        Bin a continuous (position, velocity) pair into a state key.

        :param position: Car position.
            :type position: float
        :param velocity: Car velocity.
            :type velocity: float

        :return: State key "posBin,velBin".
            :rtype: StateKey
        """
        # multiply rather than divide by the bin width: (-0.5 + 1.2) / 0.1 rounds down to 6.999...
        pos_bin = math.floor((position - MIN_POSITION) * POSITION_SCALE)
        vel_bin = math.floor((velocity + MAX_SPEED) * VELOCITY_SCALE)
        return f"{pos_bin},{vel_bin}"

    @staticmethod
    def bin_center(state: StateKey) -> tuple[float, float]:
        """
        Representative continuous state of a key (the centre of its bin).

        :param state: State key "posBin,velBin".
            :type state: StateKey

        :return: (position, velocity).
            :rtype: tuple[float, float]
        """
        pos_bin, vel_bin = (int(x) for x in state.split(","))
        position = MIN_POSITION + (pos_bin + 0.5) / POSITION_SCALE
        velocity = -MAX_SPEED + (vel_bin + 0.5) / VELOCITY_SCALE
        return position, velocity

    @staticmethod
    def _physics(position: float, velocity: float, action: Action) -> tuple[float, float]:
        if action == "left":
            force = -1.0
        elif action == "right":
            force = 1.0
        else:
            force = 0.0

        velocity += FORCE * force - GRAVITY * math.cos(3 * position)
        velocity = max(-MAX_SPEED, min(MAX_SPEED, velocity))
        position += velocity
        position = max(MIN_POSITION, min(MAX_POSITION, position))

        if position == MIN_POSITION and velocity < 0:
            velocity = 0.0

        return position, velocity

    @property
    def current_state(self) -> StateKey:
        return self.state_key(self.position, self.velocity)

    def reset(self) -> StateKey:
        self.position = -0.5
        self.velocity = 0.0
        self.current_step = 0
        return self.current_state

    def step(self, action: Action) -> TransitionResult:
        self.check_action(self.current_state, action)

        self.position, self.velocity = self._physics(self.position, self.velocity, action)
        self.current_step += 1

        reached = self.position >= GOAL_POSITION
        done = reached or self.current_step >= self.max_steps
        reward = 0.0 if reached else -1.0
        return TransitionResult(next_state=self.current_state, reward=reward, done=bool(done))

    def probe(self, state: StateKey, action: Action) -> TransitionResult:
        """
        Hypothetical step from the centre of the bin `state`.

        The live car is untouched. A hypothetical state carries no elapsed time,
        so only the goal (not the step cap) can make it terminal.

        :param state: State key "posBin,velBin".
            :type state: StateKey
        :param action: Action to evaluate.
            :type action: Action

        :return: Transition result.
            :rtype: TransitionResult
        """
        self.check_action(state, action)

        position, velocity = self._physics(*self.bin_center(state), action)
        reached = position >= GOAL_POSITION
        return TransitionResult(
            next_state=self.state_key(position, velocity),
            reward=0.0 if reached else -1.0,
            done=bool(reached),
        )
