from __future__ import annotations

from rl_learning_tool.common.seeding import SeedLike
from rl_learning_tool.envs.base import Action, Environment, StateKey
from rl_learning_tool.tabular.base import MAX_EPISODE_STEPS, QControlAlgorithm, check_alpha


class SARSA(QControlAlgorithm):
    """
    Tabular SARSA with ε-greedy exploration.

    SARSA (on-policy TD control) updates using the next action actually chosen by the
    same behaviour policy:

        Q(s,a) <- Q(s,a) + alpha * [r + gamma * Q(s',a') - Q(s,a)]

    The next action a' is picked *before* the update and is then the action really taken
    on the next step. That is what makes it on-policy.
    Terminal transitions do not bootstrap (Q(s',a') counts as 0 when done=True).

    :param env: Environment.
        :type env: Environment
    :param alpha: Learning rate.
        :type alpha: float
    :param gamma: Discount factor.
        :type gamma: float
    :param epsilon: Exploration probability for ε-greedy.
        :type epsilon: float
    :param seed: Seed or shared Generator for action selection.
        :type seed: int | None | np.random.Generator
    :param max_steps: Per-episode step cap.
        :type max_steps: int
    """

    def __init__(
        self,
        env: Environment,
        alpha: float = 0.1,
        gamma: float = 0.9,
        epsilon: float = 0.1,
        seed: SeedLike = None,
        max_steps: int = MAX_EPISODE_STEPS,
    ):
        super().__init__(env=env, gamma=gamma, epsilon=epsilon, seed=seed, max_steps=max_steps)
        self.alpha = check_alpha(alpha)

    def update(
        self,
        state: StateKey,
        action: Action,
        reward: float,
        next_state: StateKey,
        next_action: Action,
        done: bool,
    ) -> None:
        """
        Apply the SARSA update.

        Update:
            Q(s,a) <- Q(s,a) + alpha * [r + gamma * Q(s',a') - Q(s,a)]

        :param state: Current state.
            :type state: StateKey
        :param action: Action taken.
            :type action: Action
        :param reward: Observed reward.
            :type reward: float
        :param next_state: Next state.
            :type next_state: StateKey
        :param next_action: Next action chosen by the same behaviour policy.
            :type next_action: Action
        :param done: Whether the episode ended after this transition.
            :type done: bool

        :return: None
            :rtype: None
        """
        target = reward
        if not done:
            target += self.gamma * self.q_table.get(next_state, next_action)

        q = self.q_table.get(state, action)
        self.q_table.set(state, action, q + self.alpha * (target - q))

    def train_episode(self) -> float:
        state = self.env.reset()
        action = self.choose_action(state)

        total_reward = 0.0
        steps = 0

        for _ in range(self.max_steps):
            steps += 1
            tr = self.env.step(action)
            next_action = self.choose_action(tr.next_state)  # pre-selected: this is the action taken next

            self.update(state, action, tr.reward, tr.next_state, next_action, tr.done)

            total_reward += tr.reward
            state, action = tr.next_state, next_action
            if tr.done:
                break

        self.last_episode_length = steps
        return total_reward
