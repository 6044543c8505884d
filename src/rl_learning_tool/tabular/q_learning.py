from __future__ import annotations

from rl_learning_tool.common.seeding import SeedLike
from rl_learning_tool.envs.base import Action, Environment, StateKey
from rl_learning_tool.tabular.base import MAX_EPISODE_STEPS, QControlAlgorithm, check_alpha


class QLearning(QControlAlgorithm):
    """
    Tabular Q-learning with ε-greedy exploration.

    Off-policy TD control: you behave ε-greedily to explore, but the update target
    assumes greedy behaviour at the next state:

        Q(s,a) <- Q(s,a) + alpha * [r + gamma * max_a' Q(s',a') - Q(s,a)]

    So:
        - behaviour policy mu: ε-greedy (used to collect data)
        - target policy pi: greedy (used inside the update)

    The max is taken over the valid actions of s' (unseen entries count as 0), and is 0
    when done=True or when s' has never been written to.

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

    def update(self, state: StateKey, action: Action, reward: float, next_state: StateKey, done: bool) -> None:
        """
        Apply the Q-learning update.

        :param state: Current state.
            :type state: StateKey
        :param action: Action taken.
            :type action: Action
        :param reward: Observed reward.
            :type reward: float
        :param next_state: Next state.
            :type next_state: StateKey
        :param done: Whether the episode ended after this transition.
            :type done: bool

        :return: None
            :rtype: None
        """
        target = reward
        if not done and self.q_table.has_state(next_state):
            target += self.gamma * self.max_q(next_state)  # greedy target, whatever action comes next

        q = self.q_table.get(state, action)
        self.q_table.set(state, action, q + self.alpha * (target - q))

    def train_episode(self) -> float:
        state = self.env.reset()
        total_reward = 0.0
        steps = 0

        for _ in range(self.max_steps):
            steps += 1
            action = self.choose_action(state)
            tr = self.env.step(action)

            self.update(state, action, tr.reward, tr.next_state, tr.done)

            total_reward += tr.reward
            state = tr.next_state
            if tr.done:
                break

        self.last_episode_length = steps
        return total_reward
