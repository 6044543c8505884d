from __future__ import annotations

from rl_learning_tool.common.seeding import SeedLike
from rl_learning_tool.envs.base import Environment
from rl_learning_tool.tabular.base import MAX_EPISODE_STEPS, EpisodeStep, QControlAlgorithm
from rl_learning_tool.tabular.tables import ReturnsBuffer


class MonteCarloControl(QControlAlgorithm):
    """
    Every-visit Monte Carlo control with an ε-greedy behaviour policy.

    Nothing is learned during the episode. After it ends, the trajectory is walked
    backwards accumulating the discounted return

        G_t = R_{t+1} + gamma * G_{t+1}

    and every visited (s, a) gets Q(s,a) = average of all returns ever recorded for it.

    The returns are kept as (count, running mean) by default. Pass keep_history=True to
    also keep every return (memory then grows with the number of visits).

    :param env: Environment.
        :type env: Environment
    :param gamma: Discount factor.
        :type gamma: float
    :param epsilon: Exploration probability for ε-greedy.
        :type epsilon: float
    :param seed: Seed or shared Generator for action selection.
        :type seed: int | None | np.random.Generator
    :param max_steps: Per-episode step cap.
        :type max_steps: int
    :param keep_history: Store every return per (s, a).
        :type keep_history: bool
    """

    def __init__(
        self,
        env: Environment,
        gamma: float = 0.9,
        epsilon: float = 0.1,
        seed: SeedLike = None,
        max_steps: int = MAX_EPISODE_STEPS,
        keep_history: bool = False,
    ):
        super().__init__(env=env, gamma=gamma, epsilon=epsilon, seed=seed, max_steps=max_steps)
        self.returns = ReturnsBuffer(keep_history=keep_history)
        self.last_episode: list[EpisodeStep] = []

    def generate_episode(self) -> list[EpisodeStep]:
        """
        Roll out one episode with the current ε-greedy policy, without learning.

        :return: List of (state, action, reward) steps.
            :rtype: list[EpisodeStep]
        """
        episode: list[EpisodeStep] = []
        state = self.env.reset()

        for _ in range(self.max_steps):
            action = self.choose_action(state)
            tr = self.env.step(action)
            episode.append(EpisodeStep(state=state, action=action, reward=tr.reward))
            state = tr.next_state
            if tr.done:
                break

        return episode

    def train_episode(self) -> float:
        episode = self.generate_episode()

        G = 0.0
        for step in reversed(episode):
            G = self.gamma * G + step.reward
            mean = self.returns.add(step.state, step.action, G)
            self.q_table.set(step.state, step.action, mean)

        self.last_episode = episode
        self.last_episode_length = len(episode)
        return float(sum(step.reward for step in episode))
