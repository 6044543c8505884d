from __future__ import annotations

from rl_learning_tool.common.seeding import SeedLike
from rl_learning_tool.envs.base import Action, Environment, StateKey
from rl_learning_tool.tabular.base import MAX_EPISODE_STEPS, OnlineAlgorithm, check_alpha, greedy_policy
from rl_learning_tool.tabular.tables import PolicyTable, ValueTable


class TDLearning(OnlineAlgorithm):
    """
    One-step TD value learning, TD(0), with a policy derived from V.

    Behaviour is a fixed uniformly random policy: TD(0) here estimates V for that
    random walk, it does not act on its own estimate.

    After every step:
        V(s) <- V(s) + alpha * [r + gamma * V(s') - V(s)]      (V(s') = 0 if done)

    After every episode the policy is recomputed for every enumerable state with a
    one-step lookahead on V (same greedy step as value iteration, first max).
    For environments that do not enumerate their states the policy stays empty.

    :param env: Environment.
        :type env: Environment
    :param alpha: Step size.
        :type alpha: float
    :param gamma: Discount factor.
        :type gamma: float
    :param seed: Seed or shared Generator for the random behaviour policy.
        :type seed: int | None | np.random.Generator
    :param max_steps: Per-episode step cap.
        :type max_steps: int
    """

    def __init__(
        self,
        env: Environment,
        alpha: float = 0.1,
        gamma: float = 0.9,
        seed: SeedLike = None,
        max_steps: int = MAX_EPISODE_STEPS,
    ):
        super().__init__(env=env, gamma=gamma, seed=seed, max_steps=max_steps)
        self.alpha = check_alpha(alpha)

        self.states = list(env.get_all_states())
        self.V = ValueTable(self.states)
        self.policy = PolicyTable(default_action=env.first_action())
        for s in self.states:
            self.policy[s] = env.first_action()

    def update(self, state: StateKey, reward: float, next_state: StateKey, done: bool) -> None:
        """
        Apply the TD(0) update for one transition.

        :param state: State the transition started from.
            :type state: StateKey
        :param reward: Observed reward.
            :type reward: float
        :param next_state: State reached.
            :type next_state: StateKey
        :param done: Whether the episode ended after this transition.
            :type done: bool

        :return: None
            :rtype: None
        """
        target = reward
        if not done:
            target += self.gamma * self.V[next_state]

        td_error = target - self.V[state]
        self.V[state] = self.V[state] + self.alpha * td_error

    def update_policy(self) -> None:
        for s, a in greedy_policy(self.env, self.V, self.states, self.gamma).items():
            self.policy[s] = a

    def train_episode(self) -> float:
        state = self.env.reset()
        total_reward = 0.0
        steps = 0

        for _ in range(self.max_steps):
            steps += 1
            action = self.random_action(state)
            tr = self.env.step(action)

            self.update(state, tr.reward, tr.next_state, tr.done)

            total_reward += tr.reward
            state = tr.next_state
            if tr.done:
                break

        self.update_policy()
        self.last_episode_length = steps
        return total_reward

    def get_values(self) -> dict[StateKey, float]:
        return self.V.to_dict()

    def get_policy(self) -> dict[StateKey, Action]:
        return self.policy.to_dict()
