"""
This module contains two things:

1. Policy evaluation: given a fixed policy pi, estimate V^pi with a few synchronous DP backups
2. Policy iteration: alternate evaluate -> improve until the policy stops changing
"""

from __future__ import annotations

from rl_learning_tool.common.seeding import SeedLike, make_rng, sample_index
from rl_learning_tool.envs.base import Action, Environment, StateKey, valid_actions
from rl_learning_tool.tabular.base import PlanningAlgorithm, action_value, greedy_backup
from rl_learning_tool.tabular.tables import PolicyTable, ValueTable

EVALUATION_SWEEPS = 10


class PolicyIteration(PlanningAlgorithm):
    """
    Policy Iteration (evaluation + improvement) for a finite MDP.

    This is the classic loop:
    1. Evaluate the current policy pi (EVALUATION_SWEEPS synchronous sweeps, warm-started from the previous V)
    2. Improve the policy greedily w.r.t. that value function
    3. Repeat until the policy is stable (no changes)

    The starting policy is a uniformly random valid action per state.

    :param env: Environment exposing get_all_states() and probe().
        :type env: Environment
    :param gamma: Discount factor.
        :type gamma: float
    :param seed: Seed (or shared Generator) for the random initial policy.
        :type seed: int | None | np.random.Generator
    """

    def __init__(self, env: Environment, gamma: float = 0.9, seed: SeedLike = None):
        super().__init__(env=env, gamma=gamma)
        self.rng = make_rng(seed)

        self.V = ValueTable(self.states)
        self.policy = PolicyTable(default_action=env.first_action())
        for s in self.states:
            actions = valid_actions(env, s)
            self.policy[s] = actions[sample_index(self.rng, len(actions))]

        self.stable = False

    def policy_evaluation(self, sweeps: int = EVALUATION_SWEEPS) -> None:
        """
        Evaluate the current (fixed) policy for `sweeps` sweeps.

        Each sweep computes every new value from the previous table only and then
        swaps the whole table in at once, so no state reads a value written in the same sweep.

        :param sweeps: Number of evaluation sweeps.
            :type sweeps: int

        :return: None
            :rtype: None
        """
        for _ in range(int(sweeps)):
            new_V = ValueTable()
            for s in self.states:
                new_V[s] = action_value(self.env, self.V, s, self.policy[s], self.gamma)
            self.V = new_V

    def policy_improvement(self) -> bool:
        """
        Make the policy greedy w.r.t. the current V.

        For each state:
            pi(s) <- argmax_a [ r(s,a) + gamma * V(s') ]   (first max wins ties)

        :return: True if no state changed its action (policy is stable).
            :rtype: bool
        """
        policy_stable = True

        for s in self.states:
            old_action = self.policy[s]
            best_action, _ = greedy_backup(self.env, self.V, s, self.gamma)
            self.policy[s] = best_action

            if best_action != old_action:
                policy_stable = False

        return policy_stable

    def train(self, iterations: int = 20) -> tuple[dict[StateKey, float], dict[StateKey, Action]]:
        """
        Alternate evaluation and improvement until stable or `iterations` cycles have run.

        :param iterations: Maximum number of evaluate/improve cycles.
            :type iterations: int

        :return: (values, policy)
            :rtype: tuple[dict[StateKey, float], dict[StateKey, Action]]
        """
        self.stable = False
        self.iterations_run = 0
        for _ in range(int(iterations)):
            self.policy_evaluation()
            self.iterations_run += 1
            if self.policy_improvement():
                self.stable = True
                break
        return self.get_values(), self.get_policy()

    def get_values(self) -> dict[StateKey, float]:
        return self.V.to_dict()

    def get_policy(self) -> dict[StateKey, Action]:
        return self.policy.to_dict()


def policy_iteration(
    env: Environment,
    gamma: float = 0.9,
    max_improve_iters: int = 20,
    seed: SeedLike = None,
) -> tuple[dict[StateKey, float], dict[StateKey, Action]]:
    """
    Convenience wrapper: build a PolicyIteration, train it, return (V, policy).

    :param env: Environment exposing get_all_states() and probe().
        :type env: Environment
    :param gamma: Discount factor.
        :type gamma: float
    :param max_improve_iters: Max outer evaluate/improve cycles.
        :type max_improve_iters: int
    :param seed: Seed for the random initial policy.
        :type seed: int | None | np.random.Generator

    :return: (V, policy)
        :rtype: tuple[dict[StateKey, float], dict[StateKey, Action]]
    """
    return PolicyIteration(env=env, gamma=gamma, seed=seed).train(iterations=max_improve_iters)
