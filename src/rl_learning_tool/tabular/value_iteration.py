from __future__ import annotations

from rl_learning_tool.envs.base import Action, Environment, StateKey
from rl_learning_tool.tabular.base import THETA, PlanningAlgorithm, greedy_backup
from rl_learning_tool.tabular.tables import PolicyTable, ValueTable


class ValueIteration(PlanningAlgorithm):
    """
    Value Iteration for a finite MDP.

    Repeatedly applies the Bellman optimality backup to every state:

        V(s) <- max_a [ r(s,a) + gamma * V(s') ]      (s', r from env.probe(s, a))

    and records the maximising action as the greedy policy (first max wins ties).

    A sweep updates V in place, state by state, so later states in the same sweep may
    already read the new values of earlier ones. That is still a valid value iteration
    (it converges to the same fixed point), it just is not the textbook "two arrays"
    synchronous version.

    :param env: Environment exposing get_all_states() and probe().
        :type env: Environment
    :param gamma: Discount factor in [0, 1).
        :type gamma: float
    :param theta: Stop once a sweep changes no value by more than this.
        :type theta: float
    """

    def __init__(self, env: Environment, gamma: float = 0.9, theta: float = THETA):
        super().__init__(env=env, gamma=gamma)
        self.theta = float(theta)

        # we initialize the state values with zeros and the policy with the first action
        self.V = ValueTable(self.states)
        self.policy = PolicyTable(default_action=env.first_action())
        for s in self.states:
            self.policy[s] = env.first_action()

        # delta_k = max_s |V_{k+1}(s) - V_k(s)|, one entry per sweep (handy for convergence plots)
        self.deltas: list[float] = []

    def iterate(self) -> float:
        """
        One sweep of the Bellman optimality backup over all states.

        :return: delta, the largest absolute value change in this sweep.
            :rtype: float
        """
        delta = 0.0

        for s in self.states:
            v_old = self.V[s]  # keep the old value to measure change

            best_action, best_value = greedy_backup(self.env, self.V, s, self.gamma)

            self.V[s] = best_value
            self.policy[s] = best_action
            delta = max(delta, abs(v_old - best_value))

        self.deltas.append(float(delta))
        return delta

    def train(self, iterations: int = 50) -> tuple[dict[StateKey, float], dict[StateKey, Action]]:
        """
        Sweep until delta < theta or `iterations` sweeps have run.

        :param iterations: Maximum number of sweeps.
            :type iterations: int

        :return: (values, policy)
            :rtype: tuple[dict[StateKey, float], dict[StateKey, Action]]
        """
        self.iterations_run = 0
        for _ in range(int(iterations)):
            delta = self.iterate()
            self.iterations_run += 1
            if delta < self.theta:  # the max change across states is small
                break
        return self.get_values(), self.get_policy()

    @property
    def converged(self) -> bool:
        return bool(self.deltas) and self.deltas[-1] < self.theta

    def get_values(self) -> dict[StateKey, float]:
        return self.V.to_dict()

    def get_policy(self) -> dict[StateKey, Action]:
        return self.policy.to_dict()


def value_iteration(
    env: Environment,
    gamma: float = 0.9,
    theta: float = THETA,
    max_iters: int = 50,
    deltas: list[float] | None = None,
) -> tuple[dict[StateKey, float], dict[StateKey, Action]]:
    """
    Convenience wrapper: build a ValueIteration, train it, return (V, policy).

    :param env: Environment exposing get_all_states() and probe().
        :type env: Environment
    :param gamma: Discount factor.
        :type gamma: float
    :param theta: Convergence threshold.
        :type theta: float
    :param max_iters: Maximum number of sweeps.
        :type max_iters: int
    :param deltas: Optional list to store the per-sweep convergence metric.
        If provided, this function appends one value per sweep.
        :type deltas: list[float] | None

    :return: (V, policy)
        :rtype: tuple[dict[StateKey, float], dict[StateKey, Action]]
    """
    vi = ValueIteration(env=env, gamma=gamma, theta=theta)
    V, policy = vi.train(iterations=max_iters)
    if deltas is not None:
        deltas.extend(vi.deltas)
    return V, policy
