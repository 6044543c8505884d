"""
Tabular RL algorithms (finite MDPs).

Includes:
- Value Iteration / Policy Iteration (planning, need an enumerable state space)
- Monte Carlo control / TD(0) / SARSA / Q-learning (online, learn from episodes)
- the mapping-based tables they share
"""

from .tables import ValueTable, PolicyTable, QTable, ReturnsBuffer
from .base import PlanningAlgorithm, OnlineAlgorithm, QControlAlgorithm, EpisodeStep, MAX_EPISODE_STEPS
from .value_iteration import ValueIteration, value_iteration
from .policy_iteration import PolicyIteration, policy_iteration
from .monte_carlo import MonteCarloControl
from .td_learning import TDLearning
from .sarsa import SARSA
from .q_learning import QLearning

__all__ = [
    "ValueTable",
    "PolicyTable",
    "QTable",
    "ReturnsBuffer",
    "PlanningAlgorithm",
    "OnlineAlgorithm",
    "QControlAlgorithm",
    "EpisodeStep",
    "MAX_EPISODE_STEPS",
    "ValueIteration",
    "value_iteration",
    "PolicyIteration",
    "policy_iteration",
    "MonteCarloControl",
    "TDLearning",
    "SARSA",
    "QLearning",
]
