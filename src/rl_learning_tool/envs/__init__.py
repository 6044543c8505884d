"""
Environments (MDPs) the tabular algorithms run against.

Includes:
- the Environment interface (reset/step/probe/get_all_states/get_valid_actions)
- a deterministic Grid World (planning + online learning)
- Mountain Car with a binned state key (online learning only)
- an adapter for deterministic Gymnasium toy-text environments
"""

from .base import Environment, TransitionResult, ContractViolationError, StateKey, Action, valid_actions
from .gridworld import GridWorld
from .mountain_car import MountainCar
from .toy_text import ToyTextEnvironment, make_first_available

__all__ = [
    "Environment",
    "TransitionResult",
    "ContractViolationError",
    "StateKey",
    "Action",
    "valid_actions",
    "GridWorld",
    "MountainCar",
    "ToyTextEnvironment",
    "make_first_available",
]
