"""
PLANNERS - Trajectory optimisers behind one contract
"""

from typing import Dict, Type

from ..config import PlannerConfig
from .base import Planner
from .cross_entropy import CrossEntropyPlanner
from .rollout import RolloutResult, evaluate_candidates, rollout
from .sampling import SamplingPlanner

# planner name -> class
PLANNERS: Dict[str, Type[Planner]] = {
    SamplingPlanner.name: SamplingPlanner,
    CrossEntropyPlanner.name: CrossEntropyPlanner,
}


def get_planner_class(name: str) -> Type[Planner]:
    """OFFENSIVE: Crashes on unknown planner (config validation should have caught it)"""
    if name not in PLANNERS:
        raise ValueError(f"Planner '{name}' not found. Available: {sorted(PLANNERS)}")
    return PLANNERS[name]


def build_planner(config: PlannerConfig) -> Planner:
    return get_planner_class(config.name)(config)


__all__ = [
    'Planner', 'SamplingPlanner', 'CrossEntropyPlanner',
    'RolloutResult', 'rollout', 'evaluate_candidates',
    'PLANNERS', 'get_planner_class', 'build_planner',
]
