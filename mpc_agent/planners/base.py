"""
PLANNER - Contract every trajectory optimiser satisfies

Lifecycle:
1. initialize(model, task)   - planning model + task, once per session
2. reset(state)              - zero policy starting at state.time, reseed
3. set_state(state)          - snapshot the next iteration starts from
4. plan_iteration(pool)      - ONE synchronous improvement round (barrier)
5. action_from_policy(...)   - non-blocking read of current/previous policy
"""

import math
from abc import ABC, abstractmethod
from typing import ClassVar, List, Optional

import numpy as np

from ..config import PlannerConfig
from ..modals.policy_modal import PolicyBuffer, SplinePolicy
from ..modals.state_modal import AgentState
from ..modals.task_modal import Task
from ..runtime.physics import PhysicsModel
from ..runtime.thread_pool import ThreadPool
from .rollout import RolloutResult


class Planner(ABC):
    """Base planner: owns the policy double buffer and the start snapshot"""

    name: ClassVar[str] = ""

    def __init__(self, config: PlannerConfig):
        self.config = config
        self.model: Optional[PhysicsModel] = None
        self.task: Optional[Task] = None

        self._state: Optional[AgentState] = None
        self._buffer: Optional[PolicyBuffer] = None
        self._rng = np.random.default_rng(config.seed)

        self.rollout_results: List[RolloutResult] = []
        self.best_cost = math.inf

    def initialize(self, model: PhysicsModel, task: Task):
        self.model = model
        self.task = task

    # === STATE ===

    def reset(self, state: AgentState):
        """Zero policy from state.time, fresh random stream"""
        assert self.model is not None, "Call initialize() first"
        self._rng = np.random.default_rng(self.config.seed)
        self._state = state.copy()
        self._buffer = PolicyBuffer(SplinePolicy.zeros(
            self.model.nu, self.config.num_knots, state.time, self.config.horizon,
            self.config.interpolation,
        ))
        self.rollout_results = []
        self.best_cost = math.inf

    def set_state(self, state: AgentState):
        """Start snapshot for the next plan_iteration (copied)"""
        self._state = state.copy()

    @property
    def horizon_steps(self) -> int:
        return max(1, int(round(self.config.horizon / self.model.timestep)))

    @property
    def policy(self) -> SplinePolicy:
        return self._buffer.current

    @property
    def previous_policy(self) -> SplinePolicy:
        return self._buffer.previous

    @property
    def rollout_costs(self) -> List[float]:
        return [r.cost for r in self.rollout_results]

    def _ctrl_span(self) -> np.ndarray:
        """Width of each actuator's range, 1 for unlimited actuators"""
        low, high = self.model.ctrl_range
        span = high - low
        return np.where(np.isfinite(span), span, 1.0)

    # === CONTRACT ===

    @abstractmethod
    def plan_iteration(self, pool: ThreadPool):
        """One improvement round - returns only after every rollout finished"""

    def action_from_policy(self, out: np.ndarray, state_vector: np.ndarray, time: float,
                           use_previous_policy: bool = False):
        """Write the policy's control at `time` into out - never blocks

        state_vector is part of the contract for feedback policies; the
        open-loop splines here only need time.
        """
        policy = self._buffer.read(use_previous_policy)
        low, high = self.model.ctrl_range
        out[:] = np.clip(policy.action(time), low, high)
