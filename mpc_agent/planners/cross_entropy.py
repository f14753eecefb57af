"""
CROSS ENTROPY PLANNER - Refit a Gaussian over knot parameters to the elites

Each iteration:
- candidate 0 is the current mean, the rest are mean + std * noise
- the num_elites cheapest finite candidates define the new mean and std
- std is floored at min_std * control span so the search never collapses
"""

import logging
import math

import numpy as np

from ..modals.policy_modal import SplinePolicy
from ..modals.state_modal import AgentState
from ..runtime.thread_pool import ThreadPool
from .base import Planner
from .rollout import evaluate_candidates

logger = logging.getLogger(__name__)


class CrossEntropyPlanner(Planner):
    name = "cross_entropy"

    def reset(self, state: AgentState):
        super().reset(state)
        span = self._ctrl_span()
        self._std = np.tile(self.config.noise_scale * span, (self.config.num_knots, 1))

    def plan_iteration(self, pool: ThreadPool):
        assert self._state is not None, "Call reset() first"

        start = self._state.copy()
        mean = self._buffer.current.resample(start.time, self.config.horizon)
        low, high = self.model.ctrl_range

        candidates = [mean]
        for _ in range(self.config.num_samples - 1):
            noise = self._rng.normal(size=mean.parameters.shape) * self._std
            candidates.append(mean.perturbed(noise, low, high))

        results = evaluate_candidates(pool, self.model, self.task, start, candidates, self.horizon_steps)
        self.rollout_results = results

        ranked = sorted((r for r in results if math.isfinite(r.cost)), key=lambda r: r.cost)
        elites = ranked[:self.config.num_elites]
        if not elites:
            logger.warning("Every rollout failed - keeping the previous mean")
            self.best_cost = math.inf
            return

        elite_parameters = np.stack([candidates[r.index].parameters for r in elites])
        floor = self.config.min_std * self._ctrl_span()
        self._std = np.maximum(elite_parameters.std(axis=0), floor)

        self.best_cost = elites[0].cost
        self._buffer.publish(SplinePolicy(
            times=mean.times.copy(),
            parameters=np.clip(elite_parameters.mean(axis=0), low, high),
            interpolation=mean.interpolation,
        ))
