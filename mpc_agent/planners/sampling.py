"""
SAMPLING PLANNER - Predictive sampling

Each iteration:
- nominal = current best policy resampled to the start time (candidate 0)
- num_samples - 1 noisy copies of the nominal
- keep the cheapest (lowest index on ties)

Noise is drawn on the calling thread BEFORE dispatch, so for a fixed seed
the candidate set (and the outcome) does not depend on the pool size.
Keeping the noise-free nominal in the set means the best cost never goes up
while the task and start state stay put.
"""

import logging

import numpy as np

from ..runtime.thread_pool import ThreadPool
from .base import Planner
from .rollout import evaluate_candidates

logger = logging.getLogger(__name__)


class SamplingPlanner(Planner):
    name = "sampling"

    def _candidates(self, start_time: float):
        nominal = self._buffer.current.resample(start_time, self.config.horizon)
        low, high = self.model.ctrl_range
        scale = self.config.noise_scale * self._ctrl_span()

        candidates = [nominal]
        for _ in range(self.config.num_samples - 1):
            noise = self._rng.normal(size=nominal.parameters.shape) * scale
            candidates.append(nominal.perturbed(noise, low, high))
        return candidates

    def plan_iteration(self, pool: ThreadPool):
        assert self._state is not None, "Call reset() first"

        start = self._state.copy()
        candidates = self._candidates(start.time)

        results = evaluate_candidates(pool, self.model, self.task, start, candidates, self.horizon_steps)
        costs = np.array([r.cost for r in results])
        best = int(np.argmin(costs))

        failed = sum(r.failed for r in results)
        if failed:
            logger.warning("%d/%d rollouts failed this iteration", failed, len(results))

        self.rollout_results = results
        self.best_cost = float(costs[best])
        self._buffer.publish(candidates[best])
