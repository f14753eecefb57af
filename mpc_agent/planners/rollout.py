"""
ROLLOUT - Score candidate policies by simulating them, one job per candidate

Each job:
1. clones a PRIVATE PhysicsState from the shared (read-only) PhysicsModel
2. copies the start snapshot in
3. steps the horizon under the candidate, accumulating task cost
4. releases the scratch - also when it blows up

A failing rollout is absorbed as cost = inf. It NEVER fails the iteration.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from ..errors import RolloutDivergedError
from ..modals.policy_modal import SplinePolicy
from ..modals.state_modal import AgentState
from ..modals.task_modal import Task
from ..runtime.physics import PhysicsModel, forward, has_diverged, step
from ..runtime.thread_pool import ThreadPool

logger = logging.getLogger(__name__)


@dataclass
class RolloutResult:
    """Outcome of one candidate"""
    index: int
    cost: float
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


def rollout(model: PhysicsModel, task: Task, start: AgentState, policy: SplinePolicy, steps: int) -> float:
    """Simulate `steps` timesteps from `start` under `policy`

    Returns:
        Running cost integrated over the horizon plus a terminal term

    Raises:
        RolloutDivergedError: non-finite control or state
    """
    low, high = model.ctrl_range
    dt = model.timestep
    total = 0.0

    with model.make_state() as scratch:
        start.copy_to(model, scratch)
        data = scratch.data

        for _ in range(steps):
            ctrl = policy.action(data.time)
            if not np.all(np.isfinite(ctrl)):
                raise RolloutDivergedError(f"non-finite control at t={data.time:.4f}")
            data.ctrl[:] = np.clip(ctrl, low, high)

            # residual lands in sensordata during the step (acc stage)
            step(model, scratch)
            if has_diverged(scratch):
                raise RolloutDivergedError(f"state diverged at t={data.time:.4f}")

            total += task.cost(data.sensordata[:task.num_residual]) * dt

        # terminal
        forward(model, scratch)
        total += task.cost(data.sensordata[:task.num_residual]) * dt

    return total


def evaluate_candidates(pool: ThreadPool, model: PhysicsModel, task: Task, start: AgentState,
                        candidates: Sequence[SplinePolicy], steps: int) -> List[RolloutResult]:
    """Fan out one rollout per candidate, wait for ALL of them

    Every job reads the same start snapshot and its own candidate, nothing
    else, so the outcome does not depend on pool size or scheduling order.

    Returns:
        Results in candidate order
    """
    results: List[Optional[RolloutResult]] = [None] * len(candidates)

    def make_job(index: int, policy: SplinePolicy):
        def job():
            try:
                cost = rollout(model, task, start, policy, steps)
                if not math.isfinite(cost):
                    raise RolloutDivergedError("non-finite cost")
                results[index] = RolloutResult(index, cost)
            except Exception as e:
                # worst-case score, the iteration carries on
                logger.debug("Rollout %d failed: %s", index, e)
                results[index] = RolloutResult(index, math.inf, error=f"{type(e).__name__}: {e}")
        return job

    pool.run([make_job(i, policy) for i, policy in enumerate(candidates)])
    return results
