"""
AGENT - Session lifecycle + the two halves of real-time MPC
OFFENSIVE & ELEGANT: One agent, one task, one planner, one pool

Pattern: Agent owns every subsystem of a session, coordinates everything
- plan half:  planner_step() -> ONE plan_iteration on the worker pool
- act half:   step()         -> policy action + ONE physics step
- both share the read-only models, each owns its private scratch

Session:
    agent = Agent(config)
    agent.init("Particle")
    for _ in range(100):
        agent.planner_step()
        agent.step()
    agent.close()

Every operation except init() raises NotInitializedError before init().
"""

import logging
import weakref
from typing import Any, Dict, List, Mapping, Optional, Type

import numpy as np

from ..config import AgentConfig
from ..errors import InternalError, InvalidArgumentError, NotInitializedError
from ..modals.registry import get_task_class
from ..modals.state_modal import AgentState
from ..modals.task_modal import Task
from ..planners import Planner, build_planner
from .physics import PhysicsModel, PhysicsState, forward, has_diverged, load_model, step
from .residual_hook import RESIDUAL_HOOK, ResidualHook
from .thread_pool import ThreadPool

logger = logging.getLogger(__name__)

HOME_KEYFRAME = "home"


def _release_session(pool: ThreadPool, scratch: PhysicsState):
    """Stop workers and drop the live scratch

    Runs once: from close(), or when a live agent is garbage-collected.
    Must not reference the agent itself.
    """
    if not pool.close():
        logger.warning("Rollout workers did not stop in time")
    scratch.release()


class Agent:
    """Real-time MPC agent - holds at most ONE live session"""

    def __init__(self, config: Optional[AgentConfig] = None, tasks: Optional[Dict[str, Type[Task]]] = None,
                 residual_hook: ResidualHook = RESIDUAL_HOOK):
        self.config = config if config is not None else AgentConfig()
        self.residual_hook = residual_hook
        self._tasks = tasks

        self.task: Optional[Task] = None
        self.planner: Optional[Planner] = None
        self.pool: Optional[ThreadPool] = None
        self.planning_model: Optional[PhysicsModel] = None
        self.physics_model: Optional[PhysicsModel] = None

        self._scratch: Optional[PhysicsState] = None
        self._state: Optional[AgentState] = None
        self._finalizer: Optional[weakref.finalize] = None

        self.plan_enabled = False
        self.action_enabled = False

    @property
    def initialized(self) -> bool:
        return self._state is not None

    def _require_init(self):
        if not self.initialized:
            raise NotInitializedError()

    # === LIFECYCLE ===

    def init(self, task_id: str, model_xml: Optional[str] = None):
        """Start a session for `task_id`

        Args:
            task_id: Registered task id, e.g. "Particle"
            model_xml: Optional MJCF overriding the task's own model

        Raises:
            InvalidArgumentError: unknown task id (agent untouched)
            InternalError: model failed to compile (agent untouched)
            FatalConfigurationError: residual hook refused the models
        """
        task = get_task_class(task_id, self._tasks)()
        loaded = load_model(model_xml if model_xml is not None else task.xml())

        # Everything that can be rejected was checked, now replace the session
        if self.initialized:
            logger.info("Re-init: closing session for '%s'", self.task.name)
            self.close()

        # Physics keeps the model's own timestep, planning may use a coarser one
        physics_model = loaded.copy()
        planning_timestep = self.config.planning_timestep
        planning_model = loaded if planning_timestep is None else loaded.copy(planning_timestep)

        scratch = physics_model.make_state()
        if physics_model.key_id(HOME_KEYFRAME) >= 0:
            scratch.reset(HOME_KEYFRAME)
        else:
            scratch.reset()

        try:
            self.residual_hook.bind(planning_model, task.residual, owner=self)
            self.residual_hook.bind(physics_model, task.residual, owner=self)
        except Exception:
            self.residual_hook.unbind_owner(self)
            scratch.release()
            raise

        forward(physics_model, scratch)
        state = AgentState.capture(physics_model, scratch)

        planner = build_planner(self.config.planner)
        planner.initialize(planning_model, task)
        planner.reset(state)

        self.task = task
        self.planner = planner
        self.planning_model = planning_model
        self.physics_model = physics_model
        self._scratch = scratch
        self.pool = ThreadPool(self.config.num_threads)
        self._state = state
        # hook bindings are weak, this covers the pool and scratch of a dropped agent
        self._finalizer = weakref.finalize(self, _release_session, self.pool, scratch)

        self.plan_enabled = True
        self.action_enabled = True

        logger.info(
            "Initialized '%s' (planner=%s, threads=%d, physics dt=%.4f, planning dt=%.4f)",
            task.name, planner.name, self.config.num_threads,
            physics_model.timestep, planning_model.timestep,
        )

    def close(self):
        """End the session - unbind models, stop workers, drop scratch. Idempotent."""
        if not self.initialized:
            return

        self.residual_hook.unbind_owner(self)
        self._finalizer()
        task_name = self.task.name

        self.task = None
        self.planner = None
        self.pool = None
        self.planning_model = None
        self.physics_model = None
        self._scratch = None
        self._state = None
        self._finalizer = None
        self.plan_enabled = False
        self.action_enabled = False

        logger.info("Closed session for '%s'", task_name)

    def reset(self):
        """Back to the home keyframe, default task tunables and a zero policy"""
        self._require_init()

        self.task.reset()
        if self.physics_model.key_id(HOME_KEYFRAME) >= 0:
            self._scratch.reset(HOME_KEYFRAME)
        else:
            self._scratch.reset()
        forward(self.physics_model, self._scratch)

        self._state.set(self.physics_model, self._scratch)
        self.planner.reset(self._state)

    def set_plan_enabled(self, enabled: bool):
        """While disabled, planner_step() returns without planning"""
        self._require_init()
        self.plan_enabled = bool(enabled)

    def set_action_enabled(self, enabled: bool):
        """While disabled, step() applies zero control instead of the policy"""
        self._require_init()
        self.action_enabled = bool(enabled)

    # === STATE ===

    def get_state(self) -> AgentState:
        """Copy of the active state"""
        self._require_init()
        return self._state.copy()

    def set_state(self, state: Optional[AgentState] = None, **fields: Any):
        """Overwrite the active state, fully or field by field

        Usage:
            agent.set_state(snapshot)
            agent.set_state(qpos=[0.1, 0.0], time=2.0)

        Raises:
            InvalidArgumentError: unknown field or wrong size (nothing changed)
        """
        self._require_init()

        updated = self._state.copy()
        if state is not None:
            updated.update(**state.to_dict())
        updated.update(**fields)

        updated.copy_to(self.physics_model, self._scratch)
        forward(self.physics_model, self._scratch)
        self.task.transition(self.physics_model.raw, self._scratch.data)

        # Not re-read from scratch: get_state() must return exactly what was set
        self._state = updated

    # === ACTION ===

    def get_action(self, time: Optional[float] = None, averaging_duration: float = 0.0) -> np.ndarray:
        """Policy action for the active state

        Args:
            time: Query time (defaults to the active state's time)
            averaging_duration: > 0 averages the action over that many seconds
                of simulated steps, run on a private scratch

        Returns:
            Action vector of size nu, clipped to the control range
        """
        self._require_init()
        if averaging_duration < 0:
            raise InvalidArgumentError(f"averaging_duration must be >= 0, got {averaging_duration}")

        model = self.physics_model
        action = np.zeros(model.nu)
        query_time = self._state.time if time is None else float(time)

        if averaging_duration == 0:
            self.planner.action_from_policy(action, self._state.state_vector, query_time)
            return action

        num_steps = max(1, int(round(averaging_duration / model.timestep)))
        total = np.zeros(model.nu)
        with model.make_state() as scratch:
            start = self._state.copy()
            start.time = query_time
            start.copy_to(model, scratch)
            data = scratch.data
            for _ in range(num_steps):
                self.planner.action_from_policy(action, start.state_vector, data.time)
                total += action
                data.ctrl[:] = action
                step(model, scratch)
                start.set(model, scratch)
        return total / num_steps

    def planner_step(self):
        """ONE planning iteration from the current active state (blocks until done)"""
        self._require_init()
        if not self.plan_enabled:
            return
        self.planner.set_state(self._state)
        self.planner.plan_iteration(self.pool)
        logger.debug("Planner step: best cost %.6f", self.planner.best_cost)

    def step(self, use_previous_policy: bool = False):
        """Advance the active state by ONE physics timestep

        Raises:
            InternalError: physics produced a non-finite state (state unchanged)
        """
        self._require_init()
        model, scratch = self.physics_model, self._scratch
        data = scratch.data

        self._state.copy_to(model, scratch)
        self.task.transition(model.raw, data)

        if self.action_enabled:
            self.planner.action_from_policy(
                data.ctrl, self._state.state_vector, data.time, use_previous_policy=use_previous_policy,
            )
        else:
            data.ctrl[:] = 0.0

        step(model, scratch)
        if has_diverged(scratch):
            failed_time = self._state.time
            scratch.reset()
            raise InternalError(f"Physics diverged stepping from t={failed_time:.4f}")

        self._state.set(model, scratch)

    # === TASK TUNABLES ===

    def get_task_parameters(self) -> Dict[str, float]:
        self._require_init()
        return dict(self.task.parameters)

    def set_task_parameters(self, parameters: Mapping[str, float]):
        """Raises InvalidArgumentError on unknown names (nothing changed)"""
        self._require_init()
        self.task.set_parameters(parameters)

    def get_cost_weights(self) -> Dict[str, float]:
        self._require_init()
        return self.task.cost_weights

    def set_cost_weights(self, weights: Mapping[str, float], reset_to_default: bool = False):
        """Raises InvalidArgumentError on unknown term names (nothing changed)"""
        self._require_init()
        self.task.set_cost_weights(weights, reset_to_default=reset_to_default)

    def get_mode(self) -> str:
        self._require_init()
        return self.task.mode_name

    def set_mode(self, mode: str):
        self._require_init()
        self.task.set_mode(mode)

    def get_cost_values_and_weights(self) -> Dict[str, Dict[str, float]]:
        """Per-term {"value", "weight"} evaluated at the active state"""
        self._require_init()
        self._state.copy_to(self.physics_model, self._scratch)
        forward(self.physics_model, self._scratch)
        return self.task.cost_values(self._scratch.data.sensordata[:self.task.num_residual])

    def available_modes(self) -> List[str]:
        self._require_init()
        return list(self.task.modes)

    # === CONTEXT MANAGER ===

    def __enter__(self) -> "Agent":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def __repr__(self) -> str:
        task = self.task.name if self.task else None
        return f"Agent(task={task!r}, initialized={self.initialized})"
