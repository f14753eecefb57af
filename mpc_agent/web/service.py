"""
AGENT SERVICE - Remote-facing façade over ONE Agent

Pattern: every method takes the lock, forwards to the agent, returns plain data.
FastAPI runs sync handlers on its own thread pool, so two requests CAN arrive
at once; the lock turns that into strict one-call-at-a-time. This is also
what keeps weight/parameter/mode changes out of an in-flight planner step.
"""

import logging
import threading
from typing import Any, Dict, List, Mapping, Optional

from ..config import AgentConfig
from ..modals.registry import list_available
from ..runtime.agent import Agent

logger = logging.getLogger(__name__)


class AgentService:
    """Serialised access to one Agent"""

    def __init__(self, config: Optional[AgentConfig] = None, agent: Optional[Agent] = None):
        self.agent = agent if agent is not None else Agent(config)
        self._lock = threading.Lock()

    # === LIFECYCLE ===

    def init(self, task_id: str, model_xml: Optional[str] = None):
        with self._lock:
            logger.info("Init requested: task_id=%s custom_xml=%s", task_id, model_xml is not None)
            self.agent.init(task_id, model_xml)

    def reset(self):
        with self._lock:
            self.agent.reset()

    def close(self):
        with self._lock:
            self.agent.close()

    def list_tasks(self) -> List[str]:
        return list_available()

    # === STATE ===

    def get_state(self) -> Dict[str, Any]:
        with self._lock:
            return self.agent.get_state().to_dict()

    def set_state(self, fields: Mapping[str, Any]):
        with self._lock:
            self.agent.set_state(**fields)

    # === PLAN / ACT ===

    def get_action(self, time: Optional[float] = None, averaging_duration: float = 0.0) -> List[float]:
        with self._lock:
            return self.agent.get_action(time, averaging_duration).tolist()

    def planner_step(self):
        with self._lock:
            self.agent.planner_step()

    def step(self, use_previous_policy: bool = False):
        with self._lock:
            self.agent.step(use_previous_policy)

    # === TUNABLES ===

    def get_task_parameters(self) -> Dict[str, float]:
        with self._lock:
            return self.agent.get_task_parameters()

    def set_task_parameters(self, parameters: Mapping[str, float]):
        with self._lock:
            self.agent.set_task_parameters(parameters)

    def get_cost_weights(self) -> Dict[str, float]:
        with self._lock:
            return self.agent.get_cost_weights()

    def set_cost_weights(self, weights: Mapping[str, float], reset_to_default: bool = False):
        with self._lock:
            self.agent.set_cost_weights(weights, reset_to_default)

    def get_cost_values_and_weights(self) -> Dict[str, Dict[str, float]]:
        with self._lock:
            return self.agent.get_cost_values_and_weights()

    def get_mode(self) -> str:
        with self._lock:
            return self.agent.get_mode()

    def set_mode(self, mode: str):
        with self._lock:
            self.agent.set_mode(mode)
