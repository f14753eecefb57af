"""
MPC AGENT - Real-time model predictive control on MuJoCo
Plan on a worker pool, act at a fixed timestep, share one read-only model
"""

from .config import AgentConfig, PlannerConfig, load_agent_config
from .errors import (
    AgentError,
    FatalConfigurationError,
    InternalError,
    InvalidArgumentError,
    NotInitializedError,
    RolloutDivergedError,
)
from .modals import AgentState, CostTerm, Task, list_available, register_task
from .runtime.agent import Agent
from .runtime.estimator import configuration_to_velocity_acceleration

__version__ = "0.1.0"

__all__ = [
    'Agent', 'AgentState', 'Task', 'CostTerm',
    'AgentConfig', 'PlannerConfig', 'load_agent_config',
    'AgentError', 'NotInitializedError', 'InvalidArgumentError', 'InternalError',
    'RolloutDivergedError', 'FatalConfigurationError',
    'list_available', 'register_task',
    'configuration_to_velocity_acceleration',
]
