"""
MODALS - State, task, policy containers
OFFENSIVE & ELEGANT
"""

from .policy_modal import PolicyBuffer, SplinePolicy
from .registry import TASKS, get_task_class, list_available, register_task
from .state_modal import AgentState
from .task_modal import CostTerm, Task

__all__ = [
    'AgentState',
    'Task', 'CostTerm',
    'SplinePolicy', 'PolicyBuffer',
    'TASKS', 'get_task_class', 'list_available', 'register_task',
]
