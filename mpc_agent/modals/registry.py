"""
REGISTRY - Task discovery by identifier
OFFENSIVE - unknown task ids are rejected, never guessed
"""

from typing import Dict, List, Type

from ..errors import InvalidArgumentError
from .task_modal import Task
from .tasks import Cartpole, Particle

# task id -> Task subclass
TASKS: Dict[str, Type[Task]] = {}


def register_task(task_class: Type[Task]) -> Type[Task]:
    """Add a Task subclass under its `name` - usable as a decorator

    OFFENSIVE: Crashes on missing or duplicate names
    """
    assert task_class.name, f"{task_class.__name__} must declare a non-empty `name`"
    existing = TASKS.get(task_class.name)
    assert existing is None or existing is task_class, f"Task '{task_class.name}' registered twice"
    TASKS[task_class.name] = task_class
    return task_class


def list_available() -> List[str]:
    """All registered task ids, sorted"""
    return sorted(TASKS)


def get_task_class(task_id: str, tasks: Dict[str, Type[Task]] = None) -> Type[Task]:
    """Resolve a task id

    Args:
        task_id: e.g. "Particle"
        tasks: Optional private table (defaults to the global TASKS)

    Raises:
        InvalidArgumentError: unknown id
    """
    table = TASKS if tasks is None else tasks
    if task_id not in table:
        raise InvalidArgumentError(f"Invalid task_id: '{task_id}'. Available: {sorted(table)}")
    return table[task_id]


for _task_class in (Particle, Cartpole):
    register_task(_task_class)
