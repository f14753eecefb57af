"""
RUNTIME - Physics kernel wrappers, residual hook, worker pool, agent
"""

from .physics import PhysicsModel, PhysicsState, forward, has_diverged, load_model, step
from .residual_hook import RESIDUAL_HOOK, ResidualHook
from .thread_pool import ThreadPool

__all__ = [
    'PhysicsModel', 'PhysicsState', 'load_model', 'step', 'forward', 'has_diverged',
    'ResidualHook', 'RESIDUAL_HOOK',
    'ThreadPool',
]
