"""
ESTIMATOR - Finite-difference velocity/acceleration from a configuration trajectory

    v[t] = differentiatePos(q[t-1], q[t]) / dt      t >= 1
    a[t] = (v[t+1] - v[t]) / dt                     1 <= t < T

Everything else stays zero. mj_differentiatePos handles ball/free joints,
so quaternion parts of q are differenced on the manifold.
"""

from typing import Optional, Tuple

import mujoco
import numpy as np

from ..errors import InvalidArgumentError
from .physics import PhysicsModel


def configuration_to_velocity_acceleration(model: PhysicsModel, configuration: np.ndarray,
                                           timestep: Optional[float] = None) -> Tuple[np.ndarray, np.ndarray]:
    """Recover velocity and acceleration of a (T+1) x nq configuration trajectory

    Args:
        model: Model the configurations belong to
        configuration: (T+1) x nq array, one row per time index
        timestep: Spacing between rows (defaults to the model's timestep)

    Returns:
        (velocity, acceleration), each (T+1) x nv
    """
    configuration = np.ascontiguousarray(configuration, dtype=np.float64)
    if configuration.ndim != 2 or configuration.shape[1] != model.nq:
        raise InvalidArgumentError(
            f"configuration must be (T+1) x {model.nq}, got shape {configuration.shape}"
        )

    dt = model.timestep if timestep is None else float(timestep)
    num_times = configuration.shape[0]

    velocity = np.zeros((num_times, model.nv))
    acceleration = np.zeros((num_times, model.nv))

    for t in range(1, num_times):
        mujoco.mj_differentiatePos(model.raw, velocity[t], dt, configuration[t - 1], configuration[t])

    for t in range(1, num_times - 1):
        acceleration[t] = (velocity[t + 1] - velocity[t]) / dt

    return velocity, acceleration
