"""Finite-difference velocity/acceleration recovery on short simulated trajectories"""

import mujoco
import numpy as np
import pytest

from mpc_agent.errors import InvalidArgumentError
from mpc_agent.modals.policy_modal import SplinePolicy
from mpc_agent.modals.tasks import Particle
from mpc_agent.runtime.agent import Agent
from mpc_agent.runtime.estimator import configuration_to_velocity_acceleration
from mpc_agent.runtime.physics import load_model

BOX_XML = """
<mujoco model="Box">
  <option timestep="0.005" integrator="Euler"/>
  <worldbody>
    <body name="box" pos="0 0 0">
      <freejoint/>
      <geom type="box" size="0.1 0.05 0.025" mass="1.0" contype="0" conaffinity="0"/>
    </body>
  </worldbody>
</mujoco>
"""

T = 5


def simulate(model, controller, qpos0=None, qvel0=None):
    """T steps of forward + Euler, caching q (T+1 rows), v and a (T rows)"""
    m = model.raw
    d = mujoco.MjData(m)
    mujoco.mj_resetData(m, d)
    if qpos0 is not None:
        d.qpos[:] = qpos0
    if qvel0 is not None:
        d.qvel[:] = qvel0

    qpos = np.zeros((T + 1, m.nq))
    qvel = np.zeros((T + 1, m.nv))
    qacc = np.zeros((T, m.nv))

    for t in range(T):
        controller(d.ctrl, d.time)
        mujoco.mj_forward(m, d)
        qpos[t] = d.qpos
        qvel[t] = d.qvel
        qacc[t] = d.qacc
        # forward already ran, Euler only integrates
        mujoco.mj_Euler(m, d)

    qpos[T] = d.qpos
    qvel[T] = d.qvel
    return qpos, qvel, qacc


def normalized_error(estimate, truth, nv):
    """Rows 1..T-1 compared, norm scaled by the number of entries"""
    error = estimate[1:T] - truth[1:T]
    return np.linalg.norm(error) / (nv * (T - 1))


def test_particle_2d():
    model = load_model(Particle().xml())

    def controller(ctrl, time):
        ctrl[0] = np.sin(10 * time)
        ctrl[1] = np.cos(10 * time)

    qpos, qvel, qacc = simulate(model, controller)
    velocity, acceleration = configuration_to_velocity_acceleration(model, qpos)

    assert velocity.shape == (T + 1, model.nv)
    assert normalized_error(velocity, qvel, model.nv) < 1e-3
    assert normalized_error(acceleration, qacc, model.nv) < 1e-3

    # boundary rows stay zero
    np.testing.assert_array_equal(velocity[0], np.zeros(model.nv))
    np.testing.assert_array_equal(acceleration[0], np.zeros(model.nv))
    np.testing.assert_array_equal(acceleration[T], np.zeros(model.nv))


def test_agent_driven_open_loop(small_config):
    """Trajectory from Agent.step under a fixed open-loop policy"""
    policy = SplinePolicy(times=np.array([0.0, 0.05]), parameters=np.array([[0.5, -0.5], [1.0, 0.2]]))

    with Agent(small_config) as agent:
        agent.init("Particle")
        agent.planner._buffer.publish(policy)
        model = agent.physics_model
        mass = model.raw.body_mass[mujoco.mj_name2id(model.raw, mujoco.mjtObj.mjOBJ_BODY, "pointmass")]

        qpos = np.zeros((T + 1, model.nq))
        qvel = np.zeros((T + 1, model.nv))
        qacc = np.zeros((T, model.nv))
        for t in range(T):
            state = agent.get_state()
            qpos[t], qvel[t] = state.qpos, state.qvel
            # slide joints, no gravity or damping along them: a = u / m
            qacc[t] = policy.action(state.time) / mass
            agent.step()
        state = agent.get_state()
        qpos[T], qvel[T] = state.qpos, state.qvel

    assert state.time == pytest.approx(T * model.timestep)
    velocity, acceleration = configuration_to_velocity_acceleration(model, qpos)
    assert normalized_error(velocity, qvel, model.nv) < 1e-3
    assert normalized_error(acceleration, qacc, model.nv) < 1e-3
    assert np.all(np.abs(acceleration[1:T]) > 0.0)


def test_box_3d_free_joint():
    model = load_model(BOX_XML)
    assert (model.nq, model.nv) == (7, 6)

    qpos0 = [0.1, 0.2, 0.3, 1.0, 0.0, 0.0, 0.0]
    qvel0 = [0.4, 0.05, -0.22, 0.01, -0.03, 0.24]

    def controller(ctrl, time):
        ctrl[:] = 0.0

    qpos, qvel, qacc = simulate(model, controller, qpos0, qvel0)
    velocity, acceleration = configuration_to_velocity_acceleration(model, qpos)

    assert normalized_error(velocity, qvel, model.nv) < 1e-3
    assert normalized_error(acceleration, qacc, model.nv) < 1e-3


def test_explicit_timestep_scales_velocity():
    model = load_model(Particle().xml())
    configuration = np.array([[0.0, 0.0], [0.1, 0.0], [0.3, 0.0]])

    velocity, acceleration = configuration_to_velocity_acceleration(model, configuration, timestep=0.1)
    np.testing.assert_allclose(velocity[1:, 0], [1.0, 2.0])
    np.testing.assert_allclose(acceleration[1, 0], 10.0)


def test_wrong_configuration_width_rejected():
    model = load_model(Particle().xml())
    with pytest.raises(InvalidArgumentError):
        configuration_to_velocity_acceleration(model, np.zeros((4, 3)))
