"""Shared pytest fixtures for mpc_agent tests."""

import mujoco
import pytest

from mpc_agent.config import AgentConfig, PlannerConfig
from mpc_agent.runtime.agent import Agent
from mpc_agent.runtime.physics import load_model
from mpc_agent.runtime.residual_hook import RESIDUAL_HOOK
from mpc_agent.modals.tasks import Cartpole, Particle


@pytest.fixture(autouse=True)
def sensor_slot_is_free():
    """Every test starts and ends with MuJoCo's sensor callback slot empty."""
    assert mujoco.get_mjcb_sensor() is None, "previous test leaked a sensor callback"
    yield
    leaked = RESIDUAL_HOOK.owners()
    for owner in leaked:
        RESIDUAL_HOOK.unbind_owner(owner)
    assert not leaked, f"test left residual bindings behind: {leaked}"
    assert mujoco.get_mjcb_sensor() is None


@pytest.fixture
def small_config():
    """Few samples, short horizon - keeps planner tests fast."""
    return AgentConfig(
        num_threads=2,
        planner=PlannerConfig(num_samples=8, num_knots=3, horizon=0.2, seed=7),
    )


@pytest.fixture
def particle_task():
    return Particle()


@pytest.fixture
def particle_model(particle_task):
    return load_model(particle_task.xml())


@pytest.fixture
def cartpole_model():
    return load_model(Cartpole().xml())


@pytest.fixture
def agent(small_config):
    """Initialised Particle agent, closed after the test."""
    with Agent(small_config) as a:
        a.init("Particle")
        yield a
