"""ResidualHook - explicit model -> residual routing through the sensor callback slot"""

import gc

import mujoco
import numpy as np
import pytest

from mpc_agent.errors import FatalConfigurationError
from mpc_agent.runtime.physics import forward
from mpc_agent.runtime.residual_hook import ResidualHook


class Owner:
    """Session stand-in, owners must be weak-referenceable"""


def constant_residual(value):
    def residual(m, d, out):
        out[:] = value
    return residual


def test_bind_installs_and_dispatches(particle_model):
    hook = ResidualHook()
    owner = Owner()
    try:
        hook.bind(particle_model, constant_residual(3.0), owner=owner)
        assert hook.installed
        assert hook.is_bound(particle_model)
        assert mujoco.get_mjcb_sensor() is not None

        with particle_model.make_state() as scratch:
            forward(particle_model, scratch)
            np.testing.assert_array_equal(scratch.data.sensordata, np.full(6, 3.0))
    finally:
        hook.unbind_owner(owner)

    assert not hook.installed
    assert mujoco.get_mjcb_sensor() is None


def test_unknown_model_is_ignored(particle_model):
    hook = ResidualHook()
    owner = Owner()
    other = particle_model.copy()
    try:
        hook.bind(particle_model, constant_residual(1.0), owner=owner)
        with other.make_state() as scratch:
            forward(other, scratch)
            np.testing.assert_array_equal(scratch.data.sensordata, np.zeros(6))
    finally:
        hook.unbind_owner(owner)


def test_two_owners_on_distinct_models(particle_model):
    hook = ResidualHook()
    first, second = Owner(), Owner()
    other = particle_model.copy()
    try:
        hook.bind(particle_model, constant_residual(1.0), owner=first)
        hook.bind(other, constant_residual(2.0), owner=second)
        assert len(hook.owners()) == 2

        with other.make_state() as scratch:
            forward(other, scratch)
            np.testing.assert_array_equal(scratch.data.sensordata, np.full(6, 2.0))

        # first leaves, second keeps working and the slot stays installed
        hook.unbind_owner(first)
        assert hook.installed
        assert not hook.is_bound(particle_model)
    finally:
        hook.unbind_owner(first)
        hook.unbind_owner(second)

    assert mujoco.get_mjcb_sensor() is None


def test_same_model_different_owner_is_fatal(particle_model):
    hook = ResidualHook()
    owner = Owner()
    try:
        hook.bind(particle_model, constant_residual(1.0), owner=owner)
        # rebinding by the same owner is fine
        hook.bind(particle_model, constant_residual(2.0), owner=owner)
        with pytest.raises(FatalConfigurationError):
            hook.bind(particle_model, constant_residual(3.0), owner=Owner())
    finally:
        hook.unbind_owner(owner)


def test_foreign_callback_in_slot_is_fatal(particle_model):
    def foreign(m, d, stage):
        pass

    mujoco.set_mjcb_sensor(foreign)
    try:
        with pytest.raises(FatalConfigurationError):
            ResidualHook().bind(particle_model, constant_residual(1.0), owner=Owner())
    finally:
        mujoco.set_mjcb_sensor(None)


def test_second_dispatcher_is_fatal(particle_model):
    first, second = ResidualHook(), ResidualHook()
    owner = Owner()
    try:
        first.bind(particle_model, constant_residual(1.0), owner=owner)
        with pytest.raises(FatalConfigurationError):
            second.bind(particle_model.copy(), constant_residual(1.0), owner=owner)
    finally:
        first.unbind_owner(owner)


def test_unbind_single_model(particle_model):
    hook = ResidualHook()
    owner = Owner()
    hook.bind(particle_model, constant_residual(1.0), owner=owner)
    hook.unbind(particle_model)
    assert not hook.installed
    assert hook.owners() == []


def test_collected_owner_is_dropped(particle_model):
    hook = ResidualHook()
    keeper, owner = Owner(), Owner()
    other = particle_model.copy()
    hook.bind(particle_model, constant_residual(1.0), owner=owner)
    hook.bind(other, constant_residual(2.0), owner=keeper)

    del owner
    gc.collect()
    assert not hook.is_bound(particle_model)
    assert hook.owners() == [keeper]
    assert hook.installed

    del keeper
    gc.collect()
    assert hook.owners() == []
    assert not hook.installed
    assert mujoco.get_mjcb_sensor() is None
