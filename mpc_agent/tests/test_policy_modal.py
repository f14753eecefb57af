"""SplinePolicy evaluation and the current/previous double buffer"""

import numpy as np
import pytest

from mpc_agent.modals.policy_modal import PolicyBuffer, SplinePolicy


def make_policy(interpolation="linear"):
    return SplinePolicy(
        times=np.array([0.0, 1.0, 2.0]),
        parameters=np.array([[0.0, 1.0], [1.0, 0.0], [2.0, -1.0]]),
        interpolation=interpolation,
    )


def test_linear_interpolation_and_clamping():
    policy = make_policy()
    np.testing.assert_allclose(policy.action(0.5), [0.5, 0.5])
    np.testing.assert_allclose(policy.action(1.5), [1.5, -0.5])
    np.testing.assert_array_equal(policy.action(-1.0), [0.0, 1.0])
    np.testing.assert_array_equal(policy.action(5.0), [2.0, -1.0])


def test_zero_order_hold():
    policy = make_policy("zero")
    np.testing.assert_array_equal(policy.action(0.99), [0.0, 1.0])
    np.testing.assert_array_equal(policy.action(1.0), [1.0, 0.0])


def test_action_returns_a_copy():
    policy = make_policy()
    action = policy.action(-1.0)
    action[0] = 42.0
    assert policy.parameters[0, 0] == 0.0


def test_resample_at_same_start_is_exact():
    policy = make_policy()
    same = policy.resample(0.0)
    np.testing.assert_array_equal(same.times, policy.times)
    np.testing.assert_array_equal(same.parameters, policy.parameters)


def test_resample_shifts_knots():
    shifted = make_policy().resample(0.5, horizon=1.0)
    np.testing.assert_allclose(shifted.times, [0.5, 1.0, 1.5])
    np.testing.assert_allclose(shifted.parameters[:, 0], [0.5, 1.0, 1.5])


def test_perturbed_clips_per_actuator():
    policy = make_policy()
    noisy = policy.perturbed(np.full((3, 2), 10.0), low=np.array([-1.0, -1.0]), high=np.array([1.0, 1.5]))
    assert np.all(noisy.parameters[:, 0] == 1.0)
    assert np.all(noisy.parameters[:, 1] == 1.5)
    # original untouched
    assert policy.parameters[0, 0] == 0.0


def test_zeros_policy_shape():
    policy = SplinePolicy.zeros(nu=3, num_knots=4, start_time=2.0, horizon=0.3)
    assert policy.num_knots == 4
    assert policy.nu == 3
    assert policy.horizon == pytest.approx(0.3)
    np.testing.assert_array_equal(policy.action(2.1), np.zeros(3))


def test_buffer_publish_demotes_current():
    first, second, third = make_policy(), make_policy("zero"), make_policy()
    buffer = PolicyBuffer(first)
    assert buffer.current is first and buffer.previous is first

    buffer.publish(second)
    assert buffer.read() is second
    assert buffer.read(use_previous=True) is first

    buffer.publish(third)
    assert buffer.current is third
    assert buffer.previous is second

    buffer.reset(first)
    assert buffer.current is first and buffer.previous is first
