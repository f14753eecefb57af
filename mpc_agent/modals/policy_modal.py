"""
POLICY MODAL - Open-loop spline policy + two-slot (current/previous) holder

Pattern:
- SplinePolicy is IMMUTABLE once published: planners build a new one per
  iteration instead of editing the live one.
- PolicyBuffer swaps (current, previous) with ONE tuple assignment, so a
  reader on another thread sees either the old pair or the new pair,
  never half of an update, and never waits for a lock.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

INTERPOLATIONS = ("zero", "linear")


@dataclass
class SplinePolicy:
    """Control knots over time

    times:      (K,) strictly increasing knot times
    parameters: (K, nu) control value at each knot
    """
    times: np.ndarray
    parameters: np.ndarray
    interpolation: str = "linear"

    def __post_init__(self):
        assert self.interpolation in INTERPOLATIONS, f"Unknown interpolation '{self.interpolation}'"
        assert self.parameters.ndim == 2 and self.parameters.shape[0] == self.times.shape[0], \
            "parameters must be (num_knots, nu)"

    @classmethod
    def zeros(cls, nu: int, num_knots: int, start_time: float, horizon: float,
              interpolation: str = "linear") -> "SplinePolicy":
        return cls(
            times=start_time + np.linspace(0.0, horizon, num_knots),
            parameters=np.zeros((num_knots, nu)),
            interpolation=interpolation,
        )

    @property
    def num_knots(self) -> int:
        return self.times.shape[0]

    @property
    def nu(self) -> int:
        return self.parameters.shape[1]

    @property
    def horizon(self) -> float:
        return float(self.times[-1] - self.times[0])

    def action(self, time: float) -> np.ndarray:
        """Control at `time` - clamped to the first/last knot outside the span"""
        times = self.times
        if time <= times[0]:
            return self.parameters[0].copy()
        if time >= times[-1]:
            return self.parameters[-1].copy()

        # knot interval [i, i+1] containing time
        i = int(np.searchsorted(times, time, side="right")) - 1
        if self.interpolation == "zero":
            return self.parameters[i].copy()

        s = (time - times[i]) / (times[i + 1] - times[i])
        return (1.0 - s) * self.parameters[i] + s * self.parameters[i + 1]

    def resample(self, start_time: float, horizon: Optional[float] = None) -> "SplinePolicy":
        """New policy whose knots start at start_time, values read off this one"""
        horizon = self.horizon if horizon is None else horizon
        times = start_time + np.linspace(0.0, horizon, self.num_knots)
        parameters = np.stack([self.action(t) for t in times])
        return SplinePolicy(times=times, parameters=parameters, interpolation=self.interpolation)

    def perturbed(self, noise: np.ndarray, low: np.ndarray = None, high: np.ndarray = None) -> "SplinePolicy":
        """Copy with noise added to every knot, optionally clipped per actuator"""
        parameters = self.parameters + noise
        if low is not None and high is not None:
            parameters = np.clip(parameters, low, high)
        return SplinePolicy(times=self.times.copy(), parameters=parameters, interpolation=self.interpolation)

    def copy(self) -> "SplinePolicy":
        return SplinePolicy(times=self.times.copy(), parameters=self.parameters.copy(),
                            interpolation=self.interpolation)


class PolicyBuffer:
    """Double buffer: `current` = latest iteration, `previous` = the one before"""

    def __init__(self, policy: SplinePolicy):
        self._slots: Tuple[SplinePolicy, SplinePolicy] = (policy, policy)

    @property
    def current(self) -> SplinePolicy:
        return self._slots[0]

    @property
    def previous(self) -> SplinePolicy:
        return self._slots[1]

    def read(self, use_previous: bool = False) -> SplinePolicy:
        slots = self._slots  # single read - both slots from the same publish
        return slots[1] if use_previous else slots[0]

    def publish(self, policy: SplinePolicy):
        """Make `policy` current, demote the old current to previous"""
        self._slots = (policy, self._slots[0])

    def reset(self, policy: SplinePolicy):
        """Both slots point at `policy`"""
        self._slots = (policy, policy)
