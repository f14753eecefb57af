"""
PHYSICS - MuJoCo model/scratch wrappers + kernel primitives
OFFENSIVE & ELEGANT: Model is shared read-only, scratch has exactly ONE owner

Pattern:
- PhysicsModel = immutable structure (bodies, sensors, actuators, timestep)
- PhysicsState = mutable MjData scratch bound to ONE PhysicsModel
- step()/forward() = the only kernel entry points the agent uses

Ownership:
- Agent owns the live PhysicsState used by step()/get_state()
- Every rollout job clones its OWN PhysicsState and releases it when done
"""

import copy
import logging
from typing import Optional, Tuple

import mujoco
import numpy as np

from ..errors import InternalError

logger = logging.getLogger(__name__)


def load_model(xml: str) -> "PhysicsModel":
    """Compile MJCF into a PhysicsModel - the model-loader collaborator

    Args:
        xml: Complete MuJoCo XML description

    Returns:
        PhysicsModel

    Raises:
        InternalError: If MuJoCo refuses to compile the XML
    """
    try:
        raw = mujoco.MjModel.from_xml_string(xml)
    except (ValueError, mujoco.FatalError) as e:
        raise InternalError(f"Failed to load model: {e}") from e
    return PhysicsModel(raw)


class PhysicsModel:
    """Read-only view over an MjModel

    Safe to share across worker threads by reference. Nothing in this
    package writes to the wrapped model after construction.
    """

    def __init__(self, raw: mujoco.MjModel):
        self._raw = raw

        # Actuator limits, unlimited actuators get (-inf, inf)
        low = np.full(raw.nu, -np.inf)
        high = np.full(raw.nu, np.inf)
        for i in range(raw.nu):
            if raw.actuator_ctrllimited[i]:
                low[i], high[i] = raw.actuator_ctrlrange[i]
        low.flags.writeable = False
        high.flags.writeable = False
        self._ctrl_range = (low, high)

    @property
    def raw(self) -> mujoco.MjModel:
        """Underlying MjModel - for kernel calls only, never mutate"""
        return self._raw

    @property
    def address(self) -> int:
        """Kernel-level identity of this model (what the sensor callback sees)"""
        return self._raw._address

    @property
    def nq(self) -> int:
        return self._raw.nq

    @property
    def nv(self) -> int:
        return self._raw.nv

    @property
    def nu(self) -> int:
        return self._raw.nu

    @property
    def na(self) -> int:
        return self._raw.na

    @property
    def nmocap(self) -> int:
        return self._raw.nmocap

    @property
    def nuserdata(self) -> int:
        return self._raw.nuserdata

    @property
    def nsensordata(self) -> int:
        return self._raw.nsensordata

    @property
    def timestep(self) -> float:
        return float(self._raw.opt.timestep)

    @property
    def ctrl_range(self) -> Tuple[np.ndarray, np.ndarray]:
        """(low, high) per actuator"""
        return self._ctrl_range

    def copy(self, timestep: Optional[float] = None) -> "PhysicsModel":
        """Independent kernel copy (new address), optionally with a new timestep

        The timestep is set on the copy BEFORE it is shared, so the
        read-only contract still holds.
        """
        raw = copy.deepcopy(self._raw)
        if timestep is not None:
            raw.opt.timestep = timestep
        return PhysicsModel(raw)

    def key_id(self, name: str) -> int:
        """Keyframe index by name (-1 if missing)"""
        return mujoco.mj_name2id(self._raw, mujoco.mjtObj.mjOBJ_KEY, name)

    def make_state(self) -> "PhysicsState":
        return PhysicsState(self)

    def __repr__(self) -> str:
        return f"PhysicsModel(nq={self.nq}, nv={self.nv}, nu={self.nu}, timestep={self.timestep})"


class PhysicsState:
    """Mutable MjData scratch - ONE owner at a time

    Usage:
        with model.make_state() as scratch:
            state.copy_to(model, scratch)
            step(model, scratch)
        # scratch released here, also on exceptions
    """

    def __init__(self, model: PhysicsModel):
        self.model = model
        self._data = mujoco.MjData(model.raw)

    @property
    def data(self) -> mujoco.MjData:
        """OFFENSIVE: Crashes if used after release()"""
        assert self._data is not None, "PhysicsState used after release()"
        return self._data

    @property
    def released(self) -> bool:
        return self._data is None

    def release(self):
        """Drop the kernel buffer - idempotent"""
        self._data = None

    def reset(self, keyframe: Optional[str] = None):
        """Reset to qpos0, or to a named keyframe if given

        Raises:
            ValueError: If the keyframe does not exist
        """
        if keyframe is None:
            mujoco.mj_resetData(self.model.raw, self.data)
            return

        key_id = self.model.key_id(keyframe)
        if key_id < 0:
            raise ValueError(f"Keyframe '{keyframe}' not found in model")
        mujoco.mj_resetDataKeyframe(self.model.raw, self.data, key_id)

    def __enter__(self) -> "PhysicsState":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False


# === KERNEL PRIMITIVES ===

def step(model: PhysicsModel, state: PhysicsState):
    """Advance scratch by one timestep"""
    mujoco.mj_step(model.raw, state.data)


def forward(model: PhysicsModel, state: PhysicsState):
    """Derive accelerations + sensors without advancing time"""
    mujoco.mj_forward(model.raw, state.data)


# kernel warnings that mean the data was auto-reset mid-step
_DIVERGENCE_WARNINGS = (
    int(mujoco.mjtWarning.mjWARN_BADQPOS),
    int(mujoco.mjtWarning.mjWARN_BADQVEL),
    int(mujoco.mjtWarning.mjWARN_BADQACC),
)


def has_diverged(state: PhysicsState) -> bool:
    """True if any of qpos/qvel/qacc is non-finite

    On bad qpos/qvel/qacc MuJoCo resets the data itself and only bumps a
    warning counter, so those counters count as divergence too. They stay
    set until the scratch is reset.
    """
    data = state.data
    if any(data.warning[w].number > 0 for w in _DIVERGENCE_WARNINGS):
        return True
    return not (
        np.all(np.isfinite(data.qpos))
        and np.all(np.isfinite(data.qvel))
        and np.all(np.isfinite(data.qacc))
    )
