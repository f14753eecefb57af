"""
AgentState - Transferable snapshot of the physics scratch

PURE MOP:
- SELF-CAPTURING: set() reads qpos/qvel/act/mocap/userdata/time out of MjData
- SELF-APPLYING: copy_to() writes the same fields back into MjData
- SELF-SERIALIZING: to_dict()/from_dict() for the remote interface

This pair is the ONLY channel between the plan half, the act half and the
service. Solver internals (qacc_warmstart, contacts, ...) never leave MjData.

Invariant: copy_to() followed by set() round-trips bit-for-bit.
"""

from dataclasses import dataclass, field
from typing import Any, Dict

import numpy as np

from ..errors import InvalidArgumentError
from ..runtime.physics import PhysicsModel, PhysicsState

# field name -> shape builder from model sizes
_FIELD_SHAPES = {
    "qpos": lambda m: (m.nq,),
    "qvel": lambda m: (m.nv,),
    "act": lambda m: (m.na,),
    "mocap_pos": lambda m: (m.nmocap, 3),
    "mocap_quat": lambda m: (m.nmocap, 4),
    "userdata": lambda m: (m.nuserdata,),
}


@dataclass
class AgentState:
    """Snapshot of one simulation instant

    Usage:
        state = AgentState.from_model(model)
        state.set(model, scratch)        # capture
        state.copy_to(model, scratch)    # apply
    """

    qpos: np.ndarray
    qvel: np.ndarray
    act: np.ndarray
    mocap_pos: np.ndarray
    mocap_quat: np.ndarray
    userdata: np.ndarray
    time: float = 0.0

    @classmethod
    def from_model(cls, model: PhysicsModel) -> "AgentState":
        """Zero-filled snapshot sized for `model`"""
        arrays = {name: np.zeros(shape(model)) for name, shape in _FIELD_SHAPES.items()}
        return cls(time=0.0, **arrays)

    @classmethod
    def capture(cls, model: PhysicsModel, scratch: PhysicsState) -> "AgentState":
        """New snapshot read from scratch"""
        state = cls.from_model(model)
        state.set(model, scratch)
        return state

    # === TRANSFER ===

    def copy_to(self, model: PhysicsModel, scratch: PhysicsState):
        """Write every declared field INTO scratch"""
        data = scratch.data
        data.qpos[:] = self.qpos
        data.qvel[:] = self.qvel
        data.act[:] = self.act
        data.mocap_pos[:] = self.mocap_pos
        data.mocap_quat[:] = self.mocap_quat
        data.userdata[:] = self.userdata
        data.time = self.time

    def set(self, model: PhysicsModel, scratch: PhysicsState):
        """Read every declared field OUT OF scratch"""
        data = scratch.data
        self.qpos = data.qpos.copy()
        self.qvel = data.qvel.copy()
        self.act = data.act.copy()
        self.mocap_pos = data.mocap_pos.copy()
        self.mocap_quat = data.mocap_quat.copy()
        self.userdata = data.userdata.copy()
        self.time = float(data.time)

    # === ACCESS ===

    @property
    def state_vector(self) -> np.ndarray:
        """(qpos, qvel, act) - what a policy is queried with"""
        return np.concatenate([self.qpos, self.qvel, self.act])

    def copy(self) -> "AgentState":
        return AgentState(
            qpos=self.qpos.copy(),
            qvel=self.qvel.copy(),
            act=self.act.copy(),
            mocap_pos=self.mocap_pos.copy(),
            mocap_quat=self.mocap_quat.copy(),
            userdata=self.userdata.copy(),
            time=self.time,
        )

    def update(self, **fields: Any):
        """Overwrite a subset of fields - sizes must match exactly

        Raises:
            InvalidArgumentError: unknown field or wrong number of values
        """
        for name, value in fields.items():
            if value is None:
                continue
            if name == "time":
                self.time = float(value)
                continue
            if name not in _FIELD_SHAPES:
                raise InvalidArgumentError(f"Unknown state field: '{name}'")

            current = getattr(self, name)
            array = np.asarray(value, dtype=np.float64)
            if array.size != current.size:
                raise InvalidArgumentError(
                    f"State field '{name}' expects {current.size} values, got {array.size}"
                )
            setattr(self, name, array.reshape(current.shape).copy())

    def equals(self, other: "AgentState") -> bool:
        """Bit-for-bit equality over every declared field"""
        return self.time == other.time and all(
            np.array_equal(getattr(self, name), getattr(other, name)) for name in _FIELD_SHAPES
        )

    # === SERIALIZATION ===

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {name: getattr(self, name).tolist() for name in _FIELD_SHAPES}
        result["time"] = self.time
        return result

    @classmethod
    def from_dict(cls, model: PhysicsModel, data: Dict[str, Any]) -> "AgentState":
        """Sized for `model`, missing fields stay zero"""
        state = cls.from_model(model)
        state.update(**data)
        return state
