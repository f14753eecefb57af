"""
RESIDUAL HOOK - Process-wide bridge from MuJoCo's sensor stage to task residuals

MuJoCo has exactly ONE global sensor callback slot (mjcb_sensor). The kernel
has no idea what a cost model is - this hook simulates one: when the kernel
reaches the acceleration stage of sensor evaluation for a model we know,
the owning task writes its residual into d.sensordata.

Pattern: explicit registry (model address -> owner + residual), like the
EventBus subscriber table, but keyed by the physics model that is calling.

    hook.bind(planning_model, task.residual, owner=agent)
    hook.bind(physics_model, task.residual, owner=agent)
    ...
    hook.unbind_owner(agent)   # slot cleared when nothing is left

Owners are held WEAKLY. An owner that is garbage-collected without
unbinding loses its bindings automatically.

Invariants:
- ONE dispatcher in the kernel slot. A foreign callback there is fatal.
- ONE owner per model handle. Binding someone else's model is fatal.
- Unknown models are ignored (no residual computed).
"""

import logging
import threading
import weakref
from typing import Any, Callable, Dict, List, NamedTuple

import mujoco

from ..errors import FatalConfigurationError
from .physics import PhysicsModel

logger = logging.getLogger(__name__)

ResidualFn = Callable[[mujoco.MjModel, mujoco.MjData, Any], None]

_STAGE_ACC = int(mujoco.mjtStage.mjSTAGE_ACC)


class _Binding(NamedTuple):
    owner_ref: weakref.ref
    residual: ResidualFn

    def owned_by(self, owner: Any) -> bool:
        return self.owner_ref() is owner


class ResidualHook:
    """Dispatcher installed into mujoco's sensor callback slot"""

    def __init__(self):
        # re-entrant: an owner can be collected (and unbound) while this thread holds the lock
        self._lock = threading.RLock()
        self._bindings: Dict[int, _Binding] = {}
        self._installed = False

    @property
    def installed(self) -> bool:
        """True while our dispatcher occupies the kernel slot"""
        return self._installed

    def bind(self, model: PhysicsModel, residual: ResidualFn, owner: Any):
        """Route residual evaluation for `model` to `residual`

        Args:
            owner: Any weak-referenceable object, held weakly

        Raises:
            FatalConfigurationError: model already owned by someone else,
                or the kernel slot holds a callback we did not install
        """
        with self._lock:
            existing = self._bindings.get(model.address)
            if existing is not None and not existing.owned_by(owner):
                raise FatalConfigurationError(
                    f"Physics model {model.address:#x} is already bound to {existing.owner_ref()!r}. "
                    f"Each model handle may feed exactly one task."
                )

            if not self._installed:
                if mujoco.get_mjcb_sensor() is not None:
                    raise FatalConfigurationError(
                        "MuJoCo sensor callback slot is already occupied by a foreign callback"
                    )
                mujoco.set_mjcb_sensor(self._dispatch)
                self._installed = True
                logger.debug("Residual hook installed")

            self._bindings[model.address] = _Binding(weakref.ref(owner, self._owner_collected), residual)

    def unbind(self, model: PhysicsModel):
        """Forget one model - clears the kernel slot if nothing is left"""
        with self._lock:
            self._bindings.pop(model.address, None)
            self._uninstall_if_empty()

    def unbind_owner(self, owner: Any):
        """Forget every model bound by `owner`"""
        with self._lock:
            for address in [a for a, b in self._bindings.items() if b.owned_by(owner)]:
                del self._bindings[address]
            self._uninstall_if_empty()

    def is_bound(self, model: PhysicsModel) -> bool:
        return model.address in self._bindings

    def owners(self) -> List[Any]:
        """Distinct live owners currently bound"""
        with self._lock:
            result = []
            for binding in self._bindings.values():
                owner = binding.owner_ref()
                if owner is not None and not any(owner is o for o in result):
                    result.append(owner)
            return result

    def _owner_collected(self, ref: weakref.ref):
        """Weakref callback - the owner died without unbinding"""
        with self._lock:
            dead = [a for a, b in self._bindings.items() if b.owner_ref() is None]
            for address in dead:
                del self._bindings[address]
            if dead:
                logger.debug("Dropped %d binding(s) of a collected owner", len(dead))
            self._uninstall_if_empty()

    def _uninstall_if_empty(self):
        # caller holds self._lock
        if self._installed and not self._bindings:
            mujoco.set_mjcb_sensor(None)
            self._installed = False
            logger.debug("Residual hook removed")

    def _dispatch(self, m: mujoco.MjModel, d: mujoco.MjData, stage: int):
        """Kernel callback - runs on whichever thread is stepping `m`"""
        if int(stage) != _STAGE_ACC:
            return
        # Plain dict read, no lock: bindings only change between sessions
        binding = self._bindings.get(m._address)
        if binding is None:
            return
        binding.residual(m, d, d.sensordata)


# Process-wide default - the kernel slot is process-wide too
RESIDUAL_HOOK = ResidualHook()
