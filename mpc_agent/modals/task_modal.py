"""
TASK MODAL - Cost residuals, weights, parameters and modes of one control problem

Pattern: Task IS the cost model the physics kernel lacks
- xml()        -> MJCF with one user sensor per cost term (residual slots first)
- residual()   -> writes the residual into those slots (worker threads call this!)
- transition() -> mode / phase logic (foreground thread ONLY)
- cost()       -> weighted sum of per-term norms

Concurrency: residual() READS weights/parameters from many threads at once.
Mutating them (set_cost_weights/set_parameters/set_mode) while a planning
iteration is in flight is NOT allowed - callers serialise (AgentService does).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import ClassVar, Dict, List, Mapping, Optional, Tuple

import mujoco
import numpy as np

from ..errors import InvalidArgumentError

NORMS = ("quadratic", "l2", "l1")


@dataclass
class CostTerm:
    """One residual segment and how it is scored

    Usage:
        CostTerm("position", dim=2, weight=5.0)                       # 0.5 * |r|^2
        CostTerm("velocity", dim=2, weight=0.1, norm="l2", norm_parameter=0.05)
    """
    name: str
    dim: int
    weight: float
    norm: str = "quadratic"
    norm_parameter: float = 0.1  # smoothing for "l2"

    def __post_init__(self):
        """Self-validation - OFFENSIVE"""
        if self.dim < 1:
            raise ValueError(f"Cost term '{self.name}' needs dim >= 1, got {self.dim}")
        if self.norm not in NORMS:
            raise ValueError(f"Cost term '{self.name}': unknown norm '{self.norm}'. Allowed: {NORMS}")

    def value(self, residual: np.ndarray) -> float:
        """Unweighted norm of this term's residual segment"""
        if self.norm == "quadratic":
            return 0.5 * float(np.dot(residual, residual))
        if self.norm == "l2":
            p = self.norm_parameter
            return float(np.sqrt(np.dot(residual, residual) + p * p) - p)
        return float(np.sum(np.abs(residual)))


class Task(ABC):
    """Base class for every control problem

    Subclasses declare name/modes/default_parameters and implement
    xml(), cost_terms() and residual(). transition() is optional.
    """

    name: ClassVar[str] = ""
    modes: ClassVar[Tuple[str, ...]] = ("default",)
    default_parameters: ClassVar[Dict[str, float]] = {}

    def __init__(self):
        self.terms: List[CostTerm] = self.cost_terms()
        self._default_weights = {term.name: term.weight for term in self.terms}
        self.parameters: Dict[str, float] = dict(self.default_parameters)
        self.mode = 0

        # residual slot offsets, in declaration order
        self._offsets = []
        offset = 0
        for term in self.terms:
            self._offsets.append(offset)
            offset += term.dim
        self.num_residual = offset

    # === SUBCLASS CONTRACT ===

    @abstractmethod
    def xml(self) -> str:
        """MJCF of this task's model - user sensors first, 'home' keyframe"""

    @abstractmethod
    def cost_terms(self) -> List[CostTerm]:
        """Declared residual terms (defaults for weights)"""

    @abstractmethod
    def residual(self, model: mujoco.MjModel, data: mujoco.MjData, out: np.ndarray):
        """Write num_residual values into out - pure function of data"""

    def transition(self, model: mujoco.MjModel, data: mujoco.MjData):
        """Mode / phase advance - foreground thread only"""

    # === LIFECYCLE ===

    def reset(self):
        """Back to default weights, parameters and mode"""
        for term in self.terms:
            term.weight = self._default_weights[term.name]
        self.parameters = dict(self.default_parameters)
        self.mode = 0

    # === COST ===

    def _segments(self, residual: np.ndarray):
        for term, offset in zip(self.terms, self._offsets):
            yield term, residual[offset:offset + term.dim]

    def cost(self, residual: np.ndarray) -> float:
        """Weighted sum of term norms"""
        total = 0.0
        for term, segment in self._segments(residual):
            total += term.weight * term.value(segment)
        return total

    def cost_values(self, residual: np.ndarray) -> Dict[str, Dict[str, float]]:
        """Per-term breakdown: {name: {"value": norm, "weight": w}}"""
        return {
            term.name: {"value": term.value(segment), "weight": term.weight}
            for term, segment in self._segments(residual)
        }

    # === TUNABLES ===

    @property
    def cost_weights(self) -> Dict[str, float]:
        return {term.name: term.weight for term in self.terms}

    def set_cost_weights(self, weights: Mapping[str, float], reset_to_default: bool = False):
        """Update weights by term name

        Raises:
            InvalidArgumentError: unknown term name (nothing is changed)
        """
        by_name = {term.name: term for term in self.terms}
        unknown = [name for name in weights if name not in by_name]
        if unknown:
            raise InvalidArgumentError(
                f"Unknown cost term(s) {unknown} for task '{self.name}'. Available: {list(by_name)}"
            )

        if reset_to_default:
            for term in self.terms:
                term.weight = self._default_weights[term.name]
        for name, weight in weights.items():
            by_name[name].weight = float(weight)

    def set_parameters(self, values: Mapping[str, float]):
        """Update task parameters by name

        Raises:
            InvalidArgumentError: unknown parameter name (nothing is changed)
        """
        unknown = [name for name in values if name not in self.parameters]
        if unknown:
            raise InvalidArgumentError(
                f"Unknown parameter(s) {unknown} for task '{self.name}'. Available: {list(self.parameters)}"
            )
        for name, value in values.items():
            self.parameters[name] = float(value)

    @property
    def mode_name(self) -> str:
        return self.modes[self.mode]

    def set_mode(self, name: str):
        """Raises InvalidArgumentError on unknown mode"""
        if name not in self.modes:
            raise InvalidArgumentError(f"Unknown mode '{name}' for task '{self.name}'. Available: {list(self.modes)}")
        self.mode = self.modes.index(name)

    def term(self, name: str) -> Optional[CostTerm]:
        for term in self.terms:
            if term.name == name:
                return term
        return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(mode={self.mode_name!r}, terms={[t.name for t in self.terms]})"
