"""
Agent Config - Pydantic models + JSON loader for agent/planner settings
OFFENSIVE: Crashes if config file missing or invalid

Pattern:
    config = load_agent_config("configs/particle.json")
    agent = Agent(config)
"""

import json
import os
from pathlib import Path
from typing import Dict, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

CONFIG_ENV_VAR = "MPC_AGENT_CONFIG"


class PlannerConfig(BaseModel):
    """Planner settings - shared by every planner variant"""
    name: str = "sampling"
    num_samples: int = 16
    num_knots: int = 5
    horizon: float = 0.5  # seconds
    noise_scale: float = 0.1  # fraction of each actuator's control range
    interpolation: Literal["zero", "linear"] = "linear"
    num_elites: int = 4  # cross_entropy only
    min_std: float = 0.01  # cross_entropy only
    seed: Optional[int] = 0

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        """OFFENSIVE: Crash on unknown planner"""
        allowed = ["sampling", "cross_entropy"]
        assert v in allowed, f"Invalid planner: {v}. Allowed: {allowed}"
        return v

    @field_validator("num_samples", "num_elites")
    @classmethod
    def validate_positive(cls, v):
        assert v >= 1, "must be >= 1"
        return v

    @field_validator("num_knots")
    @classmethod
    def validate_num_knots(cls, v):
        assert v >= 2, "a spline needs at least 2 knots"
        return v

    @field_validator("horizon")
    @classmethod
    def validate_horizon(cls, v):
        assert v > 0, "horizon must be positive"
        return v

    @field_validator("noise_scale", "min_std")
    @classmethod
    def validate_non_negative(cls, v):
        assert v >= 0, "must be non-negative"
        return v


class AgentConfig(BaseModel):
    """Complete agent configuration - OFFENSIVE validation"""
    num_threads: int = 4
    planning_timestep: Optional[float] = None  # applied to the planning model only
    planner: PlannerConfig = Field(default_factory=PlannerConfig)

    @field_validator("num_threads")
    @classmethod
    def validate_num_threads(cls, v):
        assert v >= 1, "num_threads must be >= 1"
        return v

    @field_validator("planning_timestep")
    @classmethod
    def validate_planning_timestep(cls, v):
        if v is not None:
            assert v > 0, "planning_timestep must be positive"
        return v


# Cache - load once, crash if invalid
_CONFIG_CACHE: Dict[str, AgentConfig] = {}


def load_agent_config(path: Optional[Union[str, Path]] = None) -> AgentConfig:
    """
    Load agent configuration from JSON file
    OFFENSIVE: Crashes if file missing or JSON invalid

    Args:
        path: JSON file. None falls back to $MPC_AGENT_CONFIG, then defaults.

    Returns:
        Validated AgentConfig

    Raises:
        FileNotFoundError: If config file doesn't exist
        json.JSONDecodeError: If JSON is malformed
        pydantic.ValidationError: If config schema is invalid
    """
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR)
        if not path:
            return AgentConfig()

    config_path = Path(path).resolve()
    key = str(config_path)

    if key in _CONFIG_CACHE:
        return _CONFIG_CACHE[key]

    data = json.loads(config_path.read_text(encoding="utf-8"))
    config = AgentConfig(**data)

    _CONFIG_CACHE[key] = config
    return config


def clear_cache():
    """Clear config cache - useful for testing or hot reload"""
    _CONFIG_CACHE.clear()
