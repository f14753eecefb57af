"""
Request/response bodies of the remote interface
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class InitRequest(BaseModel):
    task_id: str
    model_xml: Optional[str] = None  # overrides the task's own MJCF


class StateBody(BaseModel):
    """Any subset of the state fields - omitted fields are left unchanged"""
    qpos: Optional[List[float]] = None
    qvel: Optional[List[float]] = None
    act: Optional[List[float]] = None
    mocap_pos: Optional[List[List[float]]] = None
    mocap_quat: Optional[List[List[float]]] = None
    userdata: Optional[List[float]] = None
    time: Optional[float] = None


class SetStateRequest(BaseModel):
    state: StateBody


class StateResponse(BaseModel):
    state: StateBody


class GetActionRequest(BaseModel):
    time: Optional[float] = None
    averaging_duration: float = 0.0


class ActionResponse(BaseModel):
    action: List[float]


class StepRequest(BaseModel):
    use_previous_policy: bool = False


class TaskParametersRequest(BaseModel):
    parameters: Dict[str, float] = Field(default_factory=dict)


class TaskParametersResponse(BaseModel):
    parameters: Dict[str, float]


class CostWeightsRequest(BaseModel):
    cost_weights: Dict[str, float] = Field(default_factory=dict)
    reset_to_default: bool = False


class CostWeightsResponse(BaseModel):
    cost_weights: Dict[str, float]


class CostTermValue(BaseModel):
    value: float
    weight: float


class CostValuesAndWeightsResponse(BaseModel):
    values_weights: Dict[str, CostTermValue]


class ModeRequest(BaseModel):
    mode: str


class ModeResponse(BaseModel):
    mode: str


class TasksResponse(BaseModel):
    tasks: List[str]


class EmptyResponse(BaseModel):
    pass


class ErrorResponse(BaseModel):
    code: str
    message: str
