"""
FastAPI transport for the agent service
One POST route per agent operation, JSON bodies, errors as {code, message}
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..errors import AgentError
from .schemas import (
    ActionResponse,
    CostValuesAndWeightsResponse,
    CostWeightsRequest,
    CostWeightsResponse,
    EmptyResponse,
    GetActionRequest,
    InitRequest,
    ModeRequest,
    ModeResponse,
    SetStateRequest,
    StateBody,
    StateResponse,
    StepRequest,
    TaskParametersRequest,
    TaskParametersResponse,
    TasksResponse,
)
from .service import AgentService

logger = logging.getLogger(__name__)

# error code -> HTTP status
STATUS_CODES = {
    "INVALID_ARGUMENT": 400,
    "FAILED_PRECONDITION": 412,
    "INTERNAL": 500,
}


def create_app(service: Optional[AgentService] = None) -> FastAPI:
    """Build the app around `service` (a fresh one if None)"""
    service = service if service is not None else AgentService()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        logger.info("Shutting down - closing agent session")
        service.close()

    app = FastAPI(title="MPC Agent API", version="0.1.0", lifespan=lifespan)
    app.state.service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(AgentError)
    async def agent_error_handler(request: Request, exc: AgentError):
        status = STATUS_CODES.get(exc.code, 500)
        if status >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=status, content={"code": exc.code, "message": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"code": "INVALID_ARGUMENT", "message": str(exc.errors())})

    # ========== LIFECYCLE ==========

    @app.get("/tasks", response_model=TasksResponse)
    def list_tasks():
        return TasksResponse(tasks=service.list_tasks())

    @app.post("/init", response_model=EmptyResponse)
    def init(request: InitRequest):
        service.init(request.task_id, request.model_xml)
        return EmptyResponse()

    @app.post("/reset", response_model=EmptyResponse)
    def reset():
        service.reset()
        return EmptyResponse()

    # ========== STATE ==========

    @app.post("/state/get", response_model=StateResponse)
    def get_state():
        return StateResponse(state=StateBody(**service.get_state()))

    @app.post("/state/set", response_model=EmptyResponse)
    def set_state(request: SetStateRequest):
        service.set_state(request.state.model_dump(exclude_none=True))
        return EmptyResponse()

    # ========== PLAN / ACT ==========

    @app.post("/action", response_model=ActionResponse)
    def get_action(request: GetActionRequest):
        return ActionResponse(action=service.get_action(request.time, request.averaging_duration))

    @app.post("/planner_step", response_model=EmptyResponse)
    def planner_step():
        service.planner_step()
        return EmptyResponse()

    @app.post("/step", response_model=EmptyResponse)
    def step(request: StepRequest):
        service.step(request.use_previous_policy)
        return EmptyResponse()

    # ========== TUNABLES ==========

    @app.post("/task_parameters/get", response_model=TaskParametersResponse)
    def get_task_parameters():
        return TaskParametersResponse(parameters=service.get_task_parameters())

    @app.post("/task_parameters/set", response_model=EmptyResponse)
    def set_task_parameters(request: TaskParametersRequest):
        service.set_task_parameters(request.parameters)
        return EmptyResponse()

    @app.post("/cost_weights/get", response_model=CostWeightsResponse)
    def get_cost_weights():
        return CostWeightsResponse(cost_weights=service.get_cost_weights())

    @app.post("/cost_weights/set", response_model=EmptyResponse)
    def set_cost_weights(request: CostWeightsRequest):
        service.set_cost_weights(request.cost_weights, request.reset_to_default)
        return EmptyResponse()

    @app.post("/cost_values_and_weights", response_model=CostValuesAndWeightsResponse)
    def get_cost_values_and_weights():
        return CostValuesAndWeightsResponse(values_weights=service.get_cost_values_and_weights())

    @app.post("/mode/get", response_model=ModeResponse)
    def get_mode():
        return ModeResponse(mode=service.get_mode())

    @app.post("/mode/set", response_model=EmptyResponse)
    def set_mode(request: ModeRequest):
        service.set_mode(request.mode)
        return EmptyResponse()

    return app


app = create_app()
