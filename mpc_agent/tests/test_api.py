"""HTTP transport - routes, bodies, error mapping"""

import pytest
from fastapi.testclient import TestClient

from mpc_agent.config import AgentConfig, PlannerConfig
from mpc_agent.web.api import create_app
from mpc_agent.web.service import AgentService


@pytest.fixture
def client():
    config = AgentConfig(num_threads=2, planner=PlannerConfig(num_samples=4, num_knots=3, horizon=0.1))
    with TestClient(create_app(AgentService(config))) as c:
        yield c


@pytest.mark.parametrize("path", [
    "/reset", "/state/get", "/planner_step", "/task_parameters/get",
    "/cost_weights/get", "/cost_values_and_weights", "/mode/get",
])
def test_before_init_is_failed_precondition(client, path):
    response = client.post(path)
    assert response.status_code == 412
    assert response.json() == {"code": "FAILED_PRECONDITION", "message": "Init not called."}


def test_list_tasks(client):
    response = client.get("/tasks")
    assert response.status_code == 200
    assert response.json()["tasks"] == ["Cartpole", "Particle"]


def test_unknown_task_is_invalid_argument(client):
    response = client.post("/init", json={"task_id": "Humanoid"})
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_ARGUMENT"


def test_bad_xml_is_internal(client):
    response = client.post("/init", json={"task_id": "Particle", "model_xml": "<mujoco>"})
    assert response.status_code == 500
    assert response.json()["code"] == "INTERNAL"


def test_malformed_body_is_invalid_argument(client):
    response = client.post("/init", json={"task": "Particle"})
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_ARGUMENT"


def test_session_round_trip(client):
    assert client.post("/init", json={"task_id": "Particle"}).status_code == 200

    state = client.post("/state/get").json()["state"]
    assert state["qpos"] == [0.0, 0.0]
    assert state["mocap_pos"] == [[0.25, 0.0, 0.01]]

    response = client.post("/state/set", json={"state": {"qpos": [0.1, 0.2], "time": 1.0}})
    assert response.status_code == 200
    state = client.post("/state/get").json()["state"]
    assert state["qpos"] == [0.1, 0.2]
    assert state["time"] == 1.0

    response = client.post("/state/set", json={"state": {"qpos": [0.1]}})
    assert response.status_code == 400

    assert client.post("/planner_step").status_code == 200
    assert client.post("/step", json={"use_previous_policy": False}).status_code == 200
    assert client.post("/state/get").json()["state"]["time"] == pytest.approx(1.01)

    action = client.post("/action", json={"averaging_duration": 0.0}).json()["action"]
    assert len(action) == 2
    assert all(-1.0 <= a <= 1.0 for a in action)


def test_tunables(client):
    client.post("/init", json={"task_id": "Particle"})

    assert client.post("/task_parameters/set", json={"parameters": {"goal_x": 0.0}}).status_code == 200
    assert client.post("/task_parameters/get").json()["parameters"]["goal_x"] == 0.0
    assert client.post("/task_parameters/set", json={"parameters": {"nope": 1.0}}).status_code == 400

    response = client.post("/cost_weights/set", json={"cost_weights": {"position": 2.0}})
    assert response.status_code == 200
    assert client.post("/cost_weights/get").json()["cost_weights"] == {"position": 2.0, "velocity": 0.1, "control": 0.1}
    values = client.post("/cost_values_and_weights").json()["values_weights"]
    assert values["position"]["weight"] == 2.0

    response = client.post("/cost_weights/set", json={"cost_weights": {}, "reset_to_default": True})
    assert response.status_code == 200
    assert client.post("/cost_weights/get").json()["cost_weights"]["position"] == 5.0
    values = client.post("/cost_values_and_weights").json()["values_weights"]
    assert values["position"]["weight"] == 5.0

    assert client.post("/mode/set", json={"mode": "track"}).status_code == 200
    assert client.post("/mode/get").json() == {"mode": "track"}
    assert client.post("/mode/set", json={"mode": "dance"}).status_code == 400


def test_shutdown_closes_session():
    service = AgentService(AgentConfig(num_threads=1))
    with TestClient(create_app(service)) as client:
        client.post("/init", json={"task_id": "Cartpole"})
        assert service.agent.initialized

    assert not service.agent.initialized
