import pytest
from fastapi.testclient import TestClient
import time
from quantumtask.main import app, store
from quantumtask.websockets import manager

client = TestClient(app)

@pytest.fixture
def workflow():
    # Setup
    client.post("/api/workflows", json={"name": "test_wf"})
    client.post("/api/workflows/test_wf/nodes", json={"type": "error_handler", "id": "handler-1", "description": "Handle errors"})
    client.post("/api/workflows/test_wf/nodes", json={"type": "ai_image_generation", "id": "image-1"})
    yield "test_wf"
    # Teardown
    if "test_wf" in store.list_workflows():
        store.delete_workflow("test_wf")

def test_list_node_kinds():
    response = client.get("/api/nodes")
    assert response.status_code == 200
    kinds = {n["type"]: n for n in response.json()}
    assert set(kinds) == {"proxy", "ai_image_generation", "error_handler"}
    assert kinds["ai_image_generation"]["defaults"]["imageSize"] == "512x512"

def test_default_workflow_exists():
    response = client.get("/api/workflows")
    assert response.status_code == 200
    assert "default" in response.json()

def test_create_duplicate_workflow(workflow):
    response = client.post("/api/workflows", json={"name": workflow})
    assert response.status_code == 400

def test_add_and_get_node(workflow):
    response = client.post(f"/api/workflows/{workflow}/nodes", json={"type": "proxy", "position": {"x": 10, "y": 20}})
    assert response.status_code == 200
    node = response.json()
    assert node["data"]["config"]["port"] == 433

    response = client.get(f"/api/workflows/{workflow}/nodes/{node['id']}")
    assert response.json()["position"] == {"x": 10.0, "y": 20.0}

    response = client.post(f"/api/workflows/{workflow}/nodes", json={"type": "cron"})
    assert response.status_code == 400

def test_rejected_save_returns_first_error(workflow):
    before = client.get(f"/api/workflows/{workflow}/nodes/handler-1").json()

    response = client.put(f"/api/workflows/{workflow}/nodes/handler-1/config",
                          json={"changes": {"errorAction": "retry", "maxRetries": "-1"}})
    assert response.status_code == 400
    assert response.json()["detail"] == "Max retries must be a non-negative number"

    after = client.get(f"/api/workflows/{workflow}/nodes/handler-1").json()
    assert after == before

def test_successful_save(workflow):
    response = client.put(f"/api/workflows/{workflow}/nodes/image-1/config",
                          json={"changes": {"description": "Cover", "prompt": "a fox", "timeout": "3000"}})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["description"] == "Cover"
    assert data["config"]["timeout"] == 3000
    assert data["config"]["isEnabled"] is True

def test_unknown_config_field(workflow):
    response = client.put(f"/api/workflows/{workflow}/nodes/image-1/config",
                          json={"changes": {"colour": "red"}})
    assert response.status_code == 400

def test_toggle_twice(workflow):
    assert client.post(f"/api/workflows/{workflow}/nodes/image-1/toggle").json()["enabled"] is False
    assert client.post(f"/api/workflows/{workflow}/nodes/image-1/toggle").json()["enabled"] is True

def test_delete_node(workflow):
    client.post(f"/api/workflows/{workflow}/edges", json={"source": "handler-1", "sourceHandle": "failure", "target": "image-1"})

    response = client.delete(f"/api/workflows/{workflow}/nodes/image-1")
    assert response.status_code == 200

    graph = client.get(f"/api/workflows/{workflow}").json()
    assert [n["id"] for n in graph["nodes"]] == ["handler-1"]
    assert graph["edges"] == []

    response = client.delete(f"/api/workflows/{workflow}/nodes/image-1")
    assert response.status_code == 404

def test_edges(workflow):
    edge = {"source": "handler-1", "sourceHandle": "success", "target": "image-1"}
    assert client.post(f"/api/workflows/{workflow}/edges", json=edge).status_code == 200
    assert client.post(f"/api/workflows/{workflow}/edges", json=edge).status_code == 400

    bad = {"source": "handler-1", "sourceHandle": "maybe", "target": "image-1"}
    assert client.post(f"/api/workflows/{workflow}/edges", json=bad).status_code == 400

    response = client.request("DELETE", f"/api/workflows/{workflow}/edges", json=edge)
    assert response.status_code == 200
    assert client.get(f"/api/workflows/{workflow}").json()["edges"] == []

def test_status_projection(workflow):
    url = f"/api/workflows/{workflow}/nodes/image-1"
    assert client.get(f"{url}/status").json()["status"] == "idle"
    assert client.post(f"{url}/result", json={"error": "X"}).json()["status"] == "error"
    assert client.post(f"{url}/result", json={"output": {}}).json()["status"] == "running"
    assert client.post(f"{url}/result", json={}).json()["status"] == "idle"

def test_save_whole_workflow():
    wf = {
        "nodes": [{"id": "p", "type": "proxy", "data": {"config": {"host": "socks5://h"}}},
                  {"id": "h", "type": "error_handler"}],
        "edges": [{"source": "p", "target": "h"}],
    }
    response = client.put("/api/workflows/imported", json=wf)
    assert response.status_code == 200
    assert response.json()["nodes"][0]["data"]["config"]["port"] == 433

    assert client.delete("/api/workflows/imported").status_code == 200
    assert client.get("/api/workflows/imported").status_code == 404

def test_missing_workflow():
    assert client.get("/api/workflows/nope/nodes/x").status_code == 404
    assert client.post("/api/workflows/nope/nodes", json={"type": "proxy"}).status_code == 404

def test_logs_capture_rejected_save(workflow):
    client.put(f"/api/workflows/{workflow}/nodes/handler-1/config", json={"changes": {"timeout": "soon"}})
    logs = client.get("/api/logs").json()
    assert any("Timeout must be a non-negative number" in line for line in logs)

def test_websocket_receives_events(workflow):
    with TestClient(app) as live_client:
        with live_client.websocket_connect("/api/ws") as ws:
            for _ in range(50):
                if manager.active_connections:
                    break
                time.sleep(0.01)
            live_client.post(f"/api/workflows/{workflow}/nodes/handler-1/toggle")
            message = ws.receive_json()
            assert message["type"] == "node_updated"
            assert message["payload"]["node_id"] == "handler-1"

def test_non_text_proxy_fields(workflow):
    client.post(f"/api/workflows/{workflow}/nodes", json={"type": "proxy", "id": "p1"})

    response = client.put(f"/api/workflows/{workflow}/nodes/p1/config", json={"changes": {"host": 123}})
    assert response.status_code == 400
    assert response.json()["detail"] == "Host must be text"

    response = client.put(f"/api/workflows/{workflow}/nodes/p1/config", json={"changes": {"description": 42}})
    assert response.status_code == 400
    assert response.json()["detail"] == "Description must be text"

    assert client.get(f"/api/workflows/{workflow}/nodes/p1").json()["data"]["description"] == ""

def test_import_rejects_bad_config_values():
    wf = {"nodes": [{"id": "h", "type": "error_handler",
                     "data": {"config": {"errorAction": "retry", "maxRetries": -5}}}]}
    response = client.put("/api/workflows/broken", json=wf)
    assert response.status_code == 400
    assert response.json()["detail"] == "Node h: Max retries must be a non-negative number"
    assert "broken" not in client.get("/api/workflows").json()

def test_edge_handle_spellings(workflow):
    edge = {"source": "handler-1", "sourceHandle": "success", "target": "image-1"}
    response = client.post(f"/api/workflows/{workflow}/edges", json=edge)
    assert response.status_code == 200

    alias = {"source": "handler-1", "sourceHandle": "out-success", "target": "image-1", "targetHandle": "in-default"}
    assert client.post(f"/api/workflows/{workflow}/edges", json=alias).status_code == 400
    assert client.request("DELETE", f"/api/workflows/{workflow}/edges", json=alias).status_code == 200
    assert client.get(f"/api/workflows/{workflow}").json()["edges"] == []

def test_status_polls_do_not_log(workflow):
    url = f"/api/workflows/{workflow}/nodes/image-1"
    client.post(f"{url}/result", json={"error": "renderer crashed 7f3a"})

    def count():
        return sum("renderer crashed 7f3a" in line for line in client.get("/api/logs").json())

    logged = count()
    assert logged == 1
    for _ in range(3):
        assert client.get(f"{url}/status").json()["status"] == "error"
    assert count() == logged
