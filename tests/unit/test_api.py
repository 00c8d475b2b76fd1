"""Unit tests for the REST API."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from rollout_agent.a2a.tasks import InMemoryTaskStore, RequestContext, TaskUpdater
from rollout_agent.a2a.types import TaskState
from rollout_agent.api import app, get_config, get_engine, get_task_store
from rollout_agent.config import Config

ABORT_ANSWER = "## Root Cause\nDisk full\n## Remediation\nExpand volume\nDo not promote"


@pytest.fixture
def engine():
    mock = MagicMock()
    mock.chat = AsyncMock(return_value=ABORT_ANSWER)
    mock.chat_once = AsyncMock(return_value=ABORT_ANSWER)
    return mock


@pytest.fixture
def store():
    return InMemoryTaskStore()


@pytest.fixture
def client(engine, store):
    config = Config(_env_file=None, llm_use_azure=False)
    app.dependency_overrides[get_engine] = lambda: engine
    app.dependency_overrides[get_task_store] = lambda: store
    app.dependency_overrides[get_config] = lambda: config
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
    if hasattr(app.state, "promote_on_error"):
        del app.state.promote_on_error


def task_request(text="Analyze the canary", metadata=None, **extra):
    body = {"message": {"parts": [{"kind": "text", "text": text}], "metadata": metadata or {}}}
    body.update(extra)
    return body


class TestHealthAndCard:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_agent_card(self, client):
        response = client.get("/.well-known/agent.json")

        assert response.status_code == 200
        card = response.json()
        assert card["url"].endswith("/a2a")
        assert card["skills"][0]["id"] == "kubernetes-analysis"

    def test_unknown_endpoint(self, client):
        response = client.get("/nope")

        assert response.status_code == 404
        assert response.json() == {"error": "Endpoint not found"}


class TestAnalyze:
    def test_analyze(self, client, engine):
        response = client.post("/a2a/analyze", json={"prompt": "Analyze", "userId": "u1"})

        assert response.status_code == 200
        data = response.json()
        assert data["promote"] is False
        assert data["confidence"] == 50
        assert "Disk full" in data["rootCause"]
        assert engine.chat.await_args.args[0] == "u1"

    def test_analyze_engine_failure(self, client, engine):
        engine.chat.side_effect = RuntimeError("model unavailable")

        response = client.post("/a2a/analyze", json={"prompt": "Analyze", "memoryId": "m1"})

        assert response.status_code == 500
        data = response.json()
        assert data["promote"] is True
        assert data["confidence"] == 0
        assert data["rootCause"] == "Analysis failed"

    def test_unhandled_error_returns_system_error_decision(self, client):
        def broken_engine():
            raise RuntimeError("no credentials")

        app.dependency_overrides[get_engine] = broken_engine

        response = client.post("/a2a/analyze", json={"prompt": "Analyze"})

        assert response.status_code == 500
        data = response.json()
        assert data["rootCause"] == "System error: RuntimeError"
        assert data["confidence"] == 0

    def test_unhandled_error_uses_verdict_read_at_startup(self, client):
        def broken_engine():
            raise RuntimeError("no credentials")

        app.dependency_overrides[get_engine] = broken_engine
        fail_closed = Config(_env_file=None, llm_use_azure=False, promote_on_error=False)

        with patch("rollout_agent.api.get_config", return_value=fail_closed):
            with TestClient(app, raise_server_exceptions=False) as started:
                response = started.post("/a2a/analyze", json={"prompt": "Analyze"})

        assert response.status_code == 500
        assert response.json()["promote"] is False
        assert app.state.promote_on_error is False

    def test_numeric_memory_id(self, client, engine):
        response = client.post("/a2a/analyze", json={"prompt": "Analyze", "memoryId": 42})

        assert response.status_code == 200
        assert engine.chat.await_args.args[0] == "42"


class TestTasks:
    def test_send_task(self, client, store):
        response = client.post("/a2a/tasks", json=task_request(metadata={"memoryId": "m1"}))

        assert response.status_code == 200
        data = response.json()
        assert data["status"]["state"] == "completed"
        assert len(data["artifacts"]) == 1
        decision = data["artifacts"][0]["parts"][1]["data"]
        assert decision["promote"] is False
        assert store.get(data["id"]) is not None

    def test_get_task(self, client):
        task_id = client.post("/a2a/tasks", json=task_request()).json()["id"]

        response = client.get(f"/a2a/tasks/{task_id}")

        assert response.status_code == 200
        assert response.json()["id"] == task_id

    def test_get_unknown_task(self, client):
        response = client.get("/a2a/tasks/missing")

        assert response.status_code == 404

    def test_follow_up_on_unknown_task(self, client):
        response = client.post("/a2a/tasks", json=task_request(taskId="missing"))

        assert response.status_code == 404

    def test_follow_up_on_completed_task_rejected(self, client):
        task_id = client.post("/a2a/tasks", json=task_request()).json()["id"]

        response = client.post("/a2a/tasks", json=task_request(taskId=task_id))

        assert response.status_code == 409

    def test_follow_up_on_submitted_task(self, client, engine, store):
        TaskUpdater(RequestContext(task_id="t1"), task_store=store).submit()

        response = client.post("/a2a/tasks", json=task_request(taskId="t1"))

        assert response.status_code == 200
        assert response.json()["status"]["state"] == "completed"
        assert engine.chat.await_args.args[0] == "t1"

    def test_follow_up_on_working_task_rejected(self, client, engine, store):
        updater = TaskUpdater(RequestContext(task_id="t1"), task_store=store)
        updater.submit()
        updater.start_work()

        response = client.post("/a2a/tasks", json=task_request(taskId="t1"))

        assert response.status_code == 409
        assert response.json()["state"] == "working"
        engine.chat.assert_not_awaited()
        assert store.get("t1").state is TaskState.WORKING

    def test_cancel_completed_task(self, client):
        task_id = client.post("/a2a/tasks", json=task_request()).json()["id"]

        response = client.post(f"/a2a/tasks/{task_id}/cancel")

        assert response.status_code == 409
        assert response.json()["state"] == "completed"

    def test_cancel_working_task(self, client, store):
        updater = TaskUpdater(RequestContext(task_id="t1"), task_store=store)
        updater.submit()
        updater.start_work()

        response = client.post("/a2a/tasks/t1/cancel")

        assert response.status_code == 200
        assert response.json()["status"]["state"] == "canceled"
        assert store.get("t1").state is TaskState.CANCELED

    def test_cancel_unknown_task(self, client):
        response = client.post("/a2a/tasks/missing/cancel")

        assert response.status_code == 404

    def test_task_events(self, client):
        task_id = client.post("/a2a/tasks", json=task_request()).json()["id"]

        events = client.get(f"/a2a/tasks/{task_id}/events").json()

        assert [e["kind"] for e in events] == ["status-update", "status-update", "artifact-update", "status-update"]
        assert [e["status"]["state"] for e in events if e["kind"] == "status-update"] == [
            "submitted",
            "working",
            "completed",
        ]
        assert events[-1]["final"] is True
        assert client.get(f"/a2a/tasks/{task_id}/events").json() == []

    def test_cancel_event_lands_on_task_queue(self, client, store):
        updater = TaskUpdater(RequestContext(task_id="t1"), store.queue_for("t1"), store)
        updater.submit()
        updater.start_work()

        client.post("/a2a/tasks/t1/cancel")

        events = store.queue_for("t1").drain()
        assert [e.status.state for e in events] == [TaskState.SUBMITTED, TaskState.WORKING, TaskState.CANCELED]

    def test_events_for_unknown_task(self, client):
        response = client.get("/a2a/tasks/missing/events")

        assert response.status_code == 404
