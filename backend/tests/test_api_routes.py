from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from conftest import ScriptedOracle, call
from kairos.api.deps import get_day_planner, get_oracle
from kairos.core.errors import OracleUnavailable
from kairos.main import app
from kairos.main import settings as app_settings
from kairos.services.schedule_oracle import OracleReply


@pytest.fixture()
def api(monkeypatch, make_planner, default_day_proposal):
    monkeypatch.setattr(app_settings, "session_ticker_enabled", False)
    oracle = ScriptedOracle(schedule=default_day_proposal)
    planner = make_planner(oracle)

    app.dependency_overrides[get_day_planner] = lambda: planner
    app.dependency_overrides[get_oracle] = lambda: oracle
    with TestClient(app) as test_client:
        yield test_client, planner, oracle
    app.dependency_overrides.clear()


def test_baseline_roundtrip_and_dirty_status(api) -> None:
    client, _, _ = api

    baseline = client.get("/baseline").json()
    assert baseline["activeHours"] == {"start": "08:00", "end": "23:00"}
    assert [task["title"] for task in baseline["fixedAnchors"]] == ["Breakfast", "Pilates class"]
    assert client.get("/baseline/status").json()["dirty"] is True

    created = client.post(
        "/baseline/fixed",
        json={"title": "Therapy", "startTime": "17:00", "endTime": "18:00", "energyCost": "high", "recurringDays": [4]},
    )
    assert created.status_code == 201
    assert created.json()["isHardBlock"] is True
    assert created.json()["duration"] == 60

    wish = client.post("/baseline/wishes", json={"title": "Guitar", "duration": 30}).json()
    assert client.delete(f"/baseline/wishes/{wish['id']}").status_code == 204
    assert client.delete(f"/baseline/wishes/{wish['id']}").status_code == 404
    assert client.delete(f"/baseline/fixed/{created.json()['id']}").status_code == 204

    hours = client.patch("/baseline/active-hours", json={"start": "07:00"})
    assert hours.json() == {"start": "07:00", "end": "23:00"}


def test_checkin_adopts_oracle_plan(api) -> None:
    client, _, _ = api

    response = client.post("/today/checkin", json={"energy": 3}, headers={"X-Request-Id": "req-1"})

    assert response.status_code == 200
    body = response.json()
    assert body["source"] == "oracle"
    assert body["adopted"] is True
    assert body["dirty"] is False
    assert body["requestId"] == "req-1"
    assert body["tasks"][0]["startTime"] == "08:00"
    assert body["tasks"][-1]["endTime"] == "23:00"

    today = client.get("/today").json()
    assert today["energy"] == 3
    assert today["activeTaskId"] == "f-0"
    assert today["remainingSeconds"] == 20 * 60


def test_checkin_falls_back_when_oracle_is_down(api) -> None:
    client, _, oracle = api
    oracle.error = OracleUnavailable("OPENAI_API_KEY is not configured")

    body = client.post("/today/checkin", json={"energy": 2}).json()

    assert body["source"] == "fallback"
    assert [task["title"] for task in body["tasks"]] == ["Breakfast", "Pilates class"]
    assert "oracle unavailable" in body["reason"]


def test_invalid_window_and_energy_are_422(api) -> None:
    client, _, _ = api

    assert client.post("/today/checkin", json={"energy": 9}).status_code == 422
    client.patch("/baseline/active-hours", json={"start": "23:00", "end": "08:00"})

    response = client.post("/today/checkin", json={"energy": 3})
    assert response.status_code == 422
    assert "active hours" in response.json()["detail"]


def test_today_edits(api) -> None:
    client, _, _ = api
    new_task = {"title": "Call mom", "startTime": "18:00", "duration": 20}

    assert client.post("/today/tasks", json=new_task).status_code == 409

    client.post("/today/checkin", json={"energy": 3})
    created = client.post("/today/tasks", json=new_task)
    assert created.status_code == 201
    task_id = created.json()["id"]

    edited = client.patch(f"/today/tasks/{task_id}", json={"duration": 40})
    assert edited.json()["endTime"] == "18:40"
    assert client.patch(f"/today/tasks/{task_id}", json={"title": "  "}).status_code == 422
    assert client.patch("/today/tasks/unknown", json={"duration": 5}).status_code == 404
    assert client.post(f"/today/tasks/{task_id}/toggle").json()["isCompleted"] is True
    assert client.delete(f"/today/tasks/{task_id}").status_code == 204


def test_daily_review_reports_todays_completion_rate(api) -> None:
    client, _, _ = api

    empty = client.get("/reports/daily").json()
    assert (empty["tasksTotal"], empty["completionRate"]) == (0, 0)

    client.post("/today/checkin", json={"energy": 3})
    tasks = client.get("/today").json()["tasks"]
    client.post(f"/today/tasks/{tasks[0]['id']}/toggle")

    expected = round(100 / len(tasks))
    review = client.get("/reports/daily").json()
    assert review["tasksTotal"] == len(tasks)
    assert review["tasksCompleted"] == 1
    assert review["completionRate"] == expected
    assert client.get("/today").json()["completionRate"] == expected


def test_remove_by_title_across_collections(api) -> None:
    client, _, _ = api
    client.post("/today/checkin", json={"energy": 3})

    body = client.post("/tasks/remove-by-title", json={"title": "writing"}).json()

    assert body["removedToday"] == 1
    assert body["removedFixed"] == 0
    assert body["removedWishes"] == 1
    assert client.get("/baseline/status").json()["dirty"] is True


def test_session_flow(api) -> None:
    client, _, _ = api

    assert client.get("/session").json()["state"] == "idle"
    assert client.post("/session/complete").status_code == 409
    assert client.post("/session/checkin").json()["state"] == "checkin"

    client.post("/today/checkin", json={"energy": 3})
    assert client.get("/session").json()["state"] == "dashboard"
    assert client.post("/session/focus", json={"taskId": "nope"}).status_code == 404

    focused = client.post("/session/focus", json={"taskId": "f-0"}).json()
    assert focused["state"] == "focused"
    assert focused["countdownSeconds"] == 20 * 60
    assert focused["activeTask"]["id"] == "f-0"

    assert client.post("/session/complete").json()["state"] == "cooldown"
    assert client.get("/today").json()["tasks"][1]["isCompleted"] is True
    assert client.post("/session/dismiss").json()["state"] == "dashboard"


def test_chat_applies_commands(api) -> None:
    client, _, oracle = api
    oracle.reply = OracleReply(text="Added!", function_calls=[call("add_wish_task", title="Piano", energyCost="low")])

    body = client.post("/chat", json={"message": "add piano", "history": [{"role": "model", "text": "Hi"}]}).json()

    assert body["reply"] == "Added!"
    assert body["commands"][0]["applied"] is True
    assert body["today"] == []
    assert oracle.messages == ["add piano"]


def test_weekly_report_and_onboarding(api) -> None:
    client, _, _ = api
    client.post("/today/checkin", json={"energy": 3})

    report = client.get("/reports/weekly").json()
    assert len(report["days"]) == 7
    assert report["insight"] == "Nice steady week."
    assert report["stats"]["completionRate"] == 0

    assert client.get("/onboarding").json()["needsOnboarding"] is True
    assert client.post("/onboarding/start").json()["purgedRecords"] == 0
    assert client.post("/onboarding/complete").json()["needsOnboarding"] is False
