"""Tests for ui/app.py: HTTP API over the workspace store."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from ui.app import app


@pytest.fixture
def client(workspace):
    return TestClient(app)


def test_health(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json()["ok"] is True


# ── Habits ────────────────────────────────────────────────────


def test_list_habits(client):
    habits = client.get("/api/habits").json()["habits"]
    assert [h["id"] for h in habits] == ["h1", "h2"]


def test_create_habit(client):
    resp = client.post("/api/habits", json={"name": "Stretch", "frequencyPerDay": 2})
    assert resp.status_code == 200
    habit = resp.json()["habit"]
    assert habit["name"] == "Stretch"
    assert habit["color"] == "bg-sky-500"

    completions = client.get("/api/completions").json()["completions"]
    assert completions[habit["id"]] == []


def test_create_habit_validation(client):
    resp = client.post("/api/habits", json={"description": "no name"})
    assert resp.status_code == 400
    assert "name" in resp.json()["detail"]


def test_get_habit(client):
    data = client.get("/api/habits/h1").json()
    assert data["habit"]["name"] == "Drink water"
    assert data["completions"] == ["2024-03-12", "2024-03-13", "2024-03-14"]
    assert client.get("/api/habits/nope").status_code == 404


def test_update_habit(client):
    resp = client.put("/api/habits/h2", json={"name": "Read 20 pages", "createdAt": "1999-01-01"})
    assert resp.status_code == 200
    habit = resp.json()["habit"]
    assert habit["name"] == "Read 20 pages"
    assert habit["createdAt"] == "2024-03-10T08:00:00.000Z"
    assert client.put("/api/habits/nope", json={"name": "X"}).status_code == 404
    assert client.put("/api/habits/h2", json={"name": ""}).status_code == 400


def test_delete_habit_cascades(client):
    assert client.delete("/api/habits/h1").status_code == 200
    assert [h["id"] for h in client.get("/api/habits").json()["habits"]] == ["h2"]
    assert "h1" not in client.get("/api/completions").json()["completions"]
    assert client.delete("/api/habits/h1").status_code == 404


def test_replace_habits(client):
    resp = client.put(
        "/api/habits",
        json={"habits": [{"id": "h2", "name": "Read"}, {"id": "h9", "name": "Journal"}]},
    )
    assert resp.status_code == 200
    assert [h["id"] for h in resp.json()["habits"]] == ["h2", "h9"]
    assert client.get("/api/completions").json()["completions"] == {"h2": ["2024-03-14"], "h9": []}


def test_replace_habits_rejects_bad_payload(client):
    assert client.put("/api/habits", json={"habits": "nope"}).status_code == 400
    assert client.put("/api/habits", json=[{"name": "no id"}]).status_code == 400


def test_replace_habits_rejects_blank_names(client):
    resp = client.put("/api/habits", json=[{"id": "x", "name": ""}])
    assert resp.status_code == 400
    assert "name" in resp.json()["detail"]
    assert client.put("/api/habits", json=[{"id": "h1", "name": "   "}]).status_code == 400
    assert [h["id"] for h in client.get("/api/habits").json()["habits"]] == ["h1", "h2"]


def test_toggle_completion(client):
    resp = client.post("/api/habits/h2/toggle-completion", json={"date": "2024-03-15"})
    assert resp.status_code == 200
    assert resp.json()["completed"] is True
    assert resp.json()["completions"] == ["2024-03-14", "2024-03-15"]

    resp = client.post("/api/habits/h2/toggle-completion", json={"date": "2024-03-15"})
    assert resp.json()["completed"] is False


def test_toggle_completion_defaults_to_today(client):
    today = datetime.now(timezone.utc).date().isoformat()
    resp = client.post("/api/habits/h2/toggle-completion")
    assert resp.status_code == 200
    assert today in resp.json()["completions"]


def test_toggle_completion_errors(client):
    assert client.post("/api/habits/nope/toggle-completion", json={}).status_code == 404
    assert client.post("/api/habits/h1/toggle-completion", json={"date": "garbage"}).status_code == 400


# ── Completions ───────────────────────────────────────────────


def test_replace_completions(client):
    resp = client.put(
        "/api/completions",
        json={"completions": {"h1": ["2024-03-01T10:00:00Z"], "ghost": ["2024-03-01"]}},
    )
    assert resp.status_code == 200
    assert resp.json()["completions"] == {"h1": ["2024-03-01"]}
    assert client.get("/api/completions").json()["completions"] == {"h1": ["2024-03-01"], "h2": []}


def test_habit_completions(client):
    assert client.get("/api/completions/h2").json()["dates"] == ["2024-03-14"]
    resp = client.put("/api/completions/h2", json={"dates": ["2024-03-02", "2024-03-01", "junk"]})
    assert resp.json()["dates"] == ["2024-03-01", "2024-03-02"]
    assert client.get("/api/completions/h2").json()["dates"] == ["2024-03-01", "2024-03-02"]
    assert client.get("/api/completions/nope").status_code == 404
    assert client.put("/api/completions/h2", json={"dates": "x"}).status_code == 400


# ── Export / import ───────────────────────────────────────────


def test_export_then_import(client):
    exported = client.get("/api/data/export").json()
    assert exported["version"] == "1.0"
    assert exported["exportDate"].endswith("Z")

    client.delete("/api/habits/h1")
    resp = client.post("/api/data/import", json=exported)
    assert resp.status_code == 200
    assert resp.json()["habits"] == 2
    assert client.get("/api/completions/h1").json()["dates"] == ["2024-03-12", "2024-03-13", "2024-03-14"]


def test_import_invalid_format(client):
    resp = client.post("/api/data/import", json={"habits": {}})
    assert resp.status_code == 400
    assert "Invalid data format" in resp.json()["detail"]


# ── Statistics ────────────────────────────────────────────────


def test_stats(client):
    data = client.get("/api/stats").json()
    assert data["totalHabits"] == 2
    assert data["rolling"]["windowDays"] == 14
    assert len(data["rolling"]["days"]) == 14
    assert "storeError" not in data
    assert 0 <= data["today"]["percentage"] <= 100


def test_stats_window_parameter(client):
    assert client.get("/api/stats?days=7").json()["rolling"]["windowDays"] == 7
    assert client.get("/api/stats?days=0").status_code == 400
    assert client.get("/api/stats?days=366").status_code == 200
    assert client.get("/api/stats?days=100000000").status_code == 400


def test_stats_degrade_when_store_is_corrupt(client, workspace):
    (workspace / "data" / "habits.json").write_text("{broken", encoding="utf-8")
    resp = client.get("/api/stats")
    assert resp.status_code == 200
    data = resp.json()
    assert data["totalHabits"] == 0
    assert data["today"]["percentage"] == 0
    assert "habits.json" in data["storeError"]


def test_stats_survive_oversized_epoch_numbers(client, workspace):
    (workspace / "data" / "completions.json").write_text(
        '{"completions": {"h1": [' + "9" * 400 + ', "2024-03-14"]}}', encoding="utf-8"
    )
    resp = client.get("/api/stats")
    assert resp.status_code == 200
    assert "storeError" not in resp.json()
    assert client.get("/api/completions/h1").json()["dates"] == ["2024-03-14"]


def test_store_failure_maps_to_503(client, workspace):
    (workspace / "data" / "habits.json").write_text("{broken", encoding="utf-8")
    assert client.get("/api/habits").status_code == 503
    assert client.post("/api/habits", json={"name": "X"}).status_code == 503


def test_habit_rates(client):
    rates = client.get("/api/stats/habits").json()["habits"]
    assert {r["habitId"] for r in rates} == {"h1", "h2"}
    assert all(0 <= r["completionRate"] <= 100 for r in rates)
    assert len(client.get("/api/stats/habits?top=1").json()["habits"]) == 1


def test_calendar(client):
    data = client.get("/api/calendar?year=2024&month=3").json()
    cells = [c for week in data["weeks"] for c in week if c]
    assert len(cells) == 31
    by_date = {c["date"]: c["status"] for c in cells}
    assert by_date["2024-03-14"] == "full"
    assert by_date["2024-03-12"] == "partial"
    assert client.get("/api/calendar?year=2024&month=13").status_code == 400


def test_index_page(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert "HabitFlow" in resp.text
    assert "Drink water" in resp.text
