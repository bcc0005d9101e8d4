"""
Tests for the HTTP API.

The app's singletons are swapped for per-test instances backed by a
temporary database and a fixed clock.
"""

import pytest
from fastapi.testclient import TestClient

from services import EvaluationScheduler

from conftest import T0


@pytest.fixture
def client(monkeypatch, engine, buffer):
    from main import app

    monkeypatch.setattr("alerts.engine._alert_engine", engine)
    monkeypatch.setattr("series.buffer._buffer", buffer)
    monkeypatch.setattr("services.scheduler._scheduler", EvaluationScheduler(engine, interval_seconds=30))

    # No context manager: the lifespan (and scheduler autostart) is not run
    return TestClient(app)


def _create_rule(client, **overrides):
    body = {"name": "High overall", "threshold": 75}
    body.update(overrides)
    response = client.post("/api/alerts/rules", json=body)
    assert response.status_code == 201, response.text
    return response.json()["rule"]


def _ingest(client, *entries):
    return client.post("/api/entries", json={"entries": list(entries)})


class TestRulesApi:

    def test_create_and_list(self, client):
        rule = _create_rule(client, dimension="anger", condition="spike", threshold=20, consecutive_count=2)

        assert rule["id"].startswith("rule_")
        assert rule["trigger_count"] == 0
        assert rule["last_triggered"] is None

        listed = client.get("/api/alerts/rules").json()
        assert listed["count"] == 1
        assert listed["rules"][0]["id"] == rule["id"]

    @pytest.mark.parametrize("body", [
        {"name": "x", "threshold": -1},
        {"name": "x", "time_window_minutes": 0},
        {"name": "x", "consecutive_count": 0},
        {"name": "", "threshold": 10},
        {"name": "x", "dimension": "boredom"},
        {"name": "x", "condition": "sideways"},
    ])
    def test_invalid_rule_is_400(self, client, body):
        response = client.post("/api/alerts/rules", json=body)

        assert response.status_code == 400
        assert response.json()["error_code"] == "validation_error"
        assert client.get("/api/alerts/rules").json()["count"] == 0

    def test_unknown_rule_is_404(self, client):
        assert client.get("/api/alerts/rules/rule_missing").status_code == 404
        assert client.patch("/api/alerts/rules/rule_missing", json={"name": "x"}).status_code == 404
        assert client.delete("/api/alerts/rules/rule_missing").status_code == 404
        assert client.post("/api/alerts/rules/rule_missing/enable").status_code == 404

    def test_patch_enable_disable_delete(self, client):
        rule = _create_rule(client)

        patched = client.patch(f"/api/alerts/rules/{rule['id']}", json={"threshold": 60}).json()["rule"]
        assert patched["threshold"] == 60
        assert patched["name"] == "High overall"

        assert client.post(f"/api/alerts/rules/{rule['id']}/disable").json()["rule"]["enabled"] is False
        assert client.post(f"/api/alerts/rules/{rule['id']}/enable").json()["rule"]["enabled"] is True

        assert client.delete(f"/api/alerts/rules/{rule['id']}").status_code == 200
        assert client.get("/api/alerts/rules").json()["count"] == 0

    @pytest.mark.parametrize("body", [
        {"enabled": None},
        {"threshold": None},
        {"name": "Renamed", "dimension": None},
    ])
    def test_patch_with_null_field_is_400(self, client, body):
        rule = _create_rule(client)

        response = client.patch(f"/api/alerts/rules/{rule['id']}", json=body)

        assert response.status_code == 400
        assert response.json()["error_code"] == "validation_error"
        stored = client.get(f"/api/alerts/rules/{rule['id']}").json()["rule"]
        assert stored["enabled"] is True
        assert stored["name"] == "High overall"

    def test_get_rule_reports_state(self, client):
        rule = _create_rule(client)

        state = client.get(f"/api/alerts/rules/{rule['id']}").json()["state"]

        assert state == {"trigger_count": 0, "last_triggered": None, "cooldown_remaining_seconds": 0.0}


class TestEvaluationFlow:

    def test_ingest_evaluate_acknowledge(self, client):
        rule = _create_rule(client)
        result = _ingest(client, {"timestamp": "2026-10-17T12:00:00Z", "overall_score": 80}).json()
        assert result["count"] == 1

        evaluated = client.post("/api/alerts/evaluate").json()
        assert evaluated["triggered_count"] == 1
        alert = evaluated["triggered"][0]
        assert alert["rule_id"] == rule["id"]
        assert "80 > 75" in alert["message"]
        assert alert["timestamp"] == T0.isoformat()

        # Cooldown holds on the immediate next pass
        assert client.post("/api/alerts/evaluate").json()["triggered_count"] == 0

        history = client.get("/api/alerts/history").json()
        assert history["count"] == 1
        assert history["unacknowledged"] == 1

        first = client.post(f"/api/alerts/history/{alert['id']}/acknowledge")
        second = client.post(f"/api/alerts/history/{alert['id']}/acknowledge")
        assert first.status_code == second.status_code == 200
        assert second.json()["alert"]["acknowledged"] is True

        assert client.get("/api/alerts/history?unacknowledged_only=true").json()["count"] == 0
        assert client.delete("/api/alerts/history/acknowledged").json()["removed"] == 1
        assert client.get("/api/alerts/history").json()["count"] == 0

    def test_acknowledge_unknown_alert_is_404(self, client):
        response = client.post("/api/alerts/history/alert_missing/acknowledge")

        assert response.status_code == 404
        assert response.json()["error_code"] == "alert_not_found"

    def test_switch_off_blocks_evaluation(self, client):
        _create_rule(client)
        _ingest(client, {"timestamp": "2026-10-17T12:00:00Z", "overall_score": 80})

        assert client.put("/api/alerts/switch", json={"enabled": False}).json()["enabled"] is False
        assert client.get("/api/alerts/switch").json() == {"enabled": False}
        assert client.post("/api/alerts/evaluate").json()["triggered_count"] == 0

        client.put("/api/alerts/switch", json={"enabled": True})
        assert client.post("/api/alerts/evaluate").json()["triggered_count"] == 1

    def test_reset_and_clear_history(self, client):
        _create_rule(client)
        _ingest(client, {"timestamp": "2026-10-17T12:00:00Z", "overall_score": 80})
        client.post("/api/alerts/evaluate")

        assert client.post("/api/alerts/reset").json()["rules"] == 1
        assert client.post("/api/alerts/evaluate").json()["triggered_count"] == 1
        assert client.delete("/api/alerts/history").json()["removed"] == 2

    def test_stats(self, client):
        client.post("/api/alerts/evaluate")

        stats = client.get("/api/alerts/stats").json()

        assert stats["engine"]["passes"] == 1
        assert stats["scheduler"]["is_running"] is False


class TestEntriesApi:

    def test_out_of_order_and_malformed_entries_are_reported(self, client):
        result = _ingest(
            client,
            {"timestamp": "2026-10-17T12:00:00Z", "overall_score": 50},
            {"timestamp": "2026-10-17T11:00:00Z", "overall_score": 50},
            {"timestamp": "2026-10-17T12:01:00Z"},
            {"timestamp": "2026-10-17T12:02:00Z", "overallScore": 50, "dimensionScores": {"boredom": 1}},
        ).json()

        assert result["success"] is False
        assert result["count"] == 1
        assert result["errors"] == 3

    def test_list_and_stats(self, client):
        _ingest(
            client,
            {"timestamp": "2026-10-17T12:00:00Z", "overall_score": 50, "sentiment": {"joy": 20}},
            {"timestamp": "2026-10-17T12:01:00Z", "overall_score": 55},
        )

        listed = client.get("/api/entries?limit=1").json()
        assert listed["count"] == 1
        assert listed["entries"][0]["overall_score"] == 55

        assert client.get("/api/entries/stats").json()["buffered"] == 2


def test_health(client):
    body = client.get("/health").json()

    assert body["status"] == "healthy"
    assert body["engine"]["global_enabled"] is True
    assert body["scheduler"]["is_running"] is False
