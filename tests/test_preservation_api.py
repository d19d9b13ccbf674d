"""Tests for the preservation-core HTTP routes."""

import pytest
import sys
import os
import uuid
from datetime import datetime, timezone
from types import SimpleNamespace

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from fastapi.testclient import TestClient

from preservation_core.config import Settings
from preservation_core.main import app
from preservation_core.api.routes import preservation as routes

CLASSIFY_URL = "/api/v1/preservation-core/classify"
HISTORY_URL = "/api/v1/preservation-core/history"


class FakeResult:
    def __init__(self, rows):
        self.rows = rows

    def scalars(self):
        return self

    def all(self):
        return self.rows


class FakeSession:
    """Stands in for AsyncSession in audit tests."""

    def __init__(self, rows=None):
        self.rows = rows or []
        self.added = []
        self.committed = False

    def add(self, obj):
        self.added.append(obj)

    async def commit(self):
        self.committed = True

    async def refresh(self, obj):
        pass

    async def execute(self, query):
        return FakeResult(self.rows)


@pytest.fixture
def client():
    yield TestClient(app)
    app.dependency_overrides.clear()
    app.state.db_available = False


class TestClassifyEndpoint:
    """Tests for POST /classify."""

    def test_normal_completion(self, client):
        response = client.post(CLASSIFY_URL, json={"quitAction": False})
        assert response.status_code == 200
        assert response.json() == {
            "type": "none",
            "lossApplied": False,
            "signals": {
                "quitDetected": False,
                "timeoutDetected": False,
                "highPacketLoss": False,
                "highLatency": False,
                "hardDisconnect": False,
                "competitiveAdvantageUsed": False,
                "fairnessConfidenceUsed": False,
            },
        }

    def test_intentional_quit(self, client):
        response = client.post(CLASSIFY_URL, json={"quitAction": True})
        data = response.json()
        assert response.status_code == 200
        assert data["type"] == "intentional_disconnect"
        assert data["lossApplied"] is True
        assert data["signals"]["quitDetected"] is True

    def test_network_failure_while_winning(self, client):
        response = client.post(CLASSIFY_URL, json={
            "quitAction": False,
            "networkBeforeDisconnect": {"latencyMs": 1200, "packetLossRate": 0.4, "isConnected": False},
            "competitiveAdvantage": 0.7,
        })
        data = response.json()
        assert response.status_code == 200
        assert data["type"] == "unintentional_disconnect"
        assert data["lossApplied"] is False
        assert data["signals"]["highPacketLoss"] is True
        assert data["signals"]["highLatency"] is True
        assert data["signals"]["hardDisconnect"] is True
        assert data["signals"]["competitiveAdvantageUsed"] is True

    def test_timeout_only(self, client):
        response = client.post(CLASSIFY_URL, json={
            "quitAction": False,
            "networkBeforeDisconnect": {"latencyMs": 50, "packetLossRate": 0.05, "isConnected": True},
            "timeSinceLastPacket": 6000,
        })
        data = response.json()
        assert data["type"] == "unintentional_disconnect"
        assert data["lossApplied"] is False
        assert data["signals"]["timeoutDetected"] is True
        assert data["signals"]["highPacketLoss"] is False

    def test_timestamp_is_accepted(self, client):
        response = client.post(CLASSIFY_URL, json={
            "quitAction": False,
            "networkBeforeDisconnect": {
                "latencyMs": 50, "packetLossRate": 0.0, "isConnected": True,
                "timestamp": 1700000000000,
            },
        })
        assert response.status_code == 200
        assert response.json()["type"] == "none"

    def test_fractional_timeout_threshold(self, client):
        """Test timeoutThreshold accepts any JSON number, not just integers."""
        response = client.post(CLASSIFY_URL, json={
            "quitAction": False,
            "timeSinceLastPacket": 3000,
            "timeoutThreshold": 2500.5,
        })
        data = response.json()
        assert response.status_code == 200
        assert data["type"] == "unintentional_disconnect"
        assert data["signals"]["timeoutDetected"] is True

    def test_integer_valued_numbers_accepted(self, client):
        response = client.post(CLASSIFY_URL, json={
            "quitAction": False,
            "networkBeforeDisconnect": {"latencyMs": 800, "packetLossRate": 0, "isConnected": True},
            "competitiveAdvantage": 1,
            "fairnessConfidence": 0,
        })
        data = response.json()
        assert response.status_code == 200
        assert data["signals"]["highLatency"] is True
        assert data["signals"]["highPacketLoss"] is False

    def test_identical_requests_identical_responses(self, client):
        body = {
            "quitAction": False,
            "networkBeforeDisconnect": {"latencyMs": 900, "packetLossRate": 0.3, "isConnected": False},
            "competitiveAdvantage": -0.5,
            "fairnessConfidence": 0.9,
        }
        first = client.post(CLASSIFY_URL, json=body)
        second = client.post(CLASSIFY_URL, json=body)
        assert first.content == second.content
        assert first.json()["lossApplied"] is False


class TestClassifyErrors:
    """Client input errors are reported as 400 and never classified."""

    def test_invalid_packet_loss(self, client):
        response = client.post(CLASSIFY_URL, json={
            "quitAction": False,
            "networkBeforeDisconnect": {"latencyMs": 100, "packetLossRate": 1.5, "isConnected": True},
        })
        assert response.status_code == 400
        assert response.json()["detail"] == {
            "error": "Invalid networkBeforeDisconnect",
            "details": ["packetLossRate must be between 0 and 1"],
        }

    def test_invalid_competitive_advantage(self, client):
        response = client.post(CLASSIFY_URL, json={"quitAction": True, "competitiveAdvantage": 1.2})
        assert response.status_code == 400
        assert response.json()["detail"]["details"] == ["competitiveAdvantage must be between -1.0 and 1.0"]

    def test_invalid_fairness_confidence(self, client):
        response = client.post(CLASSIFY_URL, json={"quitAction": False, "fairnessConfidence": -0.2})
        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "Invalid fairnessConfidence"

    def test_missing_quit_action(self, client):
        response = client.post(CLASSIFY_URL, json={"timeSinceLastPacket": 6000})
        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["error"] == "Invalid request body"
        assert any("quitAction" in d for d in detail["details"])

    def test_non_boolean_quit_action(self, client):
        response = client.post(CLASSIFY_URL, json={"quitAction": "true"})
        assert response.status_code == 400

    @pytest.mark.parametrize("body", [
        {"quitAction": False, "timeSinceLastPacket": True},
        {"quitAction": False, "timeoutThreshold": False},
        {"quitAction": False, "competitiveAdvantage": True},
        {"quitAction": False, "fairnessConfidence": True},
        {"quitAction": False,
         "networkBeforeDisconnect": {"latencyMs": True, "packetLossRate": 0.1, "isConnected": True}},
        {"quitAction": False,
         "networkBeforeDisconnect": {"latencyMs": 10, "packetLossRate": False, "isConnected": True}},
    ])
    def test_booleans_not_coerced_to_numbers(self, client, body):
        response = client.post(CLASSIFY_URL, json=body)
        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "Invalid request body"

    def test_numeric_strings_rejected(self, client):
        response = client.post(CLASSIFY_URL, json={"quitAction": False, "timeSinceLastPacket": "6000"})
        assert response.status_code == 400

    def test_infinite_latency_rejected(self, client):
        body = ('{"quitAction": false, "networkBeforeDisconnect": '
                '{"latencyMs": Infinity, "packetLossRate": 0.1, "isConnected": true}}')
        response = client.post(CLASSIFY_URL, content=body,
                               headers={"Content-Type": "application/json"})
        assert response.status_code == 400
        assert response.json()["detail"] == {
            "error": "Invalid networkBeforeDisconnect",
            "details": ["latencyMs must be >= 0"],
        }

    def test_infinite_timeout_threshold_rejected(self, client):
        body = '{"quitAction": false, "timeSinceLastPacket": 100, "timeoutThreshold": -Infinity}'
        response = client.post(CLASSIFY_URL, content=body,
                               headers={"Content-Type": "application/json"})
        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "Invalid timeoutThreshold"

    def test_snake_case_keys_rejected(self, client):
        """Test only the camelCase wire names are recognized."""
        response = client.post(CLASSIFY_URL, json={"quit_action": True})
        assert response.status_code == 400
        assert any("quitAction" in d for d in response.json()["detail"]["details"])

    def test_snake_case_snapshot_keys_rejected(self, client):
        response = client.post(CLASSIFY_URL, json={
            "quitAction": False,
            "networkBeforeDisconnect": {"latency_ms": 10, "packet_loss_rate": 0.1, "is_connected": True},
        })
        assert response.status_code == 400

    def test_non_boolean_is_connected(self, client):
        response = client.post(CLASSIFY_URL, json={
            "quitAction": False,
            "networkBeforeDisconnect": {"latencyMs": 10, "packetLossRate": 0.1, "isConnected": "no"},
        })
        assert response.status_code == 400

    def test_classifier_not_called_on_invalid_input(self, client, monkeypatch):
        calls = []
        monkeypatch.setattr(routes.DisconnectClassifier, "classify",
                            classmethod(lambda cls, s: calls.append(s)))
        response = client.post(CLASSIFY_URL, json={"quitAction": False, "fairnessConfidence": 3})
        assert response.status_code == 400
        assert calls == []


class TestDescribeEndpoint:
    """Tests for GET /classify."""

    def test_documents_thresholds(self, client):
        response = client.get(CLASSIFY_URL)
        data = response.json()
        assert response.status_code == 200
        assert data["method"] == "POST"
        assert data["thresholds"] == {
            "HIGH_PACKET_LOSS": 0.25,
            "HIGH_LATENCY_MS": 800,
            "TIMEOUT_MS": 5000,
        }
        assert data["response"]["type"]["enum"] == [
            "none", "intentional_disconnect", "unintentional_disconnect",
        ]

    def test_example_matches_engine(self, client):
        """Test the documented example is what the engine actually returns."""
        example = client.get(CLASSIFY_URL).json()["example"]
        actual = client.post(CLASSIFY_URL, json=example["request"]).json()
        assert actual == example["response"]


class TestAuditTrail:
    """Tests for persisting verdicts and reading them back."""

    def test_verdict_recorded_when_db_available(self, client, monkeypatch):
        session = FakeSession()

        async def fake_get_db():
            yield session

        monkeypatch.setattr(routes, "get_db", fake_get_db)
        app.state.db_available = True

        response = client.post(CLASSIFY_URL, json={"quitAction": True, "fairnessConfidence": 0.5})
        assert response.status_code == 200
        assert session.committed is True
        record = session.added[0]
        assert record.disconnect_type == "intentional_disconnect"
        assert record.loss_applied is True
        assert record.quit_action is True
        assert record.fairness_confidence == 0.5
        assert record.signals["quitDetected"] is True
        assert record.request == {"quitAction": True, "fairnessConfidence": 0.5}

    def test_audit_failure_does_not_fail_request(self, client, monkeypatch):
        async def broken_get_db():
            raise RuntimeError("connection refused")
            yield

        monkeypatch.setattr(routes, "get_db", broken_get_db)
        app.state.db_available = True

        response = client.post(CLASSIFY_URL, json={"quitAction": True})
        assert response.status_code == 200
        assert response.json()["lossApplied"] is True

    def test_nothing_recorded_without_db(self, client, monkeypatch):
        session = FakeSession()

        async def fake_get_db():
            yield session

        monkeypatch.setattr(routes, "get_db", fake_get_db)
        client.post(CLASSIFY_URL, json={"quitAction": True})
        assert session.added == []

    def test_nothing_recorded_when_audit_disabled(self, client, monkeypatch):
        session = FakeSession()

        async def fake_get_db():
            yield session

        monkeypatch.setattr(routes, "get_db", fake_get_db)
        monkeypatch.setattr(routes, "get_settings", lambda: Settings(audit_classifications=False))
        app.state.db_available = True

        response = client.post(CLASSIFY_URL, json={"quitAction": True})
        assert response.status_code == 200
        assert response.json()["lossApplied"] is True
        assert session.added == []

    def test_session_closed_when_recording_fails(self, client, monkeypatch):
        """Test the session generator is finalized as soon as recording raises."""
        lifecycle = []

        async def tracking_get_db():
            lifecycle.append("opened")
            try:
                yield FakeSession()
            finally:
                lifecycle.append("closed")

        async def failing_record(*args, **kwargs):
            raise RuntimeError("insert failed")

        monkeypatch.setattr(routes, "get_db", tracking_get_db)
        monkeypatch.setattr(routes, "record_classification", failing_record)
        app.state.db_available = True

        response = client.post(CLASSIFY_URL, json={"quitAction": False})
        assert response.status_code == 200
        assert lifecycle == ["opened", "closed"]

    def test_history_unavailable_without_db(self, client):
        response = client.get(HISTORY_URL)
        assert response.status_code == 503

    def test_history_lists_records(self, client):
        record_id = uuid.uuid4()
        rows = [SimpleNamespace(
            id=record_id,
            disconnect_type="unintentional_disconnect",
            loss_applied=False,
            quit_action=False,
            competitive_advantage=0.7,
            fairness_confidence=None,
            signals={"hardDisconnect": True},
            created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        )]

        async def fake_session():
            yield FakeSession(rows)

        app.dependency_overrides[routes.require_audit_db] = fake_session

        response = client.get(HISTORY_URL, params={"limit": 5})
        assert response.status_code == 200
        data = response.json()
        assert len(data) == 1
        assert data[0]["id"] == str(record_id)
        assert data[0]["disconnectType"] == "unintentional_disconnect"
        assert data[0]["lossApplied"] is False
        assert data[0]["competitiveAdvantage"] == 0.7
        assert data[0]["signals"] == {"hardDisconnect": True}

    def test_history_limit_must_be_positive(self, client):
        async def fake_session():
            yield FakeSession()

        app.dependency_overrides[routes.require_audit_db] = fake_session
        response = client.get(HISTORY_URL, params={"limit": 0})
        assert response.status_code == 400


class TestAppEndpoints:
    """Tests for root and health endpoints."""

    def test_root(self, client):
        data = client.get("/").json()
        assert data["name"] == "Preservation Core"
        assert data["status"] == "running"

    def test_health(self, client):
        data = client.get("/health").json()
        assert data["status"] == "healthy"
        assert data["database"] == {"connected": False}
