"""
PraanaCare - Monitoring, Realtime and Helper Tests
"""

import asyncio
from datetime import datetime, timedelta, timezone

from praanacare.monitoring.audit_logger import AuditLogger
from praanacare.monitoring.metrics import MetricsCollector
from praanacare.realtime.publisher import ConnectionManager
from praanacare.core.settings import Settings
from praanacare.utils.helpers import pagination, period_window, safe_divide, to_naive_utc


class FakeSocket:
    def __init__(self, fail=False):
        self.fail = fail
        self.sent = []

    async def accept(self):
        pass

    async def send_json(self, message):
        if self.fail:
            raise RuntimeError("closed")
        self.sent.append(message)


class TestMetricsCollector:
    """Test metrics collection."""

    def test_counters(self):
        collector = MetricsCollector()
        collector.record_vitals("device", True)
        collector.record_vitals("patient", False)
        collector.record_alert("critical")
        collector.record_transition("resolved")
        collector.record_chat(3, "fallback")
        collector.record_response_time(10)
        collector.record_response_time(20)
        collector.record_error()

        metrics = collector.get_metrics()
        assert metrics["total_vitals"] == 2
        assert metrics["emergencies_detected"] == 1
        assert metrics["alerts_created"] == {"critical": 1}
        assert metrics["alert_transitions"] == {"resolved": 1}
        assert metrics["chat_messages"] == 3
        assert metrics["assistant_replies"] == {"fallback": 1}
        assert metrics["average_response_time_ms"] == 15
        assert metrics["error_count"] == 1

    def test_prometheus_export(self):
        collector = MetricsCollector()
        collector.record_vitals("device", False)
        text = collector.export_prometheus()
        assert 'praanacare_vitals_recorded_total{source="device"} 1' in text
        assert "# TYPE praanacare_errors_total counter" in text

    def test_reset(self):
        collector = MetricsCollector()
        collector.record_error()
        collector.reset_metrics()
        assert collector.get_metrics()["error_count"] == 0


class TestAuditLogger:
    """Test the JSON-lines audit trail."""

    def test_disabled_writes_nothing(self, tmp_path):
        audit = AuditLogger(log_dir=tmp_path, enabled=False)
        audit.log_emergency("a1", "p1", "vitals", "critical")
        assert list(tmp_path.iterdir()) == []

    def test_write_and_query(self, tmp_path):
        audit = AuditLogger(log_dir=tmp_path, enabled=True)
        audit.log_emergency("a1", "p1", "vitals", "critical", vitals={"heartRate": 130})
        audit.log_alert_transition("a1", "active", "resolved", "d1", "doctor", notes="Rest")
        audit.log_error("req_1", "RuntimeError", "boom", {"endpoint": "/x"})

        today = datetime.utcnow()
        entries = audit.query_logs(today - timedelta(days=1), today)
        assert [e["event_type"] for e in entries] == ["emergency", "alert_transition", "error"]

        transitions = audit.query_logs(today, today, event_type="alert_transition")
        assert transitions[0]["actor"] == {"id": "d1", "role": "doctor"}


class TestDashboardSocket:
    """Test the dashboard WebSocket."""

    def test_join_room(self, client):
        with client.websocket_connect("/ws") as websocket:
            websocket.send_json({"event": "join-room", "data": {"role": "doctor", "userId": "u1"}})
            assert websocket.receive_json() == {"event": "joined", "data": {"room": "doctor-u1"}}

    def test_relay_skips_sender(self):
        manager = ConnectionManager()
        first, second = FakeSocket(), FakeSocket()

        async def scenario():
            await manager.connect(first)
            await manager.connect(second)
            await manager.relay(first, "vitals-update", {"heartRate": 80})
            await manager.publish("emergency-alert", {"patientId": "p1"})

        asyncio.run(scenario())
        assert first.sent == [{"event": "emergency-alert", "data": {"patientId": "p1"}}]
        assert second.sent == [
            {"event": "vitals-update", "data": {"heartRate": 80}},
            {"event": "emergency-alert", "data": {"patientId": "p1"}},
        ]

    def test_failed_send_drops_socket(self):
        manager = ConnectionManager()
        broken = FakeSocket(fail=True)

        async def scenario():
            await manager.connect(broken)
            await manager.publish("emergency-alert", {})

        asyncio.run(scenario())
        assert manager.connection_count == 0


class TestHelpers:
    """Test helper utilities."""

    def test_pagination(self):
        assert pagination(2, 10, 25) == {"current": 2, "pages": 3, "total": 25}
        assert pagination(1, 10, 0) == {"current": 1, "pages": 0, "total": 0}

    def test_period_window_unknown_period(self):
        now = datetime(2024, 5, 10)
        start, end = period_window("bogus", now=now)
        assert end == now
        assert start == now - timedelta(days=7)

    def test_safe_divide(self):
        assert safe_divide(1, 0) == 0.0
        assert safe_divide(6, 3) == 2

    def test_to_naive_utc(self):
        offset = timezone(timedelta(hours=5, minutes=30))
        assert to_naive_utc(datetime(2026, 10, 10, 5, 0, tzinfo=offset)) == datetime(2026, 10, 9, 23, 30)
        assert to_naive_utc(datetime(2026, 10, 10, 5, 0, tzinfo=timezone.utc)) == datetime(2026, 10, 10, 5, 0)
        assert to_naive_utc(datetime(2026, 10, 10, 5, 0)) == datetime(2026, 10, 10, 5, 0)
        assert to_naive_utc(None) is None


class TestSettings:
    """Test settings defaults."""

    def test_environment_defaults_to_production(self, monkeypatch):
        monkeypatch.delenv("ENVIRONMENT", raising=False)
        settings = Settings(_env_file=None)
        assert settings.is_production()
        assert not settings.is_development()
