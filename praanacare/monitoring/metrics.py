"""
PraanaCare - Metrics Collector

In-process operational counters with a Prometheus-compatible export.
"""

import time
from datetime import datetime
from collections import defaultdict
from threading import Lock

from praanacare.core.logging import logger


def _empty_metrics() -> dict:
    return {
        "vitals_recorded": defaultdict(int),
        "emergencies_detected": 0,
        "alerts_created": defaultdict(int),
        "alert_transitions": defaultdict(int),
        "chat_messages": 0,
        "assistant_replies": defaultdict(int),
        "response_times": [],
        "error_count": 0,
    }


class MetricsCollector:
    """
    Centralized metrics collection for monitoring.

    Collects:
    - Vitals recorded by source
    - Emergencies detected
    - Alerts created by severity and status transitions by target
    - Chat messages and assistant replies by origin (remote / fallback)
    - Response times and error count
    """

    def __init__(self):
        self.start_time = time.time()
        self.lock = Lock()
        self.metrics = _empty_metrics()
        logger.info("MetricsCollector initialized")

    def record_vitals(self, source: str, is_emergency: bool):
        with self.lock:
            self.metrics["vitals_recorded"][source] += 1
            if is_emergency:
                self.metrics["emergencies_detected"] += 1

    def record_alert(self, severity: str):
        with self.lock:
            self.metrics["alerts_created"][severity] += 1

    def record_transition(self, status: str):
        with self.lock:
            self.metrics["alert_transitions"][status] += 1

    def record_chat(self, messages_added: int, origin: str):
        with self.lock:
            self.metrics["chat_messages"] += messages_added
            self.metrics["assistant_replies"][origin] += 1

    def record_response_time(self, duration_ms: float):
        with self.lock:
            self.metrics["response_times"].append(duration_ms)
            # Keep only last 1000 response times
            if len(self.metrics["response_times"]) > 1000:
                self.metrics["response_times"] = self.metrics["response_times"][-1000:]

    def record_error(self):
        """Record an error occurrence."""
        with self.lock:
            self.metrics["error_count"] += 1

    def get_metrics(self) -> dict:
        """
        Get current metrics snapshot.

        Returns:
            dict: Current metrics
        """
        with self.lock:
            response_times = self.metrics["response_times"]
            avg_response_time = (
                sum(response_times) / len(response_times)
                if response_times else 0.0
            )

            return {
                "vitals_recorded": dict(self.metrics["vitals_recorded"]),
                "total_vitals": sum(self.metrics["vitals_recorded"].values()),
                "emergencies_detected": self.metrics["emergencies_detected"],
                "alerts_created": dict(self.metrics["alerts_created"]),
                "alert_transitions": dict(self.metrics["alert_transitions"]),
                "chat_messages": self.metrics["chat_messages"],
                "assistant_replies": dict(self.metrics["assistant_replies"]),
                "average_response_time_ms": round(avg_response_time, 2),
                "error_count": self.metrics["error_count"],
                "uptime_seconds": round(time.time() - self.start_time, 2),
                "timestamp": datetime.utcnow().isoformat()
            }

    def export_prometheus(self) -> str:
        """
        Export metrics in Prometheus format.

        Returns:
            str: Prometheus-formatted metrics
        """
        metrics = self.get_metrics()

        lines = [
            "# HELP praanacare_vitals_recorded_total Vitals readings stored",
            "# TYPE praanacare_vitals_recorded_total counter",
        ]
        for source, count in metrics["vitals_recorded"].items():
            lines.append(f'praanacare_vitals_recorded_total{{source="{source}"}} {count}')

        lines.extend([
            "",
            "# HELP praanacare_emergencies_total Emergency readings detected",
            "# TYPE praanacare_emergencies_total counter",
            f"praanacare_emergencies_total {metrics['emergencies_detected']}",
            "",
            "# HELP praanacare_alerts_created_total Alerts created",
            "# TYPE praanacare_alerts_created_total counter",
        ])
        for severity, count in metrics["alerts_created"].items():
            lines.append(f'praanacare_alerts_created_total{{severity="{severity}"}} {count}')

        lines.extend([
            "",
            "# HELP praanacare_alert_transitions_total Alert status changes",
            "# TYPE praanacare_alert_transitions_total counter",
        ])
        for status, count in metrics["alert_transitions"].items():
            lines.append(f'praanacare_alert_transitions_total{{status="{status}"}} {count}')

        lines.extend([
            "",
            "# HELP praanacare_chat_messages_total Chat messages appended",
            "# TYPE praanacare_chat_messages_total counter",
            f"praanacare_chat_messages_total {metrics['chat_messages']}",
            "",
            "# HELP praanacare_assistant_replies_total Assistant replies by origin",
            "# TYPE praanacare_assistant_replies_total counter",
        ])
        for origin, count in metrics["assistant_replies"].items():
            lines.append(f'praanacare_assistant_replies_total{{origin="{origin}"}} {count}')

        lines.extend([
            "",
            "# HELP praanacare_response_time_ms Average response time in milliseconds",
            "# TYPE praanacare_response_time_ms gauge",
            f"praanacare_response_time_ms {metrics['average_response_time_ms']}",
            "",
            "# HELP praanacare_errors_total Total errors",
            "# TYPE praanacare_errors_total counter",
            f"praanacare_errors_total {metrics['error_count']}",
            "",
            "# HELP praanacare_uptime_seconds Service uptime in seconds",
            "# TYPE praanacare_uptime_seconds counter",
            f"praanacare_uptime_seconds {metrics['uptime_seconds']}"
        ])

        return "\n".join(lines)

    def reset_metrics(self):
        """Reset all metrics (for testing purposes only)."""
        with self.lock:
            self.start_time = time.time()
            self.metrics = _empty_metrics()
            logger.info("Metrics reset")


metrics_collector = MetricsCollector()
