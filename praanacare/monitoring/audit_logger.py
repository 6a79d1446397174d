"""
PraanaCare - Audit Logger

Append-only audit trail for emergency escalations and alert lifecycle
changes. One JSON object per line, one file per UTC day.
"""

import json
from datetime import datetime, timedelta
from typing import Dict, Any, Optional
from pathlib import Path

from praanacare.core.logging import logger
from praanacare.core.settings import get_settings

settings = get_settings()


class AuditLogger:
    """
    Audit logging for clinical traceability.

    Logs:
    - Emergency escalations (vitals breach, assistant detection)
    - Alert status transitions with the acting user
    - Errors raised while handling alerts
    """

    def __init__(self, log_dir: Optional[Path] = None, enabled: Optional[bool] = None):
        """
        Initialize audit logger.

        Args:
            log_dir: Directory for audit logs (default: AUDIT_LOG_DIR)
            enabled: Override ENABLE_AUDIT_LOGGING
        """
        self.enabled = settings.ENABLE_AUDIT_LOGGING if enabled is None else enabled
        self.log_dir = Path(log_dir or settings.AUDIT_LOG_DIR)

        if self.enabled:
            self._ensure_log_directory()

        logger.info(f"AuditLogger initialized (enabled={self.enabled})")

    def _ensure_log_directory(self):
        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create audit log directory: {str(e)}")
            self.enabled = False

    def log_emergency(
        self,
        alert_id: str,
        patient_id: str,
        source: str,
        severity: str,
        vitals: Optional[Dict[str, Any]] = None,
        risk_score: Optional[int] = None,
        request_id: Optional[str] = None
    ):
        """
        Log an emergency escalation.

        Args:
            alert_id: Alert created for the escalation
            patient_id: Patient concerned
            source: "vitals" or "assistant"
            severity: Alert severity
            vitals: Reading snapshot that triggered the alert
            risk_score: Message risk score when raised by the assistant
            request_id: Originating request id
        """
        if not self.enabled:
            return

        self._write_audit_log({
            "event_type": "emergency",
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "request_id": request_id,
            "alert_id": alert_id,
            "patient_id": patient_id,
            "source": source,
            "severity": severity,
            "vitals": vitals,
            "risk_score": risk_score,
            "metadata": {"service_version": settings.APP_VERSION}
        })

    def log_alert_transition(
        self,
        alert_id: str,
        previous_status: str,
        status: str,
        actor_id: str,
        actor_role: str,
        notes: Optional[str] = None
    ):
        if not self.enabled:
            return

        self._write_audit_log({
            "event_type": "alert_transition",
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "alert_id": alert_id,
            "previous_status": previous_status,
            "status": status,
            "actor": {"id": actor_id, "role": actor_role},
            "notes": notes
        })

    def log_error(
        self,
        request_id: str,
        error_type: str,
        error_message: str,
        context: Dict[str, Any]
    ):
        """Log error for audit trail."""
        if not self.enabled:
            return

        self._write_audit_log({
            "event_type": "error",
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "request_id": request_id,
            "error_type": error_type,
            "error_message": error_message,
            "context": context
        })

    def _write_audit_log(self, entry: Dict[str, Any]):
        try:
            date_str = datetime.utcnow().strftime("%Y-%m-%d")
            log_file = self.log_dir / f"audit_{date_str}.jsonl"

            with open(log_file, "a") as f:
                f.write(json.dumps(entry, default=str) + "\n")

        except OSError as e:
            logger.error(f"Failed to write audit log: {str(e)}")

    def query_logs(
        self,
        start_date: datetime,
        end_date: datetime,
        event_type: Optional[str] = None
    ) -> list:
        """
        Read back audit entries between two dates (inclusive).

        Args:
            start_date: Start date
            end_date: End date
            event_type: Filter by event type

        Returns:
            list: Matching audit entries
        """
        if not self.enabled:
            return []

        results = []

        current_date = start_date
        while current_date.date() <= end_date.date():
            log_file = self.log_dir / f"audit_{current_date.strftime('%Y-%m-%d')}.jsonl"

            if log_file.exists():
                try:
                    with open(log_file, "r") as f:
                        for line in f:
                            entry = json.loads(line)
                            if event_type and entry.get("event_type") != event_type:
                                continue
                            results.append(entry)
                except (OSError, json.JSONDecodeError) as e:
                    logger.error(f"Failed to read audit log {log_file}: {str(e)}")

            current_date += timedelta(days=1)

        return results


audit_logger = AuditLogger()
