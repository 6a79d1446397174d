"""Domain errors raised by services and translated to HTTP responses by the routes."""


class NotFoundError(LookupError):
    """A referenced record does not exist."""


class AccessDeniedError(PermissionError):
    """The acting user may not touch the referenced record."""


class AlertTransitionError(ValueError):
    """Requested alert status change is not allowed from the current status."""

    def __init__(self, alert_id: str, current: str, target: str):
        self.alert_id = alert_id
        self.current = current
        self.target = target
        super().__init__(f"Alert {alert_id} cannot move from {current} to {target}")


class DuplicateRecordError(ValueError):
    """A unique field (email, employee id, licence number) is already taken."""
