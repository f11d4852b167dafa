"""Exception hierarchy for the monitoring core."""
from typing import Optional


class FleetmonError(Exception):
    """Base class for all monitoring errors."""


class ConfigError(FleetmonError):
    """Configuration file is missing or malformed."""


class CollectionError(FleetmonError):
    """A collector could not obtain a snapshot from its source."""

    def __init__(self, collector: str, reason: str, cause: Optional[BaseException] = None):
        super().__init__(f"{collector}: {reason}")
        self.collector = collector
        self.reason = reason
        self.cause = cause


class EvaluationError(FleetmonError):
    """A snapshot is malformed or out of range and cannot be evaluated."""


class AlertNotFound(FleetmonError):
    """The alert id does not match any open alert."""

    def __init__(self, alert_id: str):
        super().__init__(f"Alert not found or already resolved: {alert_id}")
        self.alert_id = alert_id


class DeliveryError(FleetmonError):
    """A notification sink failed to deliver a transition."""
