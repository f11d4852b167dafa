"""Notification configuration data structure."""
from dataclasses import dataclass, field
from typing import List

from ..core.alerts import AlertType


@dataclass
class SlackConfig:
    webhook_url: str = ""
    channel: str = ""
    username: str = "Fleet Monitor"


@dataclass
class NotificationConfig:
    """Notification delivery and suppression settings."""
    enabled: bool = True
    cooldown: float = 300.0  # seconds between raise notifications per alert
    suppressed_types: List[AlertType] = field(default_factory=list)
    slack: SlackConfig = field(default_factory=SlackConfig)

    def __post_init__(self):
        """Normalize suppressed types; unknown names are rejected."""
        valid = {alert_type.value for alert_type in AlertType}
        names = [getattr(name, "value", name) for name in self.suppressed_types]
        unknown = [name for name in names if name not in valid]
        if unknown:
            raise ValueError(f"Unknown alert types in suppressed_types: {unknown}")
        self.suppressed_types = [AlertType(name) for name in names]
        if self.cooldown < 0:
            self.cooldown = 300.0

    def is_suppressed(self, alert_type: AlertType) -> bool:
        return alert_type in self.suppressed_types
