"""Recent history configuration data structure."""
from dataclasses import dataclass


@dataclass
class HistoryConfig:
    """Retention of the in-memory snapshot and alert history."""
    metrics_retention_minutes: float = 10.0
    alert_history_size: int = 100

    def __post_init__(self):
        """Fix invalid values."""
        if self.metrics_retention_minutes <= 0:
            self.metrics_retention_minutes = 10.0
        if self.alert_history_size <= 0:
            self.alert_history_size = 100
