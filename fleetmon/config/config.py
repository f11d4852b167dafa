"""Main configuration data structure."""
from dataclasses import dataclass, field

from .collection_config import CollectionConfig
from .display_config import DisplayConfig
from .history_config import HistoryConfig
from .notification_config import NotificationConfig
from .threshold_config import ThresholdConfig


@dataclass
class Config:
    """Main configuration class."""
    max_alerts: int = 20  # open alerts surfaced in SystemHealth
    collection: CollectionConfig = field(default_factory=CollectionConfig)
    thresholds: ThresholdConfig = field(default_factory=ThresholdConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)

    def __post_init__(self):
        """Fix invalid values."""
        if self.max_alerts <= 0:
            self.max_alerts = 20
