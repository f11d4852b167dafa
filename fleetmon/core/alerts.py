"""Alert data model for system monitoring."""
import hashlib
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Tuple


class AlertType(str, Enum):
    CPU_HIGH = "CPU_HIGH"
    RAM_HIGH = "RAM_HIGH"
    SSD_HIGH = "SSD_HIGH"
    BATTERY_LOW = "BATTERY_LOW"
    DOCKER_DAEMON_DOWN = "DOCKER_DAEMON_DOWN"
    CONTAINER_DOWN = "CONTAINER_DOWN"
    CONTAINER_RESTARTING = "CONTAINER_RESTARTING"
    GITHUB_RUNNER_OFFLINE = "GITHUB_RUNNER_OFFLINE"
    APPLICATION_ERROR = "APPLICATION_ERROR"


class AlertLevel(str, Enum):
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"

    @property
    def severity(self) -> int:
        return 2 if self is AlertLevel.CRITICAL else 1


AlertKey = Tuple[AlertType, str]


def alert_id_for(alert_type: AlertType, subject: str) -> str:
    """Stable alert id derived from the (type, subject) key."""
    digest = hashlib.sha1(f"{alert_type.value}:{subject}".encode("utf-8"))
    return digest.hexdigest()[:16]


@dataclass(frozen=True)
class CandidateAlert:
    """An evaluator's proposal for one cycle, before identity and dedup."""
    type: AlertType
    subject: str  # "host", "daemon", container id or runner id
    level: AlertLevel
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> AlertKey:
        return (self.type, self.subject)


@dataclass(frozen=True)
class Alert:
    """Committed, notifiable alert record."""
    id: str
    type: AlertType
    subject: str
    level: AlertLevel
    message: str
    timestamp: datetime  # last time the condition was observed
    raised_at: datetime
    details: Dict[str, Any] = field(default_factory=dict)
    acknowledged: bool = False

    @property
    def key(self) -> AlertKey:
        return (self.type, self.subject)


class TransitionKind(str, Enum):
    RAISED = "raised"
    UPDATED = "updated"
    RESOLVED = "resolved"


@dataclass(frozen=True)
class AlertTransition:
    kind: TransitionKind
    alert: Alert
    timestamp: datetime
