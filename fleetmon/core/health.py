"""Health aggregation: many partial observations reduced to one status."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..collectors.docker_models import NOT_FOUND_STATE, DockerStatus
from ..collectors.runner_models import GitHubRunnerStatus
from ..collectors.system_models import SystemMetrics
from .alerts import Alert, AlertLevel


class OverallStatus(str, Enum):
    HEALTHY = "HEALTHY"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class HealthCheckResult:
    """Component-level verdict, one per collector per cycle."""
    component: str
    is_healthy: bool
    message: str
    timestamp: datetime
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CollectorHealth:
    """Polling track record of one collector."""
    name: str
    has_succeeded: bool = False
    is_stale: bool = False
    consecutive_failures: int = 0
    last_success: Optional[datetime] = None
    last_error: Optional[str] = None


@dataclass(frozen=True)
class SystemHealth:
    """Read-only projection of all signals; rebuilt every cycle."""
    overall_status: OverallStatus
    timestamp: datetime
    system: Optional[SystemMetrics] = None
    docker: Optional[DockerStatus] = None
    runners: Tuple[GitHubRunnerStatus, ...] = ()
    alerts: Tuple[Alert, ...] = ()
    health_checks: Tuple[HealthCheckResult, ...] = ()


def determine_overall_status(open_alerts: Sequence[Alert],
                             collectors: Sequence[CollectorHealth]) -> OverallStatus:
    """Reduce alerts and collector state, first match wins.

    UNKNOWN when no collector ever produced a snapshot, then CRITICAL for any
    critical alert, then WARNING for any warning alert or stale collector.
    """
    if not any(collector.has_succeeded for collector in collectors):
        return OverallStatus.UNKNOWN
    if any(alert.level is AlertLevel.CRITICAL for alert in open_alerts):
        return OverallStatus.CRITICAL
    if any(alert.level is AlertLevel.WARNING for alert in open_alerts):
        return OverallStatus.WARNING
    if any(collector.is_stale for collector in collectors):
        return OverallStatus.WARNING
    return OverallStatus.HEALTHY


def aggregate(metrics: Optional[SystemMetrics], docker: Optional[DockerStatus],
              runners: Sequence[GitHubRunnerStatus], open_alerts: Sequence[Alert],
              collectors: Sequence[CollectorHealth], now: datetime,
              max_alerts: int = 20,
              health_checks: Sequence[HealthCheckResult] = ()) -> SystemHealth:
    """Build the SystemHealth view from the latest snapshots and open alerts."""
    recent = sorted(open_alerts, key=lambda alert: (alert.timestamp, alert.raised_at),
                    reverse=True)[:max_alerts]
    return SystemHealth(
        overall_status=determine_overall_status(open_alerts, collectors),
        timestamp=now,
        system=metrics,
        docker=docker,
        runners=tuple(runners),
        alerts=tuple(recent),
        health_checks=tuple(health_checks),
    )


@dataclass(frozen=True)
class ContainerStats:
    total: int
    running: int
    stopped: int
    not_found: int


@dataclass(frozen=True)
class RunnerStats:
    total: int
    online: int
    offline: int
    busy: int


@dataclass(frozen=True)
class AlertSummary:
    critical: int
    warning: int
    total: int


@dataclass(frozen=True)
class HealthSummary:
    """Dashboard counters derived from a SystemHealth."""
    overall_status: OverallStatus
    docker_running: bool
    runners: RunnerStats
    alerts: AlertSummary
    timestamp: datetime
    containers: Optional[ContainerStats] = None
    system: Optional[SystemMetrics] = None


def summarize(health: SystemHealth, open_alerts: Sequence[Alert]) -> HealthSummary:
    """Count containers, runners and unacknowledged alerts by level."""
    containers = None
    if health.docker is not None:
        items = health.docker.containers
        containers = ContainerStats(
            total=len(items),
            running=sum(1 for c in items if c.is_running),
            stopped=sum(1 for c in items if not c.is_running and c.state != NOT_FOUND_STATE),
            not_found=sum(1 for c in items if c.state == NOT_FOUND_STATE),
        )

    runners = RunnerStats(
        total=len(health.runners),
        online=sum(1 for r in health.runners if r.is_online),
        offline=sum(1 for r in health.runners if not r.is_online),
        busy=sum(1 for r in health.runners if r.is_busy),
    )

    unacknowledged: List[Alert] = [alert for alert in open_alerts if not alert.acknowledged]
    alerts = AlertSummary(
        critical=sum(1 for a in unacknowledged if a.level is AlertLevel.CRITICAL),
        warning=sum(1 for a in unacknowledged if a.level is AlertLevel.WARNING),
        total=len(open_alerts),
    )

    return HealthSummary(
        overall_status=health.overall_status,
        docker_running=bool(health.docker and health.docker.is_daemon_running),
        runners=runners,
        alerts=alerts,
        timestamp=health.timestamp,
        containers=containers,
        system=health.system,
    )
