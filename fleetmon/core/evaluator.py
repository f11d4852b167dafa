"""Threshold evaluation: snapshots in, candidate alerts out.

Every function here is pure. Evaluating the same snapshot with the same
thresholds always yields the same candidates, sorted by (type, subject).
"""
from typing import Dict, Iterable, List, Optional

from ..collectors.base import Snapshot
from ..collectors.docker_models import ContainerStatus, DockerStatus
from ..collectors.runner_models import GitHubRunnerStatus
from ..collectors.system_models import SystemMetrics
from ..config.threshold_config import ThresholdConfig
from ..exceptions import EvaluationError
from .alerts import AlertLevel, AlertType, CandidateAlert

HOST_SUBJECT = "host"
DAEMON_SUBJECT = "daemon"

_GB = 1024 ** 3

# States where a stopped container was not intentionally stopped.
_UNEXPECTED_EXIT_STATES = {"dead"}


def evaluate(snapshot: Snapshot, thresholds: ThresholdConfig,
             previous: Optional[Snapshot] = None) -> List[CandidateAlert]:
    """Map one snapshot to candidate alerts.

    ``previous`` is the prior sample of the same collector; only the docker
    rules use it, to detect restart bursts.
    """
    validate(snapshot)
    if isinstance(snapshot, SystemMetrics):
        candidates = _evaluate_system(snapshot, thresholds)
    elif isinstance(snapshot, DockerStatus):
        prior = previous if isinstance(previous, DockerStatus) else None
        candidates = _evaluate_docker(snapshot, thresholds, prior)
    else:
        candidates = _evaluate_runners(snapshot)
    return sorted(candidates, key=lambda c: (c.type.value, c.subject))


def validate(snapshot: Snapshot):
    """Raise EvaluationError when a snapshot is malformed or out of range."""
    if isinstance(snapshot, SystemMetrics):
        for name in ("cpu_usage", "ram_usage", "ssd_usage"):
            value = getattr(snapshot, name)
            if value is None or not 0.0 <= value <= 1.0:
                raise EvaluationError(f"{name} out of range [0, 1]: {value!r}")
        for name in ("ram_total", "ram_used", "ssd_total", "ssd_used"):
            if getattr(snapshot, name) < 0:
                raise EvaluationError(f"{name} must not be negative")
        if snapshot.battery_level is not None and not 0 <= snapshot.battery_level <= 100:
            raise EvaluationError(f"battery_level out of range [0, 100]: {snapshot.battery_level!r}")
    elif isinstance(snapshot, DockerStatus):
        if not snapshot.is_daemon_running and snapshot.containers:
            raise EvaluationError("containers reported while the daemon is down")
        for container in snapshot.containers:
            if container.restart_count < 0:
                raise EvaluationError(f"negative restart count for container {container.id}")
    elif isinstance(snapshot, (tuple, list)):
        for runner in snapshot:
            if not isinstance(runner, GitHubRunnerStatus):
                raise EvaluationError(f"unexpected runner entry: {type(runner).__name__}")
    else:
        raise EvaluationError(f"unsupported snapshot type: {type(snapshot).__name__}")


def _usage_candidate(alert_type: AlertType, label: str, ratio: float,
                     warning: float, critical: float,
                     extra: Optional[Dict[str, object]] = None) -> Optional[CandidateAlert]:
    if ratio > critical:
        level, threshold = AlertLevel.CRITICAL, critical
    elif ratio > warning:
        level, threshold = AlertLevel.WARNING, warning
    else:
        return None
    details = {"value": round(ratio, 4), "threshold": threshold}
    details.update(extra or {})
    return CandidateAlert(
        type=alert_type,
        subject=HOST_SUBJECT,
        level=level,
        message=f"{label} usage exceeded {threshold:.0%}: {ratio:.1%}",
        details=details,
    )


def _evaluate_system(metrics: SystemMetrics, thresholds: ThresholdConfig) -> List[CandidateAlert]:
    candidates = [
        _usage_candidate(AlertType.CPU_HIGH, "CPU", metrics.cpu_usage,
                         thresholds.cpu_warning, thresholds.cpu_critical),
        _usage_candidate(AlertType.RAM_HIGH, "Memory", metrics.ram_usage,
                         thresholds.ram_warning, thresholds.ram_critical,
                         {"used_gb": round(metrics.ram_used / _GB, 1),
                          "total_gb": round(metrics.ram_total / _GB, 1)}),
        _usage_candidate(AlertType.SSD_HIGH, "Disk", metrics.ssd_usage,
                         thresholds.ssd_warning, thresholds.ssd_critical,
                         {"used_gb": round(metrics.ssd_used / _GB, 1),
                          "total_gb": round(metrics.ssd_total / _GB, 1)}),
        _battery_candidate(metrics, thresholds),
    ]
    return [candidate for candidate in candidates if candidate is not None]


def _battery_candidate(metrics: SystemMetrics, thresholds: ThresholdConfig) -> Optional[CandidateAlert]:
    # Only alert when running on battery.
    if metrics.battery_level is None or metrics.is_power_connected is not False:
        return None
    if metrics.battery_level < thresholds.battery_critical:
        level, threshold = AlertLevel.CRITICAL, thresholds.battery_critical
    elif metrics.battery_level < thresholds.battery_warning:
        level, threshold = AlertLevel.WARNING, thresholds.battery_warning
    else:
        return None
    return CandidateAlert(
        type=AlertType.BATTERY_LOW,
        subject=HOST_SUBJECT,
        level=level,
        message=f"Battery below {threshold}%: {metrics.battery_level}% (power disconnected)",
        details={"value": metrics.battery_level, "threshold": threshold, "power_connected": False},
    )


def _evaluate_docker(status: DockerStatus, thresholds: ThresholdConfig,
                     previous: Optional[DockerStatus]) -> List[CandidateAlert]:
    if not status.is_daemon_running:
        return [CandidateAlert(
            type=AlertType.DOCKER_DAEMON_DOWN,
            subject=DAEMON_SUBJECT,
            level=AlertLevel.CRITICAL,
            message="Docker daemon is not responding",
            details={"status": "down"},
        )]

    previous_counts = _restart_counts(previous.containers) if previous else {}
    candidates = []
    for container in status.containers:
        if _is_unexpectedly_down(container):
            candidates.append(CandidateAlert(
                type=AlertType.CONTAINER_DOWN,
                subject=container.id,
                level=AlertLevel.CRITICAL,
                message=f"Container '{container.name}' is down ({container.status})",
                details={
                    "containerId": container.id,
                    "container": container.name,
                    "state": container.state,
                    "exitCode": container.exit_code,
                },
            ))

        restarting = _restart_candidate(container, previous_counts.get(container.id), thresholds)
        if restarting is not None:
            candidates.append(restarting)
    return candidates


def _is_unexpectedly_down(container: ContainerStatus) -> bool:
    if container.is_running or container.is_restarting:
        return False
    if container.state in _UNEXPECTED_EXIT_STATES:
        return True
    if container.state == "exited":
        # Unknown exit codes count as failures; exit 0 is a deliberate stop.
        return container.exit_code != 0
    return False


def _restart_candidate(container: ContainerStatus, previous_count: Optional[int],
                       thresholds: ThresholdConfig) -> Optional[CandidateAlert]:
    delta = 0
    if previous_count is not None:
        delta = container.restart_count - previous_count
    burst = delta > thresholds.restart_burst
    if not (container.is_restarting or burst):
        return None

    if burst:
        message = (f"Container '{container.name}' restarted {delta} times "
                   f"since the previous sample")
    else:
        message = f"Container '{container.name}' is restarting"
    return CandidateAlert(
        type=AlertType.CONTAINER_RESTARTING,
        subject=container.id,
        level=AlertLevel.WARNING,
        message=message,
        details={
            "containerId": container.id,
            "container": container.name,
            "restartCount": container.restart_count,
            "restartDelta": delta,
        },
    )


def _restart_counts(containers: Iterable[ContainerStatus]) -> Dict[str, int]:
    return {container.id: container.restart_count for container in containers}


def _evaluate_runners(runners: Iterable[GitHubRunnerStatus]) -> List[CandidateAlert]:
    return [
        CandidateAlert(
            type=AlertType.GITHUB_RUNNER_OFFLINE,
            subject=str(runner.id),
            level=AlertLevel.WARNING,
            message=f"GitHub runner '{runner.name}' is offline",
            details={"runnerId": runner.id, "runner": runner.name, "status": runner.status},
        )
        for runner in runners
        if not runner.is_online
    ]
