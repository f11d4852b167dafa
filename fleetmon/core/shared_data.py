"""Shared state container for thread-safe snapshot access."""
import threading
from collections import deque
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Any, Deque, Dict, Iterable, List, Optional, Tuple

from ..collectors.base import Snapshot
from ..collectors.docker_models import DockerStatus
from ..collectors.runner_models import GitHubRunnerStatus
from ..collectors.system_models import SystemMetrics
from .alerts import AlertTransition, TransitionKind
from .health import CollectorHealth, HealthCheckResult, OverallStatus, SystemHealth


@dataclass(frozen=True)
class CollectorSlot:
    """Latest and prior successful snapshot of one collector."""
    health: CollectorHealth
    latest: Optional[Snapshot] = None
    previous: Optional[Snapshot] = None
    check: Optional[HealthCheckResult] = None


class MonitorState:
    """Lifecycle-scoped store of collector snapshots and the last health view.

    Slots are replaced wholesale under the lock, so readers always get a
    consistent copy and an abandoned poll can never leave half-written state.
    Recent snapshots are kept per collector for ``history_retention``, and
    the last ``alert_history_size`` raise and resolve transitions are kept
    so resolved alerts stay visible.
    """

    def __init__(self, started_at: datetime,
                 history_retention: timedelta = timedelta(minutes=10),
                 alert_history_size: int = 100):
        """Initialize the store with an UNKNOWN health view."""
        self._lock = threading.Lock()
        self._slots: Dict[str, CollectorSlot] = {}
        self._history: Dict[str, Deque[Tuple[datetime, Snapshot]]] = {}
        self._history_retention = history_retention
        self._alert_history: Deque[AlertTransition] = deque(maxlen=alert_history_size)
        self._health = SystemHealth(overall_status=OverallStatus.UNKNOWN, timestamp=started_at)

    def register_collector(self, name: str):
        """Add an empty slot for a collector."""
        with self._lock:
            self._slots.setdefault(name, CollectorSlot(health=CollectorHealth(name=name)))
            self._history.setdefault(name, deque())

    def record_success(self, name: str, snapshot: Snapshot, timestamp: datetime):
        """Store a validated snapshot, keeping the previous one for deltas."""
        with self._lock:
            slot = self._slots[name]
            self._slots[name] = CollectorSlot(
                health=replace(
                    slot.health,
                    has_succeeded=True,
                    is_stale=False,
                    consecutive_failures=0,
                    last_success=timestamp,
                    last_error=None,
                ),
                latest=snapshot,
                previous=slot.latest,
                check=HealthCheckResult(
                    component=name,
                    is_healthy=True,
                    message="Collected",
                    timestamp=timestamp,
                ),
            )
            history = self._history.setdefault(name, deque())
            history.append((timestamp, snapshot))
            cutoff = timestamp - self._history_retention
            while history and history[0][0] < cutoff:
                history.popleft()

    def record_failure(self, name: str, reason: str, timestamp: datetime,
                       details: Optional[Dict[str, Any]] = None):
        """Mark a collector stale; its last good snapshot is kept."""
        with self._lock:
            slot = self._slots[name]
            failures = slot.health.consecutive_failures + 1
            self._slots[name] = replace(
                slot,
                health=replace(
                    slot.health,
                    is_stale=True,
                    consecutive_failures=failures,
                    last_error=reason,
                ),
                check=HealthCheckResult(
                    component=name,
                    is_healthy=False,
                    message=reason,
                    timestamp=timestamp,
                    details=dict(details or {}, consecutive_failures=failures),
                ),
            )

    def get_slots(self) -> Dict[str, CollectorSlot]:
        """Copy of every collector slot."""
        with self._lock:
            return dict(self._slots)

    def get_collector_health(self) -> List[CollectorHealth]:
        with self._lock:
            return [self._slots[name].health for name in sorted(self._slots)]

    def get_health_checks(self) -> List[HealthCheckResult]:
        with self._lock:
            return [self._slots[name].check for name in sorted(self._slots)
                    if self._slots[name].check is not None]

    def get_system_data(self) -> Tuple[Optional[SystemMetrics], Optional[DockerStatus],
                                       Tuple[GitHubRunnerStatus, ...]]:
        """Latest metrics, docker status and runner list."""
        metrics = None
        docker = None
        runners: Tuple[GitHubRunnerStatus, ...] = ()
        for slot in self.get_slots().values():
            if isinstance(slot.latest, SystemMetrics):
                metrics = slot.latest
            elif isinstance(slot.latest, DockerStatus):
                docker = slot.latest
            elif slot.latest is not None:
                runners = tuple(slot.latest)
        return metrics, docker, runners

    def get_history(self, name: str, since: Optional[datetime] = None) -> List[Snapshot]:
        """Retained snapshots of one collector, oldest first."""
        with self._lock:
            entries = list(self._history.get(name, ()))
        return [snapshot for timestamp, snapshot in entries if since is None or timestamp >= since]

    def record_transitions(self, transitions: Iterable[AlertTransition]):
        """Keep raise and resolve transitions in the bounded alert history."""
        with self._lock:
            for transition in transitions:
                if transition.kind is not TransitionKind.UPDATED:
                    self._alert_history.append(transition)

    def get_alert_history(self, limit: Optional[int] = None) -> List[AlertTransition]:
        """Recent raise and resolve transitions, newest first."""
        with self._lock:
            history = list(reversed(self._alert_history))
        return history if limit is None else history[:limit]

    def set_health(self, health: SystemHealth):
        with self._lock:
            self._health = health

    def get_health(self) -> SystemHealth:
        with self._lock:
            return self._health
