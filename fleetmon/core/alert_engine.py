"""Alert lifecycle: identity, dedup, raise/update/resolve and acknowledge."""
import logging
import threading
from dataclasses import replace
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from ..exceptions import AlertNotFound
from .alerts import (
    Alert,
    AlertKey,
    AlertLevel,
    AlertTransition,
    AlertType,
    CandidateAlert,
    TransitionKind,
    alert_id_for,
)

logger = logging.getLogger(__name__)


def _sort_key(key: AlertKey):
    alert_type, subject = key
    return (alert_type.value, subject)


def _details_key(candidate: CandidateAlert):
    return sorted((key, repr(value)) for key, value in candidate.details.items())


class AlertEngine:
    """Owns the open-alert set; the only writer of alert state.

    The open set is keyed by (type, subject), so at most one alert is open
    per key and the outcome of an update never depends on candidate order.
    """

    def __init__(self):
        """Initialize with an empty open set."""
        self._lock = threading.Lock()
        self._open: Dict[AlertKey, Alert] = {}

    def update(self, candidates: Iterable[CandidateAlert], now: datetime) -> List[AlertTransition]:
        """Apply one cycle's candidates and return the resulting transitions."""
        merged = self._merge(candidates)
        transitions: List[AlertTransition] = []

        with self._lock:
            for key in sorted(set(merged) | set(self._open), key=_sort_key):
                candidate = merged.get(key)
                current = self._open.get(key)

                if candidate is not None and current is None:
                    alert = Alert(
                        id=alert_id_for(candidate.type, candidate.subject),
                        type=candidate.type,
                        subject=candidate.subject,
                        level=candidate.level,
                        message=candidate.message,
                        details=dict(candidate.details),
                        timestamp=now,
                        raised_at=now,
                    )
                    self._open[key] = alert
                    transitions.append(AlertTransition(TransitionKind.RAISED, alert, now))

                elif candidate is not None:
                    changed = (
                        candidate.level != current.level
                        or candidate.message != current.message
                        or candidate.details != current.details
                    )
                    alert = replace(
                        current,
                        level=candidate.level,
                        message=candidate.message,
                        details=dict(candidate.details),
                        timestamp=now,
                    )
                    self._open[key] = alert
                    if changed:
                        transitions.append(AlertTransition(TransitionKind.UPDATED, alert, now))

                else:
                    resolved = replace(self._open.pop(key), acknowledged=False)
                    transitions.append(AlertTransition(TransitionKind.RESOLVED, resolved, now))

        for transition in transitions:
            if transition.kind is not TransitionKind.UPDATED:
                logger.info("Alert %s: [%s] %s %s - %s", transition.kind.value,
                            transition.alert.level.value, transition.alert.type.value,
                            transition.alert.subject, transition.alert.message)
        return transitions

    def acknowledge(self, alert_id: str) -> Alert:
        """Mark an open alert acknowledged; raises AlertNotFound otherwise."""
        with self._lock:
            for key, alert in self._open.items():
                if alert.id == alert_id:
                    acknowledged = replace(alert, acknowledged=True)
                    self._open[key] = acknowledged
                    logger.info("Alert acknowledged: %s %s", alert.type.value, alert.subject)
                    return acknowledged
        raise AlertNotFound(alert_id)

    def open_alerts(self) -> List[Alert]:
        """Copy of the open set, ordered by key."""
        with self._lock:
            return [self._open[key] for key in sorted(self._open, key=_sort_key)]

    def list_alerts(self, level: Optional[AlertLevel] = None,
                    alert_type: Optional[AlertType] = None,
                    acknowledged_only: bool = False) -> List[Alert]:
        """Open alerts matching the filter, most recent first."""
        alerts = [
            alert for alert in self.open_alerts()
            if (level is None or alert.level == level)
            and (alert_type is None or alert.type == alert_type)
            and (not acknowledged_only or alert.acknowledged)
        ]
        return sorted(alerts, key=lambda alert: (alert.timestamp, alert.raised_at), reverse=True)

    def _merge(self, candidates: Iterable[CandidateAlert]) -> Dict[AlertKey, CandidateAlert]:
        """Collapse duplicate keys to the most severe candidate."""
        merged: Dict[AlertKey, CandidateAlert] = {}
        for candidate in candidates:
            existing = merged.get(candidate.key)
            if existing is None or self._outranks(candidate, existing):
                merged[candidate.key] = candidate
        return merged

    @staticmethod
    def _outranks(candidate: CandidateAlert, existing: CandidateAlert) -> bool:
        if candidate.level.severity != existing.level.severity:
            return candidate.level.severity > existing.level.severity
        # Same severity: pick by message, then details, so the result is order independent.
        if candidate.message != existing.message:
            return candidate.message < existing.message
        return _details_key(candidate) < _details_key(existing)
