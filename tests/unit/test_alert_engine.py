"""
Unit tests for the alert lifecycle.
"""

import pytest

from fleetmon.core.alert_engine import AlertEngine
from fleetmon.core.alerts import (
    AlertLevel,
    AlertType,
    CandidateAlert,
    TransitionKind,
    alert_id_for,
)
from fleetmon.exceptions import AlertNotFound


def candidate(alert_type=AlertType.CPU_HIGH, subject="host", level=AlertLevel.WARNING,
              message="CPU usage exceeded 85%: 92.0%", details=None):
    return CandidateAlert(alert_type, subject, level, message, details or {"value": 0.92})


@pytest.fixture
def engine():
    return AlertEngine()


class TestLifecycle:
    """Test cases for raise, update and resolve."""

    def test_raise(self, engine, clock):
        transitions = engine.update([candidate()], clock())

        assert [t.kind for t in transitions] == [TransitionKind.RAISED]
        alert = transitions[0].alert
        assert alert.id == alert_id_for(AlertType.CPU_HIGH, "host")
        assert alert.acknowledged is False
        assert alert.raised_at == clock()
        assert engine.open_alerts() == [alert]

    def test_unchanged_repeat_emits_nothing(self, engine, clock):
        engine.update([candidate()], clock())
        clock.advance(15)

        transitions = engine.update([candidate()], clock())

        assert transitions == []
        assert engine.open_alerts()[0].timestamp == clock()

    def test_changed_repeat_is_update_with_same_identity(self, engine, clock):
        raised = engine.update([candidate()], clock())[0].alert
        clock.advance(15)

        transitions = engine.update(
            [candidate(message="CPU usage exceeded 85%: 93.0%", details={"value": 0.93})], clock())

        assert [t.kind for t in transitions] == [TransitionKind.UPDATED]
        updated = transitions[0].alert
        assert updated.id == raised.id
        assert updated.raised_at == raised.raised_at
        assert updated.details == {"value": 0.93}

    def test_level_change_is_update(self, engine, clock):
        engine.update([candidate()], clock())
        transitions = engine.update([candidate(level=AlertLevel.CRITICAL)], clock())

        assert transitions[0].kind is TransitionKind.UPDATED
        assert engine.open_alerts()[0].level is AlertLevel.CRITICAL

    def test_resolve_when_condition_clears(self, engine, clock):
        engine.update([candidate()], clock())

        transitions = engine.update([], clock())

        assert [t.kind for t in transitions] == [TransitionKind.RESOLVED]
        assert engine.open_alerts() == []

    def test_identity_stable_for_persisting_container(self, engine, clock):
        down = candidate(AlertType.CONTAINER_DOWN, "abc123", AlertLevel.CRITICAL, "down")
        first = engine.update([down], clock())[0].alert
        for _ in range(3):
            clock.advance(30)
            engine.update([down], clock())

        assert [a.id for a in engine.open_alerts()] == [first.id]

    def test_reraise_after_resolve_is_new_alert(self, engine, clock):
        engine.update([candidate()], clock())
        engine.update([], clock())
        clock.advance(60)

        transitions = engine.update([candidate()], clock())

        assert transitions[0].kind is TransitionKind.RAISED
        assert transitions[0].alert.raised_at == clock()


class TestDedup:
    """At most one open alert per (type, subject)."""

    def test_duplicate_candidates_collapse_to_most_severe(self, engine, clock):
        transitions = engine.update([
            candidate(level=AlertLevel.WARNING),
            candidate(level=AlertLevel.CRITICAL, message="critical"),
        ], clock())

        assert len(transitions) == 1
        assert len(engine.open_alerts()) == 1
        assert engine.open_alerts()[0].level is AlertLevel.CRITICAL

    def test_distinct_subjects_are_distinct_alerts(self, engine, clock):
        engine.update([
            candidate(AlertType.CONTAINER_DOWN, "a", AlertLevel.CRITICAL, "a down"),
            candidate(AlertType.CONTAINER_DOWN, "b", AlertLevel.CRITICAL, "b down"),
        ], clock())

        keys = [alert.key for alert in engine.open_alerts()]
        assert keys == [(AlertType.CONTAINER_DOWN, "a"), (AlertType.CONTAINER_DOWN, "b")]
        assert len(set(keys)) == len(keys)

    def test_order_independent(self, clock):
        batch = [
            candidate(AlertType.GITHUB_RUNNER_OFFLINE, "7", message="runner 7 offline"),
            candidate(AlertType.CONTAINER_DOWN, "x", AlertLevel.CRITICAL, "x down"),
            candidate(),
            candidate(level=AlertLevel.CRITICAL, message="cpu critical"),
        ]
        forward, backward = AlertEngine(), AlertEngine()
        forward.update([candidate(AlertType.SSD_HIGH)], clock())
        backward.update([candidate(AlertType.SSD_HIGH)], clock())

        assert forward.update(batch, clock()) == backward.update(list(reversed(batch)), clock())
        assert forward.open_alerts() == backward.open_alerts()

    def test_same_message_ties_broken_by_details(self, clock):
        low = candidate(details={"value": 0.91})
        high = candidate(details={"value": 0.93})
        forward, backward = AlertEngine(), AlertEngine()

        forward.update([low, high], clock())
        backward.update([high, low], clock())

        assert forward.open_alerts() == backward.open_alerts()
        assert forward.open_alerts()[0].details == {"value": 0.91}


class TestAcknowledge:
    """Test cases for acknowledgement."""

    def test_acknowledge_open_alert(self, engine, clock):
        alert = engine.update([candidate()], clock())[0].alert

        acknowledged = engine.acknowledge(alert.id)

        assert acknowledged.acknowledged is True
        assert engine.open_alerts()[0].acknowledged is True

    def test_acknowledged_survives_update(self, engine, clock):
        alert = engine.update([candidate()], clock())[0].alert
        engine.acknowledge(alert.id)

        transitions = engine.update([candidate(details={"value": 0.94})], clock())

        assert transitions[0].kind is TransitionKind.UPDATED
        assert transitions[0].alert.acknowledged is True

    def test_resolution_clears_acknowledgement(self, engine, clock):
        alert = engine.update([candidate()], clock())[0].alert
        engine.acknowledge(alert.id)

        resolved = engine.update([], clock())[0].alert

        assert resolved.acknowledged is False

    def test_unknown_id(self, engine):
        with pytest.raises(AlertNotFound):
            engine.acknowledge("does-not-exist")

    def test_resolved_alert_cannot_be_acknowledged(self, engine, clock):
        alert = engine.update([candidate()], clock())[0].alert
        engine.update([], clock())

        with pytest.raises(AlertNotFound) as excinfo:
            engine.acknowledge(alert.id)
        assert excinfo.value.alert_id == alert.id


class TestListAlerts:
    """Test cases for filtered listing."""

    def test_filters(self, engine, clock):
        engine.update([
            candidate(),
            candidate(AlertType.DOCKER_DAEMON_DOWN, "daemon", AlertLevel.CRITICAL, "daemon down"),
        ], clock())
        cpu_id = alert_id_for(AlertType.CPU_HIGH, "host")
        engine.acknowledge(cpu_id)

        assert [a.type for a in engine.list_alerts(level=AlertLevel.CRITICAL)] == [
            AlertType.DOCKER_DAEMON_DOWN
        ]
        assert [a.id for a in engine.list_alerts(alert_type=AlertType.CPU_HIGH)] == [cpu_id]
        assert [a.id for a in engine.list_alerts(acknowledged_only=True)] == [cpu_id]
        assert len(engine.list_alerts()) == 2

    def test_most_recent_first(self, engine, clock):
        engine.update([candidate()], clock())
        clock.advance(10)
        engine.update([candidate(), candidate(AlertType.RAM_HIGH, message="ram")], clock())

        # Both refreshed this cycle; the later raise sorts first.
        assert [a.type for a in engine.list_alerts()] == [AlertType.RAM_HIGH, AlertType.CPU_HIGH]
