"""
Unit tests for health aggregation and summaries.
"""

import itertools
from datetime import timedelta

import pytest

from fleetmon.core.alerts import Alert, AlertLevel, AlertType, alert_id_for
from fleetmon.core.health import (
    CollectorHealth,
    OverallStatus,
    aggregate,
    determine_overall_status,
    summarize,
)
from tests.conftest import START


def make_alert(level, subject="host", alert_type=AlertType.CPU_HIGH, when=START,
               acknowledged=False):
    return Alert(
        id=alert_id_for(alert_type, subject),
        type=alert_type,
        subject=subject,
        level=level,
        message=f"{alert_type.value} {subject}",
        timestamp=when,
        raised_at=when,
        acknowledged=acknowledged,
    )


HEALTHY_COLLECTOR = CollectorHealth("system", has_succeeded=True)
STALE_COLLECTOR = CollectorHealth("docker", has_succeeded=True, is_stale=True,
                                  consecutive_failures=1)
NEVER_SUCCEEDED = CollectorHealth("github_runner", is_stale=True, consecutive_failures=3)


class TestOverallStatus:
    """Test cases for status precedence."""

    @pytest.mark.parametrize("levels,stale", list(itertools.product(
        [(), (AlertLevel.WARNING,), (AlertLevel.CRITICAL,),
         (AlertLevel.WARNING, AlertLevel.CRITICAL), (AlertLevel.WARNING, AlertLevel.WARNING)],
        [False, True],
    )))
    def test_precedence_law(self, levels, stale):
        alerts = [make_alert(level, subject=str(i)) for i, level in enumerate(levels)]
        collectors = [HEALTHY_COLLECTOR, STALE_COLLECTOR if stale else HEALTHY_COLLECTOR]

        status = determine_overall_status(alerts, collectors)

        if AlertLevel.CRITICAL in levels:
            assert status is OverallStatus.CRITICAL
        elif AlertLevel.WARNING in levels or stale:
            assert status is OverallStatus.WARNING
        else:
            assert status is OverallStatus.HEALTHY

    def test_unknown_when_nothing_ever_succeeded(self):
        assert determine_overall_status([], [NEVER_SUCCEEDED]) is OverallStatus.UNKNOWN

    def test_unknown_without_collectors(self):
        assert determine_overall_status([], []) is OverallStatus.UNKNOWN

    def test_one_success_is_enough_to_leave_unknown(self):
        status = determine_overall_status([], [NEVER_SUCCEEDED, HEALTHY_COLLECTOR])
        assert status is OverallStatus.WARNING

    def test_stale_never_reports_healthy(self):
        assert determine_overall_status([], [STALE_COLLECTOR]) is OverallStatus.WARNING


class TestAggregate:
    """Test cases for the SystemHealth projection."""

    def test_carries_snapshots(self, clock, make_metrics, make_docker, make_runner):
        metrics = make_metrics()
        docker = make_docker()
        runners = [make_runner()]

        health = aggregate(metrics, docker, runners, [], [HEALTHY_COLLECTOR], clock())

        assert health.system is metrics
        assert health.docker is docker
        assert health.runners == tuple(runners)
        assert health.overall_status is OverallStatus.HEALTHY
        assert health.timestamp == clock()

    def test_alerts_bounded_by_recency(self, clock):
        alerts = [
            make_alert(AlertLevel.WARNING, subject=str(i), when=clock() + timedelta(seconds=i))
            for i in range(5)
        ]

        health = aggregate(None, None, [], alerts, [HEALTHY_COLLECTOR], clock(), max_alerts=3)

        assert [a.subject for a in health.alerts] == ["4", "3", "2"]

    def test_status_uses_all_alerts_not_just_shown(self, clock):
        critical = make_alert(AlertLevel.CRITICAL, subject="old", when=clock())
        newer = [
            make_alert(AlertLevel.WARNING, subject=str(i), when=clock() + timedelta(seconds=i + 1))
            for i in range(3)
        ]

        health = aggregate(None, None, [], [critical] + newer, [HEALTHY_COLLECTOR], clock(),
                           max_alerts=2)

        assert health.overall_status is OverallStatus.CRITICAL
        assert critical not in health.alerts


class TestSummarize:
    """Test cases for dashboard counters."""

    def test_counts(self, clock, make_docker, make_container, make_runner):
        docker = make_docker(
            make_container("a", name="web"),
            make_container("b", name="db", state="exited", status="Exited (1)"),
            make_container("not-found:cache", name="cache", state="not-found",
                           status="Container not found"),
        )
        runners = [make_runner(1), make_runner(2, online=False), make_runner(3, busy=True)]
        alerts = [
            make_alert(AlertLevel.CRITICAL, "b", AlertType.CONTAINER_DOWN),
            make_alert(AlertLevel.WARNING, "2", AlertType.GITHUB_RUNNER_OFFLINE),
            make_alert(AlertLevel.WARNING, "host", acknowledged=True),
        ]
        health = aggregate(None, docker, runners, alerts, [HEALTHY_COLLECTOR], clock())

        summary = summarize(health, alerts)

        assert summary.overall_status is OverallStatus.CRITICAL
        assert summary.docker_running is True
        assert (summary.containers.total, summary.containers.running,
                summary.containers.stopped, summary.containers.not_found) == (3, 1, 1, 1)
        assert (summary.runners.total, summary.runners.online,
                summary.runners.offline, summary.runners.busy) == (3, 2, 1, 1)
        assert (summary.alerts.critical, summary.alerts.warning, summary.alerts.total) == (1, 1, 3)

    def test_without_docker(self, clock):
        health = aggregate(None, None, [], [], [NEVER_SUCCEEDED], clock())
        summary = summarize(health, [])

        assert summary.containers is None
        assert summary.docker_running is False
        assert summary.overall_status is OverallStatus.UNKNOWN
