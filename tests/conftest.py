"""Shared fixtures: a controllable clock, fake data sources and snapshot builders."""
import threading
from datetime import datetime, timedelta, timezone

import pytest

from fleetmon.collectors.base import DataSource
from fleetmon.collectors.docker_models import ContainerStatus, DockerStatus
from fleetmon.collectors.runner_models import GitHubRunnerStatus
from fleetmon.collectors.system_models import SystemMetrics
from fleetmon.core.notifier import NotificationSink
from fleetmon.exceptions import DeliveryError

START = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, start=START):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


class ScriptedSource(DataSource):
    """Returns (or raises) the scripted items in order, repeating the last one."""

    def __init__(self, *items):
        self.items = list(items)
        self.calls = 0

    def fetch(self):
        index = min(self.calls, len(self.items) - 1)
        self.calls += 1
        item = self.items[index]
        if isinstance(item, Exception):
            raise item
        return item

    def push(self, item):
        """Make ``item`` the next and repeating result."""
        self.items = self.items[:self.calls] + [item]


class BlockingSource(DataSource):
    """Blocks every fetch until released."""

    def __init__(self):
        self.release = threading.Event()
        self.calls = 0

    def fetch(self):
        self.calls += 1
        self.release.wait(timeout=5)
        return ()


class RecordingSink(NotificationSink):
    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail

    def send(self, transition):
        if self.fail:
            raise DeliveryError("webhook unreachable")
        self.sent.append(transition)


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def make_metrics():
    def factory(cpu=0.10, ram=0.20, ssd=0.30, battery=None, power=None, timestamp=START):
        gb = 1024 ** 3
        return SystemMetrics(
            cpu_usage=cpu,
            ram_usage=ram,
            ram_total=16 * gb,
            ram_used=int(16 * gb * ram),
            ssd_usage=ssd,
            ssd_total=512 * gb,
            ssd_used=int(512 * gb * ssd),
            battery_level=battery,
            is_power_connected=power,
            timestamp=timestamp,
        )
    return factory


@pytest.fixture
def make_container():
    def factory(container_id="abc123", name="web", state="running", status="Up 2 hours",
                restart_count=0, timestamp=START):
        return ContainerStatus(
            name=name,
            id=container_id,
            state=state,
            status=status,
            is_running=state == "running",
            is_restarting=state == "restarting",
            restart_count=restart_count,
            timestamp=timestamp,
        )
    return factory


@pytest.fixture
def make_docker():
    def factory(*containers, running=True, timestamp=START):
        return DockerStatus(is_daemon_running=running, containers=tuple(containers),
                            timestamp=timestamp)
    return factory


@pytest.fixture
def make_runner():
    def factory(runner_id=1, name="runner-1", online=True, busy=False, timestamp=START):
        return GitHubRunnerStatus(
            id=runner_id,
            name=name,
            status="online" if online else "offline",
            is_online=online,
            is_busy=busy,
            labels=frozenset({"self-hosted", "linux"}),
            timestamp=timestamp,
        )
    return factory


@pytest.fixture
def recording_sink():
    return RecordingSink()
