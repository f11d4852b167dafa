"""Data collection management: collector threads, cycles and queries."""
import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from ..collectors.base import Collector, Snapshot
from ..collectors.docker_collector import DockerEngineSource
from ..collectors.runner_collector import GitHubRunnerSource
from ..collectors.system_collector import HostMetricsSource
from ..config.config import Config
from ..exceptions import EvaluationError
from .alert_engine import AlertEngine
from .alerts import Alert, AlertLevel, AlertTransition, AlertType
from .evaluator import evaluate, validate
from .health import HealthSummary, SystemHealth, aggregate, summarize
from .notifier import LogSink, NotificationDispatcher, NotificationSink, SlackWebhookSink
from .shared_data import MonitorState

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

SYSTEM_COLLECTOR = "system"
DOCKER_COLLECTOR = "docker"
RUNNER_COLLECTOR = "github_runner"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def build_collectors(config: Config, clock: Clock) -> List[Collector]:
    """Create the enabled collectors with their real data sources."""
    collection = config.collection
    collectors = []
    if collection.system.enabled:
        source = HostMetricsSource(clock, cpu_sample_seconds=collection.system.cpu_sample_seconds)
        collectors.append(Collector(SYSTEM_COLLECTOR, source, collection.system.interval,
                                    collection.system.timeout, clock))
    if collection.docker.enabled:
        source = DockerEngineSource(
            clock,
            host=collection.docker.host,
            monitored_containers=collection.docker.monitored_containers,
            timeout=collection.docker.timeout,
        )
        collectors.append(Collector(DOCKER_COLLECTOR, source, collection.docker.interval,
                                    collection.docker.timeout, clock))
    if collection.github_runner.enabled:
        runner = collection.github_runner
        source = GitHubRunnerSource(clock, runner.token, runner.owner, runner.repo,
                                    timeout=runner.timeout)
        collectors.append(Collector(RUNNER_COLLECTOR, source, runner.interval,
                                    runner.timeout, clock))
    return collectors


def build_sink(config: Config) -> NotificationSink:
    if config.notifications.slack.webhook_url:
        return SlackWebhookSink(config.notifications.slack)
    return LogSink()


class DataCollectionManager:
    """Runs collectors on their own cadence and owns the monitoring state.

    Every finished poll triggers one cycle: all latest snapshots are
    evaluated, the merged candidates go through a single alert engine update,
    transitions are dispatched and the health view is rebuilt. Cycles are
    serialized; queries only read copies.
    """

    def __init__(self, config: Config, collectors: List[Collector],
                 sink: Optional[NotificationSink] = None, clock: Clock = utc_now):
        """Initialize the manager and its state container."""
        self.config = config
        self.clock = clock
        self.collectors = list(collectors)
        self.history_retention = timedelta(minutes=config.history.metrics_retention_minutes)
        self.state = MonitorState(
            started_at=clock(),
            history_retention=self.history_retention,
            alert_history_size=config.history.alert_history_size,
        )
        self.alert_engine = AlertEngine()
        self.dispatcher = NotificationDispatcher(sink or LogSink(), config.notifications, clock)
        self.threads: List[threading.Thread] = []
        self._stop = threading.Event()
        self._cycle_lock = threading.Lock()

        for collector in self.collectors:
            self.state.register_collector(collector.name)

    @classmethod
    def from_config(cls, config: Config, clock: Clock = utc_now) -> "DataCollectionManager":
        """Build a manager wired to the real data sources and sink."""
        return cls(config, build_collectors(config, clock), build_sink(config), clock)

    def start_collection(self):
        """Start one polling thread per collector."""
        self._stop.clear()
        self.dispatcher.start()
        for collector in self.collectors:
            thread = threading.Thread(
                target=self._collect_loop,
                args=(collector,),
                name=f"collector-{collector.name}",
                daemon=True,
            )
            thread.start()
            self.threads.append(thread)
        logger.info("Started %d collectors", len(self.collectors))

    def stop_collection(self):
        """Stop all polling threads; in-flight fetches finish or are abandoned."""
        self._stop.set()
        for collector, thread in zip(self.collectors, self.threads):
            if thread.is_alive():
                thread.join(timeout=collector.timeout + 1)
        self.threads = []
        self.dispatcher.stop()
        for collector in self.collectors:
            collector.close()
        logger.info("Stopped collection")

    def poll_once(self) -> SystemHealth:
        """Poll every collector once in turn, running a cycle after each."""
        for collector in self.collectors:
            self.poll_collector(collector)
        return self.get_current_health()

    def poll_collector(self, collector: Collector):
        """Poll one collector, record the outcome and run a cycle."""
        try:
            self._poll_and_record(collector)
        except Exception as e:
            logger.exception("Unexpected error polling %s", collector.name)
            self.state.record_failure(collector.name, f"Unexpected error: {e}", self.clock(),
                                      {"error": type(e).__name__})
        self.run_cycle()

    def _poll_and_record(self, collector: Collector):
        result = collector.poll()
        if result is None:
            self.state.record_failure(collector.name, "Previous poll still running", self.clock())
        elif not result.ok:
            logger.warning("Collection failed: %s", result.error)
            self.state.record_failure(collector.name, result.error.reason, result.timestamp)
        else:
            try:
                validate(result.snapshot)
            except EvaluationError as e:
                logger.warning("Dropped invalid snapshot from %s: %s", collector.name, e)
                self.state.record_failure(collector.name, f"Invalid snapshot: {e}",
                                          result.timestamp, {"error": "evaluation"})
            else:
                self.state.record_success(collector.name, result.snapshot, result.timestamp)

    def run_cycle(self) -> SystemHealth:
        """Evaluate all latest snapshots and update alerts and health."""
        with self._cycle_lock:
            now = self.clock()
            candidates = []
            # Snapshots are validated before they are stored.
            for _, slot in sorted(self.state.get_slots().items()):
                if slot.latest is not None:
                    candidates.extend(evaluate(slot.latest, self.config.thresholds, slot.previous))

            transitions = self.alert_engine.update(candidates, now)
            self.state.record_transitions(transitions)
            health = self._aggregate(now)
            self.dispatcher.submit(transitions)
            logger.debug("Cycle done: %d candidates, %d transitions, status=%s",
                         len(candidates), len(transitions), health.overall_status.value)
            return health

    def get_current_health(self) -> SystemHealth:
        """Last aggregated view; never triggers a poll."""
        return self.state.get_health()

    def list_alerts(self, level: Optional[AlertLevel] = None,
                    alert_type: Optional[AlertType] = None,
                    acknowledged_only: bool = False) -> List[Alert]:
        return self.alert_engine.list_alerts(level, alert_type, acknowledged_only)

    def acknowledge(self, alert_id: str) -> Alert:
        """Acknowledge an open alert; raises AlertNotFound otherwise."""
        alert = self.alert_engine.acknowledge(alert_id)
        with self._cycle_lock:
            self._aggregate(self.clock())
        return alert

    def get_summary(self) -> HealthSummary:
        return summarize(self.get_current_health(), self.alert_engine.open_alerts())

    def get_history(self, collector_name: str) -> List[Snapshot]:
        """Snapshots of one collector within the retention window, oldest first."""
        return self.state.get_history(collector_name, since=self.clock() - self.history_retention)

    def get_metrics_history(self) -> List[Snapshot]:
        return self.get_history(SYSTEM_COLLECTOR)

    def get_docker_history(self) -> List[Snapshot]:
        return self.get_history(DOCKER_COLLECTOR)

    def get_runner_history(self) -> List[Snapshot]:
        return self.get_history(RUNNER_COLLECTOR)

    def get_alert_history(self, limit: Optional[int] = None) -> List[AlertTransition]:
        """Recent raised and resolved alerts, newest first."""
        return self.state.get_alert_history(limit)

    def _aggregate(self, now: datetime) -> SystemHealth:
        metrics, docker, runners = self.state.get_system_data()
        health = aggregate(
            metrics,
            docker,
            runners,
            self.alert_engine.open_alerts(),
            self.state.get_collector_health(),
            now,
            max_alerts=self.config.max_alerts,
            health_checks=self.state.get_health_checks(),
        )
        self.state.set_health(health)
        return health

    def _collect_loop(self, collector: Collector):
        """Poll at the collector's interval until stopped."""
        while True:
            try:
                self.poll_collector(collector)
            except Exception:
                logger.exception("Collection cycle failed for %s", collector.name)
            if self._stop.wait(collector.interval):
                break
