"""Collector contract: bounded, non-overlapping polls of one data source."""
import logging
import threading
from abc import ABC, abstractmethod
from concurrent.futures import Future, TimeoutError as FutureTimeout
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Tuple, Union

from ..exceptions import CollectionError
from .docker_models import DockerStatus
from .runner_models import GitHubRunnerStatus
from .system_models import SystemMetrics

logger = logging.getLogger(__name__)

Snapshot = Union[SystemMetrics, DockerStatus, Tuple[GitHubRunnerStatus, ...]]
Clock = Callable[[], datetime]


class DataSource(ABC):
    """Capability that physically gathers one signal family."""

    @abstractmethod
    def fetch(self) -> Snapshot:
        """Return a fresh snapshot or raise on failure."""

    def close(self):
        """Release transport resources."""


@dataclass(frozen=True)
class PollResult:
    """Outcome of one poll: exactly one of snapshot or error is set."""
    collector: str
    timestamp: datetime
    snapshot: Optional[Snapshot] = None
    error: Optional[CollectionError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Collector:
    """Polls a data source with a timeout, never overlapping its own polls."""

    def __init__(self, name: str, source: DataSource, interval: float,
                 timeout: float, clock: Clock):
        """Initialize the collector."""
        self.name = name
        self.source = source
        self.interval = interval
        self.timeout = timeout
        self.clock = clock
        self._lock = threading.Lock()
        self._inflight: Optional[Future] = None

    def poll(self) -> Optional[PollResult]:
        """Run one bounded fetch; None when skipped because one is in flight."""
        with self._lock:
            if self._inflight is not None and not self._inflight.done():
                logger.debug("%s: previous poll still running, skipping", self.name)
                return None
            future = self._start_fetch()
            self._inflight = future

        try:
            snapshot = future.result(timeout=self.timeout)
        except FutureTimeout:
            # The fetch thread is abandoned; its late result is never stored.
            return self._failure(f"timed out after {self.timeout:.1f}s")
        except CollectionError as e:
            return PollResult(self.name, self.clock(), error=e)
        except Exception as e:
            return self._failure(str(e) or type(e).__name__, e)

        return PollResult(self.name, self.clock(), snapshot=snapshot)

    def close(self):
        """Close the underlying source."""
        self.source.close()

    def _start_fetch(self) -> Future:
        future: Future = Future()

        def run():
            if not future.set_running_or_notify_cancel():
                return
            try:
                future.set_result(self.source.fetch())
            except Exception as e:
                future.set_exception(e)

        thread = threading.Thread(target=run, name=f"{self.name}-fetch", daemon=True)
        thread.start()
        return future

    def _failure(self, reason: str, cause: Optional[BaseException] = None) -> PollResult:
        return PollResult(
            self.name,
            self.clock(),
            error=CollectionError(self.name, reason, cause),
        )
