"""Notification dispatch of alert transitions to an external sink."""
import logging
import queue
import threading
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Set

import httpx

from ..config.notification_config import NotificationConfig, SlackConfig
from ..exceptions import DeliveryError
from .alerts import AlertKey, AlertLevel, AlertTransition, TransitionKind

logger = logging.getLogger(__name__)


class NotificationSink(ABC):
    """Transport that delivers one transition, raising DeliveryError on failure."""

    @abstractmethod
    def send(self, transition: AlertTransition):
        """Deliver the transition."""

    def close(self):
        """Release transport resources."""


class LogSink(NotificationSink):
    """Writes transitions to the log; used when no webhook is configured."""

    def send(self, transition: AlertTransition):
        alert = transition.alert
        logger.warning("[%s] %s %s: %s", transition.kind.value.upper(),
                       alert.level.value, alert.type.value, alert.message)


class SlackWebhookSink(NotificationSink):
    """Posts transitions to a Slack incoming webhook."""

    def __init__(self, config: SlackConfig, timeout: float = 10.0,
                 transport: Optional[httpx.BaseTransport] = None):
        """Initialize the sink with its webhook settings."""
        self.config = config
        self.client = httpx.Client(timeout=timeout, transport=transport)

    def send(self, transition: AlertTransition):
        try:
            response = self.client.post(self.config.webhook_url, json=self.build_payload(transition))
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise DeliveryError(f"Slack webhook delivery failed: {e}") from e

    def build_payload(self, transition: AlertTransition) -> dict:
        """Slack attachment payload for one transition."""
        alert = transition.alert
        if transition.kind is TransitionKind.RESOLVED:
            color, emoji, label = "good", ":white_check_mark:", "Resolved"
        elif alert.level is AlertLevel.CRITICAL:
            color, emoji, label = "danger", ":red_circle:", "Critical"
        else:
            color, emoji, label = "warning", ":warning:", "Warning"

        payload = {
            "username": self.config.username,
            "icon_emoji": ":robot_face:",
            "attachments": [{
                "color": color,
                "title": f"{emoji} [{label}] {alert.type.value}",
                "text": alert.message,
                "fields": [
                    {"title": key, "value": str(value), "short": True}
                    for key, value in sorted(alert.details.items())
                ],
                "ts": str(int(transition.timestamp.timestamp())),
            }],
        }
        if self.config.channel:
            payload["channel"] = self.config.channel
        return payload

    def close(self):
        self.client.close()


class NotificationDispatcher:
    """Forwards raised and resolved transitions; updates are never sent.

    A raise for a key that was notified less than ``cooldown`` seconds ago is
    held back. If the alert is still open once the cooldown has passed, the
    held raise is sent on the next dispatch; if it resolves first, neither
    the raise nor the resolve reaches the sink.
    """

    def __init__(self, sink: NotificationSink, config: NotificationConfig,
                 clock: Callable[[], datetime]):
        """Initialize the dispatcher."""
        self.sink = sink
        self.config = config
        self.clock = clock
        self._lock = threading.Lock()
        self._last_raised: Dict[AlertKey, datetime] = {}
        self._notified_open: Set[AlertKey] = set()
        self._deferred: Dict[AlertKey, AlertTransition] = {}
        self._queue: "queue.Queue[Optional[List[AlertTransition]]]" = queue.Queue()
        self._worker: Optional[threading.Thread] = None

    @property
    def has_deferred(self) -> bool:
        """True while a raise is waiting for its cooldown to pass."""
        return bool(self._deferred)

    def start(self):
        """Deliver in a background thread from now on."""
        if self._worker is None:
            self._worker = threading.Thread(target=self._run, name="notifier", daemon=True)
            self._worker.start()

    def stop(self, timeout: float = 2.0):
        """Drain queued transitions and stop the background thread."""
        if self._worker is not None:
            self._queue.put(None)
            self._worker.join(timeout=timeout)
            self._worker = None
        self.sink.close()

    def submit(self, transitions: Iterable[AlertTransition]):
        """Queue transitions for delivery, or deliver now without a worker.

        An empty batch still goes through while raises are deferred, so
        they are released on the first cycle after their cooldown.
        """
        batch = list(transitions)
        if not batch and not self.has_deferred:
            return
        if self._worker is not None:
            self._queue.put(batch)
        else:
            self.dispatch(batch)

    def dispatch(self, transitions: Iterable[AlertTransition]) -> List[AlertTransition]:
        """Deliver eligible transitions; returns the ones handed to the sink."""
        delivered = []
        with self._lock:
            for transition in transitions:
                if not self._should_send(transition):
                    continue
                if self._deliver(transition):
                    delivered.append(transition)
            delivered.extend(self._release_deferred())
            self._prune(self.clock())
        return delivered

    def _should_send(self, transition: AlertTransition) -> bool:
        alert = transition.alert
        if not self.config.enabled or self.config.is_suppressed(alert.type):
            return False

        if transition.kind is TransitionKind.RAISED:
            now = self.clock()
            if self._in_cooldown(alert.key, now):
                logger.debug("Notification deferred (cooldown): %s %s",
                             alert.type.value, alert.subject)
                self._deferred[alert.key] = transition
                return False
            self._last_raised[alert.key] = now
            return True

        if transition.kind is TransitionKind.RESOLVED:
            if self._deferred.pop(alert.key, None) is not None:
                logger.debug("Deferred notification dropped, alert resolved: %s %s",
                             alert.type.value, alert.subject)
                return False
            return alert.key in self._notified_open

        # Keep a deferred raise current with the latest level and message.
        if alert.key in self._deferred:
            self._deferred[alert.key] = replace(self._deferred[alert.key], alert=alert)
        return False

    def _release_deferred(self) -> List[AlertTransition]:
        """Send deferred raises whose cooldown has passed."""
        now = self.clock()
        released = []
        for key in sorted(self._deferred, key=lambda key: (key[0].value, key[1])):
            if self._in_cooldown(key, now):
                continue
            deferred = self._deferred.pop(key)
            transition = AlertTransition(TransitionKind.RAISED, deferred.alert, now)
            self._last_raised[key] = now
            if self._deliver(transition):
                released.append(transition)
        return released

    def _in_cooldown(self, key: AlertKey, now: datetime) -> bool:
        last = self._last_raised.get(key)
        return last is not None and (now - last).total_seconds() < self.config.cooldown

    def _prune(self, now: datetime):
        """Forget raise times that can no longer suppress anything."""
        expired = [
            key for key in self._last_raised
            if key not in self._deferred and not self._in_cooldown(key, now)
        ]
        for key in expired:
            del self._last_raised[key]

    def _deliver(self, transition: AlertTransition) -> bool:
        key = transition.alert.key
        if transition.kind is TransitionKind.RESOLVED:
            self._notified_open.discard(key)
        try:
            self.sink.send(transition)
        except DeliveryError as e:
            logger.error("Failed to send %s notification for %s: %s",
                         transition.kind.value, transition.alert.type.value, e)
            return False
        except Exception as e:
            logger.exception("Notification sink failed on %s notification for %s: %s",
                             transition.kind.value, transition.alert.type.value, e)
            return False

        if transition.kind is TransitionKind.RAISED:
            self._notified_open.add(key)
        return True

    def _run(self):
        while True:
            batch = self._queue.get()
            if batch is None:
                break
            try:
                self.dispatch(batch)
            except Exception:
                logger.exception("Notification dispatch failed")
