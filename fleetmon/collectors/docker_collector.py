"""Container runtime source built on the Docker SDK."""
import logging
from typing import List, Optional, Sequence

import docker
import requests
from docker.errors import DockerException

from .base import Clock, DataSource
from .docker_models import NOT_FOUND_STATE, ContainerStatus, DockerStatus

logger = logging.getLogger(__name__)

DEFAULT_DOCKER_HOST = "unix:///var/run/docker.sock"


class DockerEngineSource(DataSource):
    """Reports daemon reachability and the state of monitored containers."""

    def __init__(self, clock: Clock, host: str = DEFAULT_DOCKER_HOST,
                 monitored_containers: Sequence[str] = (), timeout: float = 10.0,
                 client: Optional[docker.DockerClient] = None):
        """Initialize the Docker source; an empty monitor list means all containers."""
        self.clock = clock
        self.host = host
        self.timeout = timeout
        self.monitored_containers = [name.lower() for name in monitored_containers]
        self.client = client

    def fetch(self) -> DockerStatus:
        """Ping the daemon and list monitored containers."""
        try:
            client = self._get_client()
            client.ping()
            raw_containers = client.containers.list(all=True, ignore_removed=True)
        except (DockerException, requests.exceptions.RequestException) as e:
            logger.error("Docker daemon is not accessible at %s: %s", self.host, e)
            return DockerStatus(is_daemon_running=False, timestamp=self.clock())

        now = self.clock()
        containers = [
            self._to_status(container, now)
            for container in raw_containers
            if self._is_monitored(container.name)
        ]
        containers.extend(self._missing_placeholders(containers, now))

        logger.debug("Docker health check: daemon=running, containers=%d", len(containers))
        return DockerStatus(is_daemon_running=True, containers=tuple(containers), timestamp=now)

    def close(self):
        if self.client is not None:
            self.client.close()

    def _get_client(self) -> docker.DockerClient:
        """Connect on first use; the client negotiates the API version with the daemon."""
        if self.client is None:
            self.client = docker.DockerClient(base_url=self.host,
                                              timeout=max(1, int(self.timeout)))
        return self.client

    def _to_status(self, container, now) -> ContainerStatus:
        attrs = container.attrs
        state_info = attrs.get("State") or {}
        state = state_info.get("Status") or "unknown"
        return ContainerStatus(
            name=container.name,
            id=container.id[:12],
            state=state,
            status=self._describe(state, state_info),
            is_running=state == "running",
            is_restarting=state == "restarting" or bool(state_info.get("Restarting")),
            restart_count=int(attrs.get("RestartCount") or 0),
            timestamp=now,
        )

    @staticmethod
    def _describe(state: str, state_info: dict) -> str:
        """Short status text in the style of `docker ps`."""
        if state == "exited":
            return f"Exited ({state_info.get('ExitCode', 0)})"
        if state == "running":
            return f"Up since {state_info.get('StartedAt', 'unknown')}"
        return state.capitalize()

    def _is_monitored(self, name: str) -> bool:
        if not self.monitored_containers:
            return True
        lowered = name.lower()
        return any(monitored in lowered for monitored in self.monitored_containers)

    def _missing_placeholders(self, found: List[ContainerStatus], now) -> List[ContainerStatus]:
        """Placeholders for monitored names with no matching container."""
        found_names = [container.name.lower() for container in found]
        placeholders = []
        for monitored in self.monitored_containers:
            if any(monitored in name for name in found_names):
                continue
            placeholders.append(ContainerStatus(
                name=monitored,
                id=f"{NOT_FOUND_STATE}:{monitored}",
                state=NOT_FOUND_STATE,
                status="Container not found",
                is_running=False,
                is_restarting=False,
                restart_count=0,
                timestamp=now,
            ))
        return placeholders
