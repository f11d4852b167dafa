"""Collectors and their data sources."""
from .base import Collector, DataSource, PollResult, Snapshot
from .docker_models import ContainerStatus, DockerStatus
from .runner_models import GitHubRunnerStatus
from .system_models import SystemMetrics

__all__ = [
    "Collector",
    "ContainerStatus",
    "DataSource",
    "DockerStatus",
    "GitHubRunnerStatus",
    "PollResult",
    "Snapshot",
    "SystemMetrics",
]
