"""Per-collector polling configuration."""
from dataclasses import dataclass, field, fields
from typing import List


@dataclass
class CollectorConfig:
    """Polling cadence shared by every collector."""
    enabled: bool = True
    interval: float = 15.0
    timeout: float = 5.0

    def __post_init__(self):
        """Fix invalid values."""
        defaults = {f.name: f.default for f in fields(self)}
        if self.interval <= 0:
            self.interval = defaults["interval"]
        if self.timeout <= 0:
            self.timeout = defaults["timeout"]


@dataclass
class SystemCollectorConfig(CollectorConfig):
    cpu_sample_seconds: float = 0.1


@dataclass
class DockerCollectorConfig(CollectorConfig):
    interval: float = 30.0
    timeout: float = 10.0
    host: str = "unix:///var/run/docker.sock"
    monitored_containers: List[str] = field(default_factory=list)


@dataclass
class GitHubRunnerCollectorConfig(CollectorConfig):
    # Registry queries are rate limited, so poll rarely.
    enabled: bool = False
    interval: float = 300.0
    timeout: float = 15.0
    token: str = ""
    owner: str = ""
    repo: str = ""


@dataclass
class CollectionConfig:
    """Configuration of all collectors."""
    system: SystemCollectorConfig = field(default_factory=SystemCollectorConfig)
    docker: DockerCollectorConfig = field(default_factory=DockerCollectorConfig)
    github_runner: GitHubRunnerCollectorConfig = field(default_factory=GitHubRunnerCollectorConfig)
