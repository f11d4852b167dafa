"""Container runtime data models for the docker collector."""
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple

NOT_FOUND_STATE = "not-found"

_EXIT_CODE_PATTERN = re.compile(r"Exited \((-?\d+)\)")


@dataclass(frozen=True)
class ContainerStatus:
    name: str
    id: str
    state: str  # "running", "exited", "restarting", "dead", "not-found", ...
    status: str  # human readable, e.g. "Exited (1) 5 minutes ago"
    is_running: bool
    is_restarting: bool
    restart_count: int
    timestamp: datetime

    @property
    def exit_code(self) -> Optional[int]:
        """Exit code parsed from the status string, if the container exited."""
        match = _EXIT_CODE_PATTERN.search(self.status)
        if match:
            return int(match.group(1))
        return None


@dataclass(frozen=True)
class DockerStatus:
    """Daemon state plus every monitored container for one poll."""
    is_daemon_running: bool
    timestamp: datetime
    containers: Tuple[ContainerStatus, ...] = field(default_factory=tuple)
