"""CI runner data models for the runner collector."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import FrozenSet


@dataclass(frozen=True)
class GitHubRunnerStatus:
    id: int
    name: str
    status: str  # "online", "offline"
    is_online: bool
    is_busy: bool
    timestamp: datetime
    labels: FrozenSet[str] = field(default_factory=frozenset)
