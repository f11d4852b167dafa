"""Display configuration data structure."""
from dataclasses import dataclass


@dataclass
class DisplayConfig:
    """Terminal view preferences."""
    refresh_rate: float = 5.0
    show_colors: bool = True
    time_format: str = "%H:%M:%S"

    def __post_init__(self):
        """Fix invalid values."""
        if self.refresh_rate <= 0:
            self.refresh_rate = 5.0
