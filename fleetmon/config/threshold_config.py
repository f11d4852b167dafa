"""Threshold configuration data structure."""
from dataclasses import dataclass


@dataclass
class ThresholdConfig:
    """Alert thresholds; usage values are ratios, battery values percent."""
    cpu_warning: float = 0.85
    cpu_critical: float = 0.95
    ram_warning: float = 0.85
    ram_critical: float = 0.95
    ssd_warning: float = 0.85
    ssd_critical: float = 0.95
    battery_warning: int = 20
    battery_critical: int = 10
    restart_burst: int = 3

    def __post_init__(self):
        """Fix invalid values."""
        for metric in ("cpu", "ram", "ssd"):
            warning = getattr(self, f"{metric}_warning")
            critical = getattr(self, f"{metric}_critical")
            if not 0 < warning <= 1:
                setattr(self, f"{metric}_warning", 0.85)
            if not 0 < critical <= 1:
                setattr(self, f"{metric}_critical", 0.95)
            if getattr(self, f"{metric}_critical") < getattr(self, f"{metric}_warning"):
                setattr(self, f"{metric}_critical", getattr(self, f"{metric}_warning"))
        if self.battery_warning <= 0 or self.battery_warning > 100:
            self.battery_warning = 20
        if self.battery_critical <= 0 or self.battery_critical > self.battery_warning:
            self.battery_critical = min(10, self.battery_warning)
        if self.restart_burst < 0:
            self.restart_burst = 3
