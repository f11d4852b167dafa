"""Host resource data models for the system collector."""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class SystemMetrics:
    """Point-in-time host resource sample."""
    cpu_usage: float  # ratio 0..1
    ram_usage: float  # ratio 0..1
    ram_total: int  # bytes
    ram_used: int
    ssd_usage: float  # ratio 0..1
    ssd_total: int  # bytes
    ssd_used: int
    timestamp: datetime
    battery_level: Optional[int] = None  # 0..100, None without a battery
    is_power_connected: Optional[bool] = None
