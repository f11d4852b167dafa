"""Host metrics source for CPU, memory, disk and battery."""
import logging
from typing import Optional, Tuple

import psutil

from .base import Clock, DataSource
from .system_models import SystemMetrics

logger = logging.getLogger(__name__)


class HostMetricsSource(DataSource):
    """Collects host-level resource usage through psutil."""

    def __init__(self, clock: Clock, cpu_sample_seconds: float = 0.1):
        """Initialize the host metrics source."""
        self.clock = clock
        self.cpu_sample_seconds = cpu_sample_seconds

    def fetch(self) -> SystemMetrics:
        """Collect current host metrics."""
        memory = psutil.virtual_memory()
        ram_used = memory.total - memory.available
        ssd_total, ssd_used = self._get_disk_totals()
        battery_level, power_connected = self._get_battery()

        metrics = SystemMetrics(
            cpu_usage=psutil.cpu_percent(interval=self.cpu_sample_seconds) / 100.0,
            ram_usage=ram_used / memory.total if memory.total else 0.0,
            ram_total=memory.total,
            ram_used=ram_used,
            ssd_usage=ssd_used / ssd_total if ssd_total else 0.0,
            ssd_total=ssd_total,
            ssd_used=ssd_used,
            battery_level=battery_level,
            is_power_connected=power_connected,
            timestamp=self.clock(),
        )
        logger.debug(
            "Collected system metrics: CPU=%.1f%% RAM=%.1f%% SSD=%.1f%%",
            metrics.cpu_usage * 100, metrics.ram_usage * 100, metrics.ssd_usage * 100,
        )
        return metrics

    def _get_disk_totals(self) -> Tuple[int, int]:
        """Sum capacity and usage over physical partitions, once per device."""
        total = 0
        used = 0
        seen = set()
        for partition in psutil.disk_partitions(all=False):
            if partition.device in seen:
                continue
            seen.add(partition.device)
            try:
                usage = psutil.disk_usage(partition.mountpoint)
            except (PermissionError, OSError):
                continue
            if usage.total > 0:
                total += usage.total
                used += usage.used
        return total, used

    def _get_battery(self) -> Tuple[Optional[int], Optional[bool]]:
        """Get battery percentage and power state if a battery exists."""
        sensors_battery = getattr(psutil, "sensors_battery", None)
        if sensors_battery is None:
            return None, None
        battery = sensors_battery()
        if battery is None:
            return None, None
        return int(battery.percent), bool(battery.power_plugged)
