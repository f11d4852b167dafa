"""Display management using Rich for a live terminal health view."""
import time
from typing import Optional, Sequence

from rich.console import Console, Group
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table

from ..collectors.docker_models import DockerStatus
from ..collectors.runner_models import GitHubRunnerStatus
from ..collectors.system_models import SystemMetrics
from ..config.display_config import DisplayConfig
from ..core.alerts import Alert, AlertLevel
from ..core.health import OverallStatus, SystemHealth

STATUS_STYLES = {
    OverallStatus.HEALTHY: "green",
    OverallStatus.WARNING: "yellow",
    OverallStatus.CRITICAL: "red",
    OverallStatus.UNKNOWN: "bright_black",
}


class DisplayManager:
    """Renders SystemHealth snapshots with Rich."""

    def __init__(self, config: DisplayConfig, console: Optional[Console] = None):
        """Initialize the display manager."""
        self.config = config
        self.console = console or Console(no_color=not config.show_colors)
        self.layout = self._create_layout()

    def run_display(self, data_manager):
        """Refresh the live view until interrupted."""
        with Live(self.layout, console=self.console, screen=True,
                  refresh_per_second=max(1 / self.config.refresh_rate, 0.1)):
            while True:
                self.update(data_manager.get_current_health())
                time.sleep(self.config.refresh_rate)

    def print_once(self, health: SystemHealth):
        """Print a single non-live rendering."""
        self.console.print(Group(
            self._create_system_overview(health),
            self._create_containers_panel(health.docker),
            self._create_runners_panel(health.runners),
            self._create_alerts_panel(health.alerts),
        ))

    def update(self, health: SystemHealth):
        self.layout["header"].update(self._create_system_overview(health))
        self.layout["left"].update(self._create_containers_panel(health.docker))
        self.layout["right"].update(self._create_runners_panel(health.runners))
        self.layout["alerts"].update(self._create_alerts_panel(health.alerts))

    def _create_layout(self) -> Layout:
        layout = Layout()
        layout.split_column(
            Layout(name="header", size=9),
            Layout(name="body"),
            Layout(name="alerts", size=8),
        )
        layout["body"].split_row(Layout(name="left"), Layout(name="right"))
        return layout

    def _create_system_overview(self, health: SystemHealth) -> Panel:
        style = STATUS_STYLES[health.overall_status]
        title = (f"[{style}]{health.overall_status.value}[/{style}] - "
                 f"{health.timestamp.strftime(self.config.time_format)}")
        lines = self._metric_lines(health.system)
        for check in health.health_checks:
            marker = "[green]ok[/green]" if check.is_healthy else "[red]stale[/red]"
            lines.append(f"{check.component:<14} {marker}  {check.message}")
        return Panel("\n".join(lines), title=title, border_style=style)

    def _metric_lines(self, metrics: Optional[SystemMetrics]):
        if metrics is None:
            return ["Waiting for system metrics..."]

        def make_progress_bar(ratio: float, width: int = 20) -> str:
            filled = int(ratio * width)
            return f"[{'█' * filled}{'░' * (width - filled)}] {ratio * 100:5.1f}%"

        lines = [
            f"CPU:    {make_progress_bar(metrics.cpu_usage)}",
            f"Memory: {make_progress_bar(metrics.ram_usage)}",
            f"Disk:   {make_progress_bar(metrics.ssd_usage)}",
        ]
        if metrics.battery_level is not None:
            power = "plugged in" if metrics.is_power_connected else "on battery"
            lines.append(f"Battery: {metrics.battery_level}% ({power})")
        return lines

    def _create_containers_panel(self, docker: Optional[DockerStatus]) -> Panel:
        if docker is None:
            return Panel("No data", title="Containers", border_style="blue")
        if not docker.is_daemon_running:
            return Panel("[red]Docker daemon is not responding[/red]",
                         title="Containers", border_style="red")

        table = Table(expand=True, show_edge=False)
        table.add_column("Name")
        table.add_column("State")
        table.add_column("Restarts", justify="right")
        for container in docker.containers:
            state_style = "green" if container.is_running else "red"
            table.add_row(container.name, f"[{state_style}]{container.state}[/{state_style}]",
                          str(container.restart_count))
        return Panel(table, title=f"Containers ({len(docker.containers)})", border_style="blue")

    def _create_runners_panel(self, runners: Sequence[GitHubRunnerStatus]) -> Panel:
        if not runners:
            return Panel("No runners", title="CI Runners", border_style="green")

        table = Table(expand=True, show_edge=False)
        table.add_column("Runner")
        table.add_column("Status")
        table.add_column("Busy")
        for runner in runners:
            status_style = "green" if runner.is_online else "red"
            table.add_row(runner.name, f"[{status_style}]{runner.status}[/{status_style}]",
                          "yes" if runner.is_busy else "")
        return Panel(table, title=f"CI Runners ({len(runners)})", border_style="green")

    def _create_alerts_panel(self, alerts: Sequence[Alert]) -> Panel:
        if not alerts:
            return Panel("No open alerts", title="Alerts", border_style="green")

        alert_text = []
        for alert in alerts:
            style = "red" if alert.level is AlertLevel.CRITICAL else "yellow"
            ack = " (ack)" if alert.acknowledged else ""
            time_str = alert.timestamp.strftime(self.config.time_format)
            alert_text.append(
                f"[{style}][{alert.level.value}][/{style}] {time_str} - {alert.message}{ack}"
            )

        border_style = "red" if any(a.level is AlertLevel.CRITICAL for a in alerts) else "yellow"
        return Panel("\n".join(alert_text), title=f"Alerts ({len(alerts)} open)",
                     border_style=border_style)
