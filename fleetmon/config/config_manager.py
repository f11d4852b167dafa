"""Configuration loading and management."""
import os
from typing import Any, Dict, Optional

import yaml

from ..exceptions import ConfigError
from .collection_config import (
    CollectionConfig,
    DockerCollectorConfig,
    GitHubRunnerCollectorConfig,
    SystemCollectorConfig,
)
from .config import Config
from .display_config import DisplayConfig
from .history_config import HistoryConfig
from .notification_config import NotificationConfig, SlackConfig
from .threshold_config import ThresholdConfig

DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(__file__), "default_config.yaml")


class ConfigManager:
    """Configuration loading and management."""

    @staticmethod
    def load_config(config_path: Optional[str] = None) -> Config:
        """Load configuration from a YAML file, the bundled default if no path."""
        path = config_path or DEFAULT_CONFIG_PATH
        try:
            with open(path, "r") as f:
                config_data = yaml.safe_load(f) or {}
        except OSError as e:
            raise ConfigError(f"Cannot read config file {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

        if not isinstance(config_data, dict):
            raise ConfigError(f"Config root in {path} must be a mapping")
        return ConfigManager.from_dict(config_data)

    @staticmethod
    def from_dict(config_data: Dict[str, Any]) -> Config:
        """Build a Config from parsed data; missing sections use defaults."""
        try:
            collectors = config_data.get("collectors") or {}
            collection = CollectionConfig(
                system=SystemCollectorConfig(**(collectors.get("system") or {})),
                docker=DockerCollectorConfig(**(collectors.get("docker") or {})),
                github_runner=GitHubRunnerCollectorConfig(**(collectors.get("github_runner") or {})),
            )

            thresholds = ThresholdConfig(**(config_data.get("thresholds") or {}))

            notification_data = dict(config_data.get("notifications") or {})
            slack = SlackConfig(**(notification_data.pop("slack", None) or {}))
            notifications = NotificationConfig(slack=slack, **notification_data)

            display = DisplayConfig(**(config_data.get("display") or {}))
            history = HistoryConfig(**(config_data.get("history") or {}))

            config = Config(
                max_alerts=config_data.get("max_alerts", 20),
                collection=collection,
                thresholds=thresholds,
                notifications=notifications,
                display=display,
                history=history,
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

        ConfigManager._apply_environment(config)
        return config

    @staticmethod
    def _apply_environment(config: Config):
        """Fill empty secrets from the environment."""
        runner = config.collection.github_runner
        if not runner.token:
            runner.token = os.environ.get("GITHUB_TOKEN", "")
        slack = config.notifications.slack
        if not slack.webhook_url:
            slack.webhook_url = os.environ.get("SLACK_WEBHOOK_URL", "")
