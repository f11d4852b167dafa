"""Configuration dataclasses and loading."""
from .config import Config
from .config_manager import ConfigManager

__all__ = ["Config", "ConfigManager"]
