"""Configuration management package."""

from .config import Config, ConfigLoader
from .cli_config import CLIConfigManager

__all__ = ['Config', 'ConfigLoader', 'CLIConfigManager']
