"""Application context for CLI."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ...config import Config, ConfigError


@dataclass
class ItsyncContext:
    """Shared application context passed through Click commands."""

    config: Config
    config_path: Path

    @classmethod
    def create(cls, config_path: Optional[str] = None):
        """
        Factory method to create context from a config path.

        Args:
            config_path: Path to config file, or None for ITSYNC_CONFIG / config.yaml

        Returns:
            ItsyncContext instance

        Raises:
            ConfigurationError: If config is invalid
        """
        from .exceptions import ConfigurationError

        try:
            config = Config(config_path)
        except ConfigError as e:
            raise ConfigurationError(str(e)) from e

        return cls(config=config, config_path=config.config_path)
