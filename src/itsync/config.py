"""Configuration management."""

import logging
import os
import re
import sys
from pathlib import Path
from typing import Optional

import yaml

ENV_PREFIX = "ITSYNC_"
LIST_ID_PATTERN = re.compile(r"^ls[0-9]{9}$")

IMDB_AUTH_METHODS = ("credentials", "cookies", "none")
SYNC_MODES = ("full", "add-only", "dry-run")

# Placeholders shipped in config.example.yaml
DUMMY_VALUES = {
    "imdb.email": "your-imdb-email@example.com",
    "imdb.password": "your-imdb-password",
    "imdb.cookie_at_main": "your-at-main-cookie",
    "imdb.cookie_ubid_main": "your-ubid-main-cookie",
    "trakt.email": "your-trakt-email@example.com",
    "trakt.password": "your-trakt-password",
    "trakt.client_id": "your-trakt-client-id",
    "trakt.client_secret": "your-trakt-client-secret",
}

DEFAULTS = {
    "imdb": {
        "lists": [],
        "export_poll_interval": 30,
        "export_max_attempts": 30,
    },
    "sync": {
        "mode": "dry-run",
        "watchlist": True,
        "ratings": True,
        "history": False,
        "timeout": 600,
        "log_level": "INFO",
    },
}


class ConfigError(Exception):
    """Configuration error."""
    pass


def _coerce_env_value(value: str, current=None):
    """Convert an environment string to the type of the value it overrides."""
    if isinstance(current, bool):
        return value.strip().lower() in ("true", "yes", "1")
    if isinstance(current, list):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(current, int):
        try:
            return int(value)
        except ValueError:
            return value
    if isinstance(current, str):
        return value
    lowered = value.strip().lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    return value


def _is_list_id(value: str) -> bool:
    return bool(LIST_ID_PATTERN.match(value))


class Config:
    """Configuration container."""

    def __init__(self, config_path: Optional[str] = None, data: Optional[dict] = None, environ=None):
        """Load configuration from a YAML file and the environment.

        Args:
            config_path: Path to config.yaml; ignored when ``data`` is given
            data: Configuration dictionary to use instead of a file
            environ: Environment mapping, defaults to ``os.environ``

        Raises:
            ConfigError: If config is invalid
        """
        environ = os.environ if environ is None else environ
        self.config_path = Path(config_path or environ.get(f"{ENV_PREFIX}CONFIG", "config.yaml"))

        if data is None:
            data = self._load_file(environ)

        self.data = self._with_defaults(data or {})
        self._apply_env(environ)
        self._validate()

    def _load_file(self, environ) -> dict:
        if not self.config_path.exists():
            if any(key.startswith(ENV_PREFIX) and key != f"{ENV_PREFIX}CONFIG" for key in environ):
                return {}
            raise ConfigError(
                f"Config file not found: {self.config_path}\n"
                "Copy config.example.yaml to config.yaml and fill in your settings."
            )

        try:
            with open(self.config_path) as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in config file: {e}")

        if loaded is not None and not isinstance(loaded, dict):
            raise ConfigError("Config file must contain a mapping at the top level")
        return loaded or {}

    @staticmethod
    def _with_defaults(data: dict) -> dict:
        merged = {section: dict(values) for section, values in DEFAULTS.items()}
        for section, values in data.items():
            if isinstance(values, dict) and isinstance(merged.get(section), dict):
                merged[section].update(values)
            else:
                merged[section] = values
        return merged

    def _apply_env(self, environ) -> None:
        """Apply ITSYNC_<SECTION>_<KEY> overrides."""
        for name, value in environ.items():
            if not name.startswith(ENV_PREFIX) or name == f"{ENV_PREFIX}CONFIG":
                continue
            parts = name[len(ENV_PREFIX):].lower().split("_", 1)
            if len(parts) != 2:
                continue
            section, key = parts
            target = self.data.setdefault(section, {})
            if isinstance(target, dict):
                target[key] = _coerce_env_value(value, target.get(key))

    def _require(self, key: str) -> None:
        value = self.get(key)
        if value in (None, ""):
            raise ConfigError(f"{key} is required in config")
        if DUMMY_VALUES.get(key) == value:
            raise ConfigError(f"{key} still holds the dummy value from config.example.yaml")

    def _validate(self):
        """Validate required configuration."""
        auth = self.get("imdb.auth")
        if auth not in IMDB_AUTH_METHODS:
            raise ConfigError(f"imdb.auth must be one of {', '.join(IMDB_AUTH_METHODS)}, got {auth!r}")

        if auth == "credentials":
            self._require("imdb.email")
            self._require("imdb.password")
        elif auth == "cookies":
            self._require("imdb.cookie_at_main")
            self._require("imdb.cookie_ubid_main")

        lists = self.get("imdb.lists", [])
        if isinstance(lists, str):
            lists = [lists]
            self.data["imdb"]["lists"] = lists
        if not isinstance(lists, list):
            raise ConfigError("imdb.lists must be a list of list ids")
        invalid = [str(list_id) for list_id in lists if not _is_list_id(str(list_id))]
        if invalid:
            raise ConfigError(
                f"imdb.lists contains invalid ids {invalid}; ids look like ls123456789"
            )
        if auth == "none" and not lists:
            raise ConfigError("imdb.lists is required when imdb.auth is none")

        for key in ("trakt.email", "trakt.password", "trakt.client_id", "trakt.client_secret"):
            self._require(key)

        mode = self.get("sync.mode")
        if mode not in SYNC_MODES:
            raise ConfigError(f"sync.mode must be one of {', '.join(SYNC_MODES)}, got {mode!r}")

        for key in ("sync.timeout", "imdb.export_poll_interval", "imdb.export_max_attempts"):
            value = self.get(key)
            try:
                number = float(value)
            except (TypeError, ValueError):
                raise ConfigError(f"{key} must be a number, got {value!r}")
            if number <= 0:
                raise ConfigError(f"{key} must be positive")

        hooks = self.get("hooks", {})
        if hooks and not isinstance(hooks, dict):
            raise ConfigError("hooks must be a mapping of event name to hook list")

    def get(self, key: str, default=None):
        """Get config value by dot-notation key.

        Args:
            key: Dot-notation key (e.g., 'trakt.client_id')
            default: Default value if not found

        Returns:
            Config value or default
        """
        keys = key.split(".")
        value = self.data

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
            else:
                return default

            if value is None:
                return default

        return value


def setup_logging(config: Config):
    """Setup logging configuration.

    Args:
        config: Config object
    """
    log_level_str = str(config.get("sync.log_level", "INFO")).upper()
    log_level = getattr(logging, log_level_str, logging.INFO)
    log_file = config.get("sync.log_file")

    handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_formatter = logging.Formatter(
        "%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    console_handler.setFormatter(console_formatter)
    handlers.append(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(log_level)
        file_formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
        file_handler.setFormatter(file_formatter)
        handlers.append(file_handler)

    logging.basicConfig(
        level=log_level,
        handlers=handlers,
        force=True,
    )

    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)
