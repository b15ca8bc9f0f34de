"""Bridge configuration management.

This module provides configuration loading and validation for stdin bridging,
supporting both .stdin-bridge configuration files and environment variables.
"""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".stdin-bridge"

ENV_MAPPING = {
    "STDIN_BRIDGE_ENCODING": "encoding",
    "STDIN_BRIDGE_IDLE_TIMEOUT": "idle_timeout",
    "STDIN_BRIDGE_TEMP_DIR": "temp_dir",
    "STDIN_BRIDGE_CHUNK_SIZE": "chunk_size",
    "STDIN_BRIDGE_EDITOR": "editor",
}


@dataclass
class BridgeConfig:
    """Configuration for reading piped stdin.

    Attributes:
        encoding: Terminal encoding override (empty means auto-detect)
        idle_timeout: Seconds to wait for the first chunk of piped input
        temp_dir: Directory for stdin files (empty means the system temp dir)
        chunk_size: Maximum number of bytes per read from stdin
        editor: Editor command used to open the drained file (empty means auto-detect)
    """

    encoding: str = ""
    idle_timeout: float = 1.0
    temp_dir: str = ""
    chunk_size: int = 64 * 1024
    editor: str = ""

    def validate(self) -> list[str]:
        """Validate the configuration.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors: list[str] = []

        if self.idle_timeout <= 0:
            errors.append("idle_timeout must be positive")

        if self.chunk_size <= 0:
            errors.append("chunk_size must be positive")

        if self.temp_dir and not Path(self.temp_dir).is_dir():
            errors.append(f"temp_dir does not exist: {self.temp_dir}")

        return errors

    def is_valid(self) -> bool:
        """Check if the configuration is valid."""
        return len(self.validate()) == 0

    def require_valid(self) -> None:
        """Raise ConfigError listing every validation problem."""
        errors = self.validate()
        if errors:
            raise ConfigError("; ".join(errors))


def find_config_file(start: Path | None = None) -> Path | None:
    """Find a .stdin-bridge file in ``start`` (default: cwd) or its parents."""
    current_dir = start or Path.cwd()
    for parent in [current_dir] + list(current_dir.parents):
        candidate = parent / CONFIG_FILE_NAME
        if candidate.is_file():
            return candidate
    return None


def load_bridge_config(config_file: Path | str | None = None, environ: Mapping[str, str] | None = None) -> BridgeConfig:
    """Load bridge configuration from file and environment variables.

    Configuration priority (highest to lowest):
    1. Environment variables
    2. Configuration file (.stdin-bridge or specified file)
    3. Default values

    Args:
        config_file: Optional path to configuration file
        environ: Environment to read (default: os.environ)

    Returns:
        BridgeConfig instance with loaded configuration
    """
    config = BridgeConfig()

    path = Path(config_file) if config_file else find_config_file()
    if path is not None:
        _load_from_file(config, path)

    _load_from_env(config, os.environ if environ is None else environ)

    for error in config.validate():
        logger.warning(f"Bridge configuration validation error: {error}")

    return config


def _load_from_file(config: BridgeConfig, config_file: Path) -> None:
    """Load key=value lines from a configuration file."""
    if not config_file.is_file():
        logger.debug(f"Configuration file not found: {config_file}")
        return

    try:
        content = config_file.read_text(encoding="utf-8")
    except OSError as e:
        logger.error(f"Error loading configuration from {config_file}: {e}")
        return

    for line in content.splitlines():
        line = line.strip()

        # Skip comments and empty lines
        if not line or line.startswith("#"):
            continue

        if "=" in line:
            key, value = line.split("=", 1)
            key = key.strip().lower().replace("-", "_")
            value = value.strip().strip('"').strip("'")
            _set_config_value(config, key, value)

    logger.debug(f"Loaded bridge configuration from {config_file}")


def _load_from_env(config: BridgeConfig, environ: Mapping[str, str]) -> None:
    """Override configuration values from environment variables."""
    for env_var, config_key in ENV_MAPPING.items():
        value = environ.get(env_var)
        if value is not None:
            _set_config_value(config, config_key, value)


def _set_config_value(config: BridgeConfig, key: str, value: str) -> None:
    """Set a configuration value with type conversion.

    Unknown keys and unparseable numbers are logged and ignored.
    """
    if key in ("encoding", "temp_dir", "editor"):
        setattr(config, key, value.strip())
    elif key == "idle_timeout":
        try:
            config.idle_timeout = float(value)
        except ValueError:
            logger.warning(f"Invalid idle_timeout value: {value}")
    elif key == "chunk_size":
        try:
            config.chunk_size = int(value)
        except ValueError:
            logger.warning(f"Invalid chunk_size value: {value}")
    else:
        logger.debug(f"Unknown configuration key: {key}")
