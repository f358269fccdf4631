"""Configuration loading utilities."""

import logging
import os
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar, Union

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

T = TypeVar("T")


def get_config_path(
    config_name: str,
    config_dir: Optional[Union[str, Path]] = None,
) -> Path:
    """Get path to a configuration file.

    Args:
        config_name: Name of config file (without path).
        config_dir: Directory containing config files. If None, uses
            the 'config' directory at the repo root.

    Returns:
        Path to the configuration file.
    """
    if config_dir is None:
        # Default to repo_root/config/
        package_dir = Path(__file__).parent.parent.parent
        config_dir = package_dir / "config"

    return Path(config_dir) / config_name


def load_yaml_config(
    config_path: Union[str, Path],
    load_env: bool = True,
    required: bool = True,
) -> dict:
    """Load YAML configuration file.

    Args:
        config_path: Path to config file.
        load_env: Whether to load .env file first.
        required: Raise if the file is missing instead of returning {}.

    Returns:
        Configuration dictionary.

    Raises:
        FileNotFoundError: If a required config file doesn't exist.
        yaml.YAMLError: If config file is invalid YAML.
        ValueError: If the top level of the file is not a mapping.
    """
    if load_env:
        load_dotenv()

    config_path = Path(config_path)

    if not config_path.exists():
        if required:
            raise FileNotFoundError(f"Config file not found: {config_path}")
        logger.debug(f"No config file at {config_path}, using environment only")
        return {}

    with open(config_path, "r") as f:
        data = yaml.safe_load(f)

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {config_path} must contain a mapping, got {type(data).__name__}")
    return data


def get_setting(
    env_var: str,
    file_value: Any,
    default: T,
    parse: Callable[[Any], T] = str,
) -> T:
    """Resolve a setting from the environment, then config file, then default.

    A setting found nowhere falls back to its default with a warning, as does
    an environment value that fails to parse. A config file value that fails
    to parse is an error.

    Args:
        env_var: Environment variable name.
        file_value: Value from the YAML file, or None if absent.
        default: Built-in default.
        parse: Converts environment strings and YAML values to the
            setting's type.

    Returns:
        The resolved value.

    Raises:
        ValueError: If the config file value cannot be parsed.
    """
    raw = os.getenv(env_var)
    if raw is not None:
        try:
            return parse(raw)
        except (ValueError, TypeError, ArithmeticError):
            logger.warning(f"{env_var} has invalid value '{raw}', using default: '{default}'")
            return default

    if file_value is not None:
        try:
            return parse(file_value)
        except (ValueError, TypeError, ArithmeticError) as e:
            raise ValueError(f"Config file value for {env_var} is invalid: {file_value!r} ({e})") from e

    logger.warning(f"{env_var} not defined, using default: '{default}'")
    return default


def get_log_level(config: Optional[dict] = None) -> str:
    """Extract log level from LOG_LEVEL or config, with sensible default.

    Args:
        config: Configuration dictionary.

    Returns:
        Log level string (e.g., 'INFO', 'DEBUG').
    """
    level = os.getenv("LOG_LEVEL") or (config or {}).get("log_level", "INFO")
    return level.upper()
