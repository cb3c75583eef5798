"""Environment and utility functions."""

import logging
import os
import sys
from pathlib import Path

from ..config import (
    ENV_FILE,
    ENV_PREFIX,
    LOG_DATE_FORMAT,
    LOG_FORMAT,
    LOG_LEVEL_KEY,
    VISION_BACKEND_KEY,
)
from ..domain.value_objects.config import PipelineConfig
from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def read_env_file(path: Path | str = ENV_FILE) -> dict[str, str]:
    """Read ESTATE_LENS_* assignments from a .env file.

    Blank lines, comments and keys without the prefix are ignored. A
    missing file yields an empty dict.
    """
    env_path = Path(path)
    if not env_path.exists():
        return {}

    values: dict[str, str] = {}
    try:
        with open(env_path, encoding='utf-8') as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith('#') or '=' not in line:
                    continue
                key, value = line.split('=', 1)
                key = key.strip()
                if key.startswith('export '):
                    key = key[len('export '):].strip()
                if key.startswith(ENV_PREFIX):
                    values[key] = value.strip().strip('"\'')
    except OSError as e:
        logger.debug(f"Failed to read {env_path}: {e}")
    return values


def get_setting(key: str, default: str | None = None, env_file: Path | str = ENV_FILE) -> str | None:
    """Look up a setting in the environment, then in the .env file."""
    value = os.getenv(key)
    if value:
        return value
    return read_env_file(env_file).get(key, default)


def resolve_log_level(value: str | int | None, default: int = logging.INFO) -> int:
    """Turn 'debug', 'INFO', '10' and the like into a logging level.

    Raises:
        ConfigurationError: If the value names no level
    """
    if value is None or value == '':
        return default
    if isinstance(value, int):
        return value
    text = value.strip()
    if text.isdigit():
        return int(text)
    level = logging.getLevelName(text.upper())
    if not isinstance(level, int):
        raise ConfigurationError(f"Unknown log level: {value}", config_key=LOG_LEVEL_KEY)
    return level


def load_pipeline_config(env_file: Path | str = ENV_FILE, **overrides) -> PipelineConfig:
    """Build a PipelineConfig from the environment.

    Args:
        env_file: .env file consulted for keys missing from the environment
        **overrides: PipelineConfig fields that take precedence

    Returns:
        Validated PipelineConfig
    """
    fields = {}
    backend = get_setting(VISION_BACKEND_KEY, env_file=env_file)
    if backend:
        fields['vision_backend'] = backend
    fields.update({k: v for k, v in overrides.items() if v is not None})
    return PipelineConfig(**fields)


# Default log file location
DEFAULT_LOG_FILE = None


def setup_logging(level: int | str | None = None, log_file: str | None = DEFAULT_LOG_FILE) -> None:
    """Set up logging configuration.

    Logs go to stderr and, when ``log_file`` is given, to that file.

    Args:
        level: Logging level (ESTATE_LENS_LOG_LEVEL, else INFO, if None)
        log_file: Path to log file (None to disable file logging)
    """
    if level is None:
        level = get_setting(LOG_LEVEL_KEY)
    level = resolve_log_level(level)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
            handlers.append(file_handler)
        except OSError as e:
            # Fall back to console-only if file logging fails
            print(f"Warning: Could not open log file '{log_file}': {e}", file=sys.stderr)

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=handlers,
        force=True  # Replace any existing handlers
    )
