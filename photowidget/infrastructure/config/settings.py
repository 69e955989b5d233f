"""Provides functions for loading and accessing configuration settings.

Supports loading from .env files, environment variables and a YAML
configuration file (~/.photowidget/config.yaml).
"""

import logging
import os
from pathlib import Path
from typing import Any, Optional, Dict

import yaml
from dotenv import load_dotenv

from photowidget.domain.models.common import BackoffPolicy

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".photowidget"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"
ENV_PREFIX = "PHOTOWIDGET_"

DEFAULTS: Dict[str, Any] = {
    'picsum.base_url': "https://picsum.photos",
    'source.name': "Picsum Photos",
    'source.url': "https://picsum.photos/",
    'cache.dir': str(DEFAULT_CONFIG_DIR / "image_cache"),
    'cache.size_limit_bytes': 250 * 1024 * 1024,
    'cache.l1.max_items': 64,
    'cache.l1.ttl_seconds': 15 * 60,
    'state.file': str(DEFAULT_CONFIG_DIR / "widget_state.yaml"),
    'work.dir': str(DEFAULT_CONFIG_DIR / "work_queue"),
    'retry.max_attempts': 10,
    'retry.initial_backoff_seconds': 10.0,
    'retry.backoff_factor': 2.0,
    'retry.max_backoff_seconds': 5 * 60 * 60.0,
    'http.timeout_seconds': 30.0,
    'logging.level': "INFO",
    'logging.file': None,
    'logging.format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
}

# --- Global Configuration Store ---
_config: Dict[str, Any] = {}
_overrides: Dict[str, Any] = {}  # set_config, e.g. from CLI flags
_test_config: Dict[str, Any] = {}
_loaded = False


def _flatten(data: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Flattens nested YAML mappings into dotted keys ({'a': {'b': 1}} -> {'a.b': 1})."""
    flat: Dict[str, Any] = {}
    for key, value in data.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(_flatten(value, prefix=f"{dotted}."))
        else:
            flat[dotted] = value
    return flat


def load_configuration(config_file: Path = DEFAULT_CONFIG_FILE, env_file: Optional[Path] = None) -> None:
    """Loads configuration from environment, .env file, and YAML file.

    Priority order (highest to lowest):
    1. Environment Variables
    2. .env file
    3. YAML configuration file
    4. Default values (DEFAULTS)

    Args:
        config_file: Path to the YAML configuration file.
        env_file: Path to the .env file (searches upwards from cwd if None).
    """
    global _config, _loaded
    if _loaded:
        logger.debug("Configuration already loaded.")
        return

    _config = {}

    # 1. Load from YAML file (Lowest priority)
    if config_file.exists():
        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                yaml_config = yaml.safe_load(f)
            if isinstance(yaml_config, dict):
                _config.update(_flatten(yaml_config))
                logger.info(f"Loaded configuration from YAML: {config_file}")
            elif yaml_config is not None:
                logger.warning(f"YAML config file {config_file} did not contain a dictionary.")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load or parse YAML config {config_file}: {e}")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    # 2. Load from .env file (Medium priority)
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        # override=False: ENV VARS take precedence
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug("Skipping .env file loading (path not found).")

    # 3. Environment Variables (Highest priority) are handled in get_config

    _loaded = True
    logger.debug("Configuration loading process completed.")


def _coerce(value: str) -> Any:
    """Converts an environment string to bool/int/float when it looks like one."""
    if value.lower() == 'true':
        return True
    if value.lower() == 'false':
        return False
    try:
        if '.' in value:
            return float(value)
        return int(value)
    except (ValueError, TypeError):
        return value


def get_config(key: str, default: Any = None) -> Any:
    """
    Get a configuration value by key.

    Priority:
    1. Test configuration (if in testing mode)
    2. Runtime overrides (set_config)
    3. Environment variable (PHOTOWIDGET_<KEY> or <KEY>, dots as underscores)
    4. YAML config
    5. Built-in default, then the default argument

    Args:
        key: The configuration key (e.g. 'retry.max_attempts')
        default: Default value if the key is not found anywhere

    Returns:
        The configuration value
    """
    if key in _test_config:
        return _test_config[key]

    if key in _overrides:
        return _overrides[key]

    env_key = key.upper().replace('.', '_')
    for candidate in (f"{ENV_PREFIX}{env_key}", env_key):
        if candidate in os.environ:
            return _coerce(os.environ[candidate])

    if key in _config:
        return _config[key]

    if default is None and key in DEFAULTS:
        return DEFAULTS[key]

    logger.debug(f"Config key '{key}' not found in environment or loaded config. Returning default: {default}")
    return default


def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None


# --- Convenience Functions ---

def get_base_url() -> str:
    return str(get_config('picsum.base_url')).rstrip('/')


def get_source_name() -> str:
    return str(get_config('source.name'))


def get_source_url() -> str:
    return str(get_config('source.url'))


def get_cache_dir() -> Path:
    return Path(str(get_config('cache.dir'))).expanduser()


def get_state_file() -> Path:
    return Path(str(get_config('state.file'))).expanduser()


def get_work_dir() -> Optional[Path]:
    """Directory of the persisted work queue; None disables persistence."""
    work_dir = get_config('work.dir')
    if not work_dir:
        return None
    return Path(str(work_dir)).expanduser()


def get_max_attempts() -> int:
    return int(get_config('retry.max_attempts'))


def get_backoff_policy() -> BackoffPolicy:
    """Gets the retry backoff configuration for the scheduler."""
    return BackoffPolicy(
        max_attempts=get_max_attempts(),
        initial_delay=float(get_config('retry.initial_backoff_seconds')),
        factor=float(get_config('retry.backoff_factor')),
        max_delay=float(get_config('retry.max_backoff_seconds')),
    )


def get_http_timeout() -> float:
    return float(get_config('http.timeout_seconds'))


def set_config(key: str, value: Any) -> None:
    """Sets a configuration value by key for the running process.

    Args:
        key: Configuration key (e.g., 'logging.level')
        value: Value to set
    """
    logger.debug(f"Setting config: {key} = {value}")
    _overrides[key] = value


def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """
    Set configuration values for testing purposes.
    These values will override any existing configuration.

    Args:
        config_dict: Dictionary of configuration values to set
    """
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration: {config_dict}")


def clear_test_config() -> None:
    """Clear all testing configuration values."""
    _test_config.clear()
    logger.debug("Cleared testing configuration")
