"""
Configuration loading

Reads config.yaml (PyYAML) and merges it over the built-in defaults, so a
partial file only needs the keys it changes.
"""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = 'ICTSCAN_CONFIG'
DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / 'config.yaml'

DEFAULT_CONFIG: Dict[str, Any] = {
    'server': {
        'host': '127.0.0.1',
        'port': 8000,
        'log_level': 'info',
        'reload': False,
    },
    'analysis': {
        'range_window': 20,
        'limits': {
            'suspension_blocks': 5,
            'gaps': 10,
            'order_blocks': 5,
            'breaker_blocks': 3,
        },
    },
    'scanner': {
        'default_limit': 10,
        'max_limit': 100,
        'max_concurrency': 8,
    },
    'security': {
        'requests_per_minute': 60,
        'requests_per_hour': 1000,
    },
}

def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of `base` with `override` merged in recursively"""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load configuration.

    Lookup order: `path` argument, then $ICTSCAN_CONFIG, then config.yaml at
    the project root. A missing file means defaults.

    Args:
        path: Optional path to a YAML config file

    Returns:
        Configuration dictionary
    """
    if path is None:
        path = os.getenv(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH
    config_path = Path(path)

    user_config: Dict[str, Any] = {}
    if config_path.exists():
        with open(config_path, 'r') as f:
            user_config = yaml.safe_load(f) or {}
        if not isinstance(user_config, dict):
            raise ValueError(f"Configuration file {config_path} must contain a mapping")
        logger.info(f"Loaded configuration from {config_path}")
    else:
        logger.warning(f"Configuration file not found at {config_path}, using defaults")

    config = deep_merge(DEFAULT_CONFIG, user_config)

    # Environment overrides for rate limits
    security = config['security']
    security['requests_per_minute'] = int(
        os.getenv('RATE_LIMIT_PER_MINUTE', security['requests_per_minute'])
    )
    security['requests_per_hour'] = int(
        os.getenv('RATE_LIMIT_PER_HOUR', security['requests_per_hour'])
    )

    return config
