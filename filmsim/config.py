"""
Configuration management for FilmSim
"""

import yaml
import os
import re
import copy
from pathlib import Path
from typing import Dict, Any, Optional, Union
import logging

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config.yaml"

_ENV_PATTERN = re.compile(r'\$\{([^}]+)\}')


def _expand_env_vars(obj: Union[Dict, Any]) -> Union[Dict, Any]:
    """
    Recursively expand environment variables in config values.
    Supports ${VAR_NAME} syntax; unknown variables are left as written.
    """
    if isinstance(obj, dict):
        return {key: _expand_env_vars(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(item) for item in obj]
    elif isinstance(obj, str):
        return _ENV_PATTERN.sub(lambda m: os.getenv(m.group(1), m.group(0)), obj)
    else:
        return obj


def _deep_merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Merge overrides into a copy of base, section by section."""
    merged = copy.deepcopy(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load configuration from YAML file

    Values from the file are merged over get_default_config(), so a
    partial file is enough.

    Args:
        config_path: Path to config file. If None, uses default config.yaml

    Returns:
        Configuration dictionary
    """
    config_path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH

    if not config_path.exists():
        if config_path == DEFAULT_CONFIG_PATH:
            # Installed packages do not ship the checkout's config.yaml
            logger.debug(f"No config file at {config_path}. Using defaults.")
        else:
            logger.warning(f"Config file not found: {config_path}. Using defaults.")
        return get_default_config()

    try:
        with open(config_path, 'r') as f:
            loaded = yaml.safe_load(f) or {}
        if not isinstance(loaded, dict):
            raise ValueError("top level must be a mapping")
    except (OSError, yaml.YAMLError, ValueError) as e:
        logger.error(f"Failed to load config from {config_path}: {e}")
        return get_default_config()

    logger.info(f"Loaded configuration from {config_path}")
    return _deep_merge(get_default_config(), _expand_env_vars(loaded))


def get_default_config() -> Dict[str, Any]:
    """
    Get default configuration values

    Returns:
        Default configuration dictionary
    """
    return {
        'preview': {
            'max_width': 1200,
            'max_height': 800,
            'grain_seed': None,  # Fresh grain on every render
        },
        'analysis': {
            'max_dimension': 800,
            'entropy_block_size': 8,
            'scatter_budget': 10000,
            'waveform_max_rows': 400,
            'waveform_channels': ['luma', 'red', 'green', 'blue'],
        },
        'processing': {
            'max_worker_threads': 4,
            'band_rows': 256,
        },
        'simulations': {
            'directory': None,  # Directory of <id>.cube files
            'identity_tolerance': 0.001,
        },
        'export': {
            'format': 'png',
            'jpeg_quality': 92,
        },
        'logging': {
            'level': 'INFO',
            'color': True,
        },
    }
