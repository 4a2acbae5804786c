"""
config.py
---------

Optional YAML configuration for the exporter.

A config file supplies defaults for the command line, e.g.:

    source: vault
    destination: site/content
    skip_frontmatter: false
    passthrough:
      - "*.canvas"
      - "Templates/**"

Relative paths are taken relative to the config file's directory.
"""

import os
import copy
import logging
from typing import Any, Dict, Optional

import yaml

DEFAULT_CONFIG: Dict[str, Any] = {
    'source': None,
    'destination': None,
    'skip_frontmatter': False,
    'passthrough': [],
}


class ConfigError(Exception):
    """Raised when a config file cannot be read or has the wrong shape."""


def load_config(path: Optional[str]) -> Dict[str, Any]:
    """
    Load a YAML config file and merge it over DEFAULT_CONFIG.
    Returns the defaults when path is None.
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    if path is None:
        return config

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Could not read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping, got {type(data).__name__}")

    unknown = set(data) - set(DEFAULT_CONFIG)
    if unknown:
        logging.warning(f"[CONFIG] Ignoring unknown keys in {path}: {', '.join(sorted(unknown))}")

    passthrough = data.get('passthrough', [])
    if isinstance(passthrough, str):
        passthrough = [passthrough]
    if not isinstance(passthrough, list):
        raise ConfigError(f"'passthrough' in {path} must be a list of glob patterns")

    base_dir = os.path.dirname(os.path.abspath(path))
    for key in ('source', 'destination'):
        value = data.get(key)
        if value is not None:
            config[key] = os.path.join(base_dir, str(value))
    config['skip_frontmatter'] = bool(data.get('skip_frontmatter', False))
    config['passthrough'] = [str(p) for p in passthrough]
    logging.debug(f"[CONFIG] Loaded {path}: {config}")
    return config
