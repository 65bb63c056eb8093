"""
Configuration utilities for authgate.
Provides configuration file loading, environment lookups, overrides and
``${VAR}`` / ``${VAR:-default}`` expansion.
"""

import json
import os
import re
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional

import yaml

ENV_PREFIX = "AUTHGATE_"

TRUE_STRINGS = ('true', '1', 'yes', 'on')

VARIABLE = re.compile(r'\$\{([A-Za-z_][A-Za-z0-9_]*)(?::-([^}]*))?\}')

_LOADERS: Dict[str, Callable[[str], Any]] = {
    '.json': json.loads,
    '.yaml': yaml.safe_load,
    '.yml': yaml.safe_load,
    '.conf': yaml.safe_load,
}


def get_config_value(key: str, default: Any = None,
                     cast_type: Optional[type] = None,
                     env_prefix: str = ENV_PREFIX) -> Any:
    """
    Read ``{env_prefix}{KEY}`` from the environment.

    Returns ``default`` when the variable is unset or cannot be cast.
    """
    raw = os.environ.get(f"{env_prefix}{key.upper()}")
    if raw is None:
        return default
    if cast_type is None:
        return raw
    if cast_type is bool:
        return raw.strip().lower() in TRUE_STRINGS

    try:
        return cast_type(raw)
    except (ValueError, TypeError):
        return default


def get_bool_config(key: str, default: bool = False,
                    env_prefix: str = ENV_PREFIX) -> bool:
    """Get boolean configuration value."""
    return get_config_value(key, default, bool, env_prefix)


def merge_configs(base: Mapping[str, Any], *overrides: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Merge override mappings into ``base``.

    Nested mappings are merged key by key; any other value replaces the
    one before it. The inputs are left untouched.
    """
    result = dict(base)
    for override in overrides:
        for key, value in (override or {}).items():
            current = result.get(key)
            if isinstance(current, Mapping) and isinstance(value, Mapping):
                result[key] = merge_configs(current, value)
            else:
                result[key] = value
    return result


def normalize_config_key(key: str) -> str:
    """``Resource-File`` and ``resource_file`` name the same setting."""
    return key.strip().lower().replace('-', '_')


def expand_config_variables(config: Any,
                            variables: Optional[Mapping[str, str]] = None) -> Any:
    """
    Expand ``${VAR}`` and ``${VAR:-default}`` in every string of a
    configuration tree. Unknown variables without a default are left as
    written.
    """
    if variables is None:
        variables = os.environ

    def substitute(match: re.Match) -> str:
        name, fallback = match.group(1), match.group(2)
        if name in variables:
            return variables[name]
        return fallback if fallback is not None else match.group(0)

    if isinstance(config, str):
        return VARIABLE.sub(substitute, config)
    if isinstance(config, Mapping):
        return {key: expand_config_variables(value, variables) for key, value in config.items()}
    if isinstance(config, list):
        return [expand_config_variables(item, variables) for item in config]
    return config


def load_config_file(file_path: str) -> Any:
    """
    Parse a JSON or YAML configuration file.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the extension is not a supported format
    """
    path = Path(file_path)
    loader = _LOADERS.get(path.suffix.lower())
    if loader is None:
        raise ValueError(f"Unsupported configuration file format: {path.suffix or path.name}")

    data = loader(path.read_text(encoding='utf-8'))
    # An empty YAML document loads as None
    return {} if data is None else data
