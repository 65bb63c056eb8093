"""
Configuration module for authgate.

Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

A configuration names the providers to load, in order, plus the file paths
and remote URL the built-in providers fall back to:

    plugins:
      - remote_auth: {url: "http://auth.example.com:3000"}
      - flat_auth
    user_file: /etc/authgate/user.txt
    group_file: /etc/authgate/group.txt
    resource_file: /etc/authgate/resource.txt
    host_file: /etc/authgate/host.txt
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import yaml

from ..errors import ConfigurationError, ErrorCollection
from ..util.config import (
    expand_config_variables, get_bool_config, get_config_value,
    load_config_file, merge_configs, normalize_config_key,
)


@dataclass
class ProviderDescriptor:
    """A provider type name plus its provider-specific options."""
    type: str
    options: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def parse(cls, entry: Any) -> "ProviderDescriptor":
        """Parse ``"type"`` or ``{"type": {options}}``."""
        if isinstance(entry, ProviderDescriptor):
            return entry
        if isinstance(entry, str) and entry:
            return cls(type=entry)
        if isinstance(entry, Mapping) and len(entry) == 1:
            (provider_type, options), = entry.items()
            if options is None:
                options = {}
            if isinstance(provider_type, str) and isinstance(options, Mapping):
                return cls(type=provider_type, options=dict(options))
        raise ConfigurationError(f"Invalid provider descriptor: {entry!r}")


@dataclass
class Config:
    """Configuration for an authgate decision service"""
    plugins: List[ProviderDescriptor] = field(default_factory=list)
    user_file: Optional[str] = None
    group_file: Optional[str] = None
    resource_file: Optional[str] = None
    host_file: Optional[str] = None
    remote_url: Optional[str] = None
    log_level: str = "INFO"
    metrics_enabled: bool = True

    def __post_init__(self):
        self.plugins = [ProviderDescriptor.parse(entry) for entry in (self.plugins or [])]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Config":
        """Create configuration from a mapping; unknown keys are ignored"""
        known = {f for f in cls.__dataclass_fields__}
        values = {}
        for key, value in (data or {}).items():
            key = normalize_config_key(str(key))
            if key in known:
                values[key] = value

        plugins = values.get("plugins")
        if plugins is not None and not isinstance(plugins, list):
            # A single descriptor may be given without a list
            values["plugins"] = [plugins]
        return cls(**values)

    @classmethod
    def from_file(cls, path: str, overrides: Optional[Mapping[str, Any]] = None) -> "Config":
        """Load configuration from a JSON or YAML file with ${VAR} expansion"""
        try:
            data = load_config_file(path)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Cannot load configuration {path}: {e}", cause=e) from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration {path} must contain a mapping")

        return cls.from_dict(merge_configs(expand_config_variables(data), overrides or {}))

    @classmethod
    def from_env(cls, prefix: str = "AUTHGATE_") -> "Config":
        """Create configuration from environment variables"""
        return cls(
            user_file=get_config_value("user_file", env_prefix=prefix),
            group_file=get_config_value("group_file", env_prefix=prefix),
            resource_file=get_config_value("resource_file", env_prefix=prefix),
            host_file=get_config_value("host_file", env_prefix=prefix),
            remote_url=get_config_value("remote_url", env_prefix=prefix),
            log_level=get_config_value("log_level", "INFO", env_prefix=prefix),
            metrics_enabled=get_bool_config("metrics_enabled", True, env_prefix=prefix),
        )

    def validate(self) -> bool:
        """Validate the configuration"""
        errors = ErrorCollection()

        for descriptor in self.plugins:
            options = descriptor.options
            user_file = options.get("user_file", self.user_file)
            if descriptor.type == "flat_auth" and not user_file:
                errors.add(ConfigurationError("user_file is required by flat_auth"))
            elif descriptor.type == "flat_authz" and not (
                user_file and options.get("resource_file", self.resource_file)
            ):
                errors.add(ConfigurationError("user_file and resource_file are required by flat_authz"))
            elif descriptor.type == "remote_auth" and not options.get("url", self.remote_url):
                errors.add(ConfigurationError("remote_auth requires a url option or remote_url"))

        errors.raise_if_errors()
        return True
