"""
Configuration management for the Cortex E2E client.

This module holds the per-instance client configuration (endpoint addresses,
tenant, timeout) and handles loading and validating it from YAML files and
keyword overrides.
"""

import os
import re
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Optional

import yaml
from jsonschema import Draft7Validator

from .exceptions import ConfigValidationError


DEFAULT_TIMEOUT = 5.0

# host:port, without scheme
ADDRESS_PATTERN = "^[^/\\s]+:[0-9]+$"


# JSON Schema for configuration validation
CONFIG_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "properties": {
        "distributor_address": {"type": "string", "pattern": ADDRESS_PATTERN},
        "querier_address": {"type": "string", "pattern": ADDRESS_PATTERN},
        "ruler_address": {"type": "string", "pattern": ADDRESS_PATTERN},
        "alertmanager_address": {
            "type": "string",
            "anyOf": [{"maxLength": 0}, {"pattern": ADDRESS_PATTERN}],
        },
        "org_id": {"type": "string", "minLength": 1},
        "timeout": {"type": "number", "exclusiveMinimum": 0},
        "strict_status": {"type": "boolean"},
        "scheme": {"type": "string", "enum": ["http", "https"]},
    },
    "required": ["distributor_address", "querier_address", "ruler_address", "org_id"],
    "additionalProperties": False,
}


def validate_config(data: dict[str, Any]) -> list[str]:
    """
    Validate configuration data against the schema.

    Args:
        data: Configuration dictionary to validate

    Returns:
        List of validation error messages (empty if valid)
    """
    validator = Draft7Validator(CONFIG_SCHEMA)
    errors = []
    for error in validator.iter_errors(data):
        path = ".".join(str(p) for p in error.path) if error.path else "root"
        errors.append(f"{path}: {error.message}")
    return errors


def expand_env_vars(value: Any) -> Any:
    """
    Expand environment variables in a string.

    Supports ${VAR_NAME} syntax; unset variables expand to an empty string.
    Non-string values are returned unchanged.
    """
    if not isinstance(value, str):
        return value

    def replace_env(match):
        return os.environ.get(match.group(1), "")

    return re.sub(r"\$\{([^}]+)\}", replace_env, value)


@dataclass(frozen=True)
class ClientConfig:
    """
    Configuration of one client instance.

    One instance describes one tenant on one cluster; several instances can
    coexist in a process.

    Attributes:
        distributor_address: host:port of the distributor (write path)
        querier_address: host:port of the querier (read path)
        ruler_address: host:port of the ruler
        org_id: Tenant ID sent as X-Scope-OrgID on every request
        alertmanager_address: host:port of the alertmanager, empty if not deployed
        timeout: Per-call timeout in seconds for push, query and ruler calls
        strict_status: Make ruler calls fail on non-2xx responses
        scheme: URL scheme used for all endpoints
    """

    distributor_address: str
    querier_address: str
    ruler_address: str
    org_id: str
    alertmanager_address: str = ""
    timeout: float = DEFAULT_TIMEOUT
    strict_status: bool = False
    scheme: str = "http"

    def __post_init__(self):
        if not self.org_id:
            raise ValueError("org_id must not be empty")
        if self.timeout <= 0:
            raise ValueError(f"Invalid timeout: {self.timeout}. Must be positive")
        if self.scheme not in ("http", "https"):
            raise ValueError(f"Invalid scheme: {self.scheme}. Must be one of ['http', 'https']")

    @property
    def has_alertmanager(self) -> bool:
        """Whether an alertmanager address is configured."""
        return bool(self.alertmanager_address)

    def url(self, address: str) -> str:
        """Build the base URL for an endpoint address."""
        return f"{self.scheme}://{address}"

    @classmethod
    def from_dict(cls, data: dict[str, Any], validate: bool = True) -> "ClientConfig":
        """
        Create configuration from a dictionary.

        String values may reference environment variables as ${VAR_NAME}.

        Raises:
            ConfigValidationError: If validation fails
        """
        data = {key: expand_env_vars(value) for key, value in data.items()}

        if validate:
            errors = validate_config(data)
            if errors:
                raise ConfigValidationError(
                    f"Configuration validation failed with {len(errors)} error(s)",
                    errors=errors,
                )

        return cls(**data)

    @classmethod
    def from_yaml(cls, path: Path | str, validate: bool = True) -> "ClientConfig":
        """
        Load configuration from a YAML file.

        Args:
            path: Path to the YAML configuration file
            validate: Whether to validate the configuration against schema

        Raises:
            FileNotFoundError: If the config file doesn't exist
            yaml.YAMLError: If the YAML is invalid
            ConfigValidationError: If validation fails
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ConfigValidationError(
                "Configuration validation failed with 1 error(s)",
                errors=["root: configuration must be a mapping"],
            )

        return cls.from_dict(data, validate=validate)

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary."""
        return asdict(self)


def load_config(
    config_path: Optional[Path | str] = None,
    validate: bool = True,
    **overrides: Any,
) -> ClientConfig:
    """
    Load configuration from a file and apply keyword overrides.

    Overrides whose value is None are ignored.

    Example:
        >>> config = load_config("cortex.yaml", org_id="user-2")
    """
    overrides = {key: value for key, value in overrides.items() if value is not None}

    if config_path:
        config = ClientConfig.from_yaml(config_path, validate=validate)
        if not overrides:
            return config
        return ClientConfig.from_dict({**config.to_dict(), **overrides}, validate=validate)

    return ClientConfig.from_dict(overrides, validate=validate)
