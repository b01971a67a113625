"""Project configuration for envvault.

Two files at the repository root describe a project:

- envvault.config.json: where encrypted secrets live and where each
  service's generated env file is written (validated with JSON Schema)
- envvault.schema.yaml: which keys each service requires or allows
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml

from envvault.dotenv.models import Entry
from envvault.utils.errors import ConfigError
from envvault.utils.logging import log_message

PROJECT_CONFIG_NAME = "envvault.config.json"
KEY_SCHEMA_NAME = "envvault.schema.yaml"

PROJECT_CONFIG_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "envvault project configuration",
    "type": "object",
    "required": ["version", "services"],
    "properties": {
        "version": {
            "type": "integer",
            "const": 1,
            "description": "Config format version",
        },
        "secretsDir": {
            "type": "string",
            "minLength": 1,
            "default": "secrets",
            "description": "Directory holding <env>/<service>.sops.yaml files",
        },
        "services": {
            "type": "object",
            "description": "Services keyed by name",
            "propertyNames": {"pattern": "^[A-Za-z0-9_.-]+$"},
            "additionalProperties": {
                "type": "object",
                "required": ["envOutput"],
                "properties": {
                    "envOutput": {
                        "type": "string",
                        "minLength": 1,
                        "description": "Dotenv file the managed block is written to",
                    },
                },
                "additionalProperties": False,
            },
        },
    },
    "additionalProperties": False,
}


@dataclass(frozen=True)
class ServiceConfig:
    name: str
    env_output: str


@dataclass(frozen=True)
class ProjectConfig:
    """Parsed envvault.config.json.

    Attributes:
        root: Directory the config was loaded from
        secrets_dir: Secrets directory, relative to ``root``
        services: Services keyed by name
    """

    root: Path
    secrets_dir: str = "secrets"
    services: dict[str, ServiceConfig] = field(default_factory=dict)

    def get_service(self, name: str) -> ServiceConfig:
        """Return a service, raising ConfigError when it is not declared."""
        try:
            return self.services[name]
        except KeyError:
            known = ", ".join(sorted(self.services)) or "none"
            raise ConfigError(f"Unknown service {name!r} (known: {known})") from None

    def secrets_path(self, environment: str, service: str) -> Path:
        """Path of the encrypted file for (environment, service)."""
        return self.root / self.secrets_dir / environment / f"{service}.sops.yaml"

    def env_output_path(self, service: str) -> Path:
        return self.root / self.get_service(service).env_output


def validate_project_config(data: Any) -> list[str]:
    """Validate raw config data against PROJECT_CONFIG_SCHEMA.

    Returns:
        List of validation error messages (empty if valid)
    """
    validator = jsonschema.Draft7Validator(PROJECT_CONFIG_SCHEMA)
    errors: list[str] = []
    for error in sorted(validator.iter_errors(data), key=lambda e: list(e.absolute_path)):
        path = ".".join(str(p) for p in error.absolute_path) if error.absolute_path else "root"
        errors.append(f"{path}: {error.message}")
    return errors


def load_project_config(directory: Path) -> ProjectConfig:
    """Load and validate ``envvault.config.json`` from ``directory``.

    Raises:
        ConfigError: If the file is missing, not JSON, or fails validation.
    """
    path = directory / PROJECT_CONFIG_NAME
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise ConfigError(f"{PROJECT_CONFIG_NAME} not found in {directory}") from None
    except json.JSONDecodeError as e:
        raise ConfigError(f"{path} is not valid JSON: {e}") from e

    errors = validate_project_config(data)
    if errors:
        raise ConfigError(f"{path} is invalid: " + "; ".join(errors))

    services = {
        name: ServiceConfig(name=name, env_output=service["envOutput"])
        for name, service in data["services"].items()
    }
    log_message(f"Loaded project config from {path} ({len(services)} services)")
    return ProjectConfig(
        root=directory,
        secrets_dir=data.get("secretsDir", "secrets"),
        services=services,
    )


@dataclass(frozen=True)
class ServiceKeySchema:
    required: tuple[str, ...] = ()
    optional: tuple[str, ...] = ()


@dataclass(frozen=True)
class SchemaValidationResult:
    """Outcome of checking entries against a service key schema.

    Holds key names only.
    """

    valid: bool
    missing: tuple[str, ...] = ()
    extra: tuple[str, ...] = ()


def _string_list(value: Any, where: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigError(f"{where} must be a list of key names")
    return tuple(value)


def load_key_schema(directory: Path) -> dict[str, ServiceKeySchema] | None:
    """Load ``envvault.schema.yaml`` from ``directory``.

    Returns:
        Schemas keyed by service name, or None if the file does not exist.

    Raises:
        ConfigError: If the file is not valid YAML or has the wrong shape.
    """
    path = directory / KEY_SCHEMA_NAME
    if not path.exists():
        return None

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"{path} is not valid YAML: {e}") from e

    services = data.get("services") if isinstance(data, dict) else None
    if not isinstance(services, dict):
        raise ConfigError(f"{path} must contain a 'services' mapping")

    schemas: dict[str, ServiceKeySchema] = {}
    for name, entry in services.items():
        entry = entry or {}
        if not isinstance(entry, dict):
            raise ConfigError(f"{path}: services.{name} must be a mapping")
        schemas[str(name)] = ServiceKeySchema(
            required=_string_list(entry.get("required"), f"services.{name}.required"),
            optional=_string_list(entry.get("optional"), f"services.{name}.optional"),
        )
    return schemas


def validate_entries(
    schemas: dict[str, ServiceKeySchema],
    service: str,
    entries: Iterable[Entry],
) -> SchemaValidationResult:
    """Check entries against the schema declared for ``service``.

    A service with no schema accepts anything. Keys that are neither
    required nor optional are reported as extra, which does not make the
    result invalid; only missing required keys do.
    """
    schema = schemas.get(service)
    keys = {entry.key for entry in entries}
    if schema is None:
        return SchemaValidationResult(valid=True)

    missing = tuple(sorted(set(schema.required) - keys))
    extra = tuple(sorted(keys - set(schema.required) - set(schema.optional)))
    return SchemaValidationResult(valid=not missing, missing=missing, extra=extra)


__all__ = [
    "PROJECT_CONFIG_NAME",
    "KEY_SCHEMA_NAME",
    "PROJECT_CONFIG_SCHEMA",
    "ServiceConfig",
    "ProjectConfig",
    "validate_project_config",
    "load_project_config",
    "ServiceKeySchema",
    "SchemaValidationResult",
    "load_key_schema",
    "validate_entries",
]
