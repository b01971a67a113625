"""Configuration management for envvault.

This package contains:
- settings: Settings dataclass with built-in defaults
- manager: ConfigManager with cascading file/environment loading
- project: envvault.config.json and envvault.schema.yaml
"""

from envvault.config.manager import SENSITIVE_KEY_PATTERNS, ConfigManager, is_sensitive_key
from envvault.config.project import (
    ProjectConfig,
    SchemaValidationResult,
    ServiceConfig,
    load_key_schema,
    load_project_config,
    validate_entries,
)
from envvault.config.settings import Settings

__all__ = [
    "Settings",
    "ConfigManager",
    "SENSITIVE_KEY_PATTERNS",
    "is_sensitive_key",
    "ProjectConfig",
    "ServiceConfig",
    "SchemaValidationResult",
    "load_project_config",
    "load_key_schema",
    "validate_entries",
]
