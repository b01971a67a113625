"""Utility modules for envvault.

This package contains:
- console: Rich-based terminal output utilities
- errors: Custom exceptions and exit codes
- files: Atomic file writes
- logging: Logging configuration
"""

from envvault.utils.console import (
    console,
    print_error,
    print_header,
    print_info,
    print_step,
    print_success,
    print_warning,
)
from envvault.utils.errors import (
    ConfigError,
    EnvVaultError,
    ExitCode,
    GitOperationError,
    SopsError,
    SopsNotInstalledError,
    UserCancelledError,
)
from envvault.utils.files import atomic_write_text, read_text_if_exists
from envvault.utils.logging import log_command, log_message, setup_logging

__all__ = [
    # Console
    "console",
    "print_error",
    "print_success",
    "print_warning",
    "print_info",
    "print_header",
    "print_step",
    # Errors
    "ExitCode",
    "EnvVaultError",
    "SopsNotInstalledError",
    "SopsError",
    "ConfigError",
    "GitOperationError",
    "UserCancelledError",
    # Files
    "atomic_write_text",
    "read_text_if_exists",
    # Logging
    "setup_logging",
    "log_message",
    "log_command",
]
