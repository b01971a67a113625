"""envvault - Encrypted per-environment dotenv management.

This package provides the dotenv document model (parser, renderer,
managed blocks, safe diff) and a Typer CLI that pulls SOPS-encrypted
secrets into version-controlled .env files.
"""

__version__ = "1.0.0"
SCRIPT_NAME = "envvault"
REQUIRED_SOPS_VERSION = "3.8.0"

__all__ = [
    "__version__",
    "SCRIPT_NAME",
    "REQUIRED_SOPS_VERSION",
]
