"""Command-line interface for envvault.

This package contains:
- app: Typer application and commands
- pull: Regenerating managed blocks from encrypted secrets
"""
