"""Entry point for running envvault as a module.

This allows running the application with:
    python -m envvault [OPTIONS] COMMAND [ARGS]
"""

from envvault.cli.app import app

if __name__ == "__main__":
    app()
