"""Allow running the CLI with ``python -m gamemover``."""

from gamemover.cli import app

if __name__ == "__main__":
    app()
