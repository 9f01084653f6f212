"""CLI entry point for changelog-ko."""

from cli.commands.main import app

if __name__ == "__main__":
    app()
