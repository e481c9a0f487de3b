"""Allow running as ``python -m gmail_skill``."""

from gmail_skill.cli.commands import app

if __name__ == "__main__":
    app()
