"""CLI commands package."""
from authcore.cli.database import init_db_command
from authcore.cli.reset_tokens import reset_tokens_cli

__all__ = ["init_db_command", "reset_tokens_cli"]
