"""CLI commands for password reset token housekeeping."""
import click
from flask import current_app
from flask.cli import AppGroup

reset_tokens_cli = AppGroup("reset-tokens", help="Password reset token maintenance.")


@reset_tokens_cli.command("cleanup")
def cleanup_command():
    """
    Delete reset tokens that expired more than 24 hours ago.

    Usage:
        flask reset-tokens cleanup
    """
    service = current_app.container.password_reset_service()
    deleted = service.cleanup_expired()
    click.echo(f"Deleted {deleted} expired token(s).")


@reset_tokens_cli.command("stats")
def stats_command():
    """
    Show reset token counts by state.

    Usage:
        flask reset-tokens stats
    """
    service = current_app.container.password_reset_service()
    stats = service.get_stats()

    click.echo("Password reset tokens:")
    click.echo(f"  active: {stats.active}")
    click.echo(f"  used: {stats.used}")
    click.echo(f"  expired: {stats.expired}")
    click.echo(f"  total: {stats.total}")
