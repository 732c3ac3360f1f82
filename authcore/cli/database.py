"""Database setup command."""
import click
from flask.cli import with_appcontext

from authcore.extensions import db


@click.command("init-db")
@with_appcontext
def init_db_command():
    """
    Create the user and password reset token tables.

    Usage:
        flask init-db
    """
    # Import models so their tables are registered on the metadata
    from authcore import models  # noqa: F401

    db.create_all()
    click.echo("Database tables created.")
