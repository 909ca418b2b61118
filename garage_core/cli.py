# garage_core/cli.py
import click

from . import db


def register_commands(app):
    @app.cli.command("init-db")
    def init_db():
        """Create any missing tables."""
        with app.app_context():
            db.create_all()
        click.echo("Database tables created.")

    @app.cli.command("reset-db")
    @click.confirmation_option(prompt="This drops every table. Continue?")
    def reset_db():
        with app.app_context():
            db.drop_all()
            db.create_all()
        click.echo("Database reset complete.")
