"""Command line entry points for SecureWatch."""

from typer import Typer

from .notifications import notifications_app


cli = Typer(help="SecureWatch command line tools")
cli.add_typer(notifications_app, name="notifications")

__all__ = ["cli", "notifications_app"]
