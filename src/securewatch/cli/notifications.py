"""Notification CLI commands.

Provides commands for:
- Listing and watching notifications
- Marking notifications read and removing them
- Inspecting and clearing dismissed alerts
- Viewing notification preferences
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, List, Optional

import typer
from rich.console import Console
from rich.table import Table

from securewatch.errors import ConfigurationError, TransientFetchError, format_error_for_cli
from securewatch.notifications.config import DEFAULT_CONFIG_PATH, EngineConfig, load_engine_config
from securewatch.notifications.dismissals import DismissalStore
from securewatch.notifications.engine import NotificationEngine, create_engine
from securewatch.notifications.models import Notification
from securewatch.notifications.settings import SettingsStore
from securewatch.notifications.storage import JsonFileStorage

logger = logging.getLogger(__name__)

console = Console()
err_console = Console(stderr=True)
notifications_app = typer.Typer(help="Notification and alert commands")

_TYPE_STYLES = {
    "critical": "bold red",
    "warning": "yellow",
    "info": "cyan",
}


@notifications_app.callback()
def main(
    ctx: typer.Context,
    config_path: Path = typer.Option(DEFAULT_CONFIG_PATH, "--config", "-c", help="Config file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Load configuration shared by every notification command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        ctx.obj = load_engine_config(config_path)
    except ConfigurationError as e:
        console.print(f"[red]{format_error_for_cli(e)}[/red]")
        raise typer.Exit(code=1)


def _run(config: EngineConfig, action: Callable[[NotificationEngine], Awaitable[Any]]) -> Any:
    """Run ``action`` against a freshly refreshed engine, then tear it down."""

    async def runner() -> Any:
        engine = create_engine(config)
        try:
            if not await engine.refresh_notifications():
                error = TransientFetchError(details={"api_base_url": config.api_base_url})
                err_console.print(f"[yellow]{format_error_for_cli(error)}[/yellow]")
            return await action(engine)
        finally:
            await engine.stop()

    return asyncio.run(runner())


def _notifications_table(notifications: List[Notification], unread: int) -> Table:
    table = Table(title=f"Notifications ({unread} unread)")
    table.add_column("ID", style="dim")
    table.add_column("Type")
    table.add_column("Title")
    table.add_column("Priority")
    table.add_column("Category")
    table.add_column("Source", style="dim")
    table.add_column("Read")

    for n in notifications:
        style = _TYPE_STYLES.get(n.type.value, "")
        table.add_row(
            n.id,
            f"[{style}]{n.type.value}[/{style}]" if style else n.type.value,
            n.title,
            n.priority.value,
            n.category.value,
            n.provenance.value,
            "yes" if n.read else "[bold]no[/bold]",
        )
    return table


def _print_result(output_json: bool, success: bool, message: str, **extra: Any) -> None:
    if output_json:
        print(json.dumps({"success": success, **extra}))
    elif success:
        console.print(f"[green]{message}[/green]")
    else:
        console.print(f"[yellow]{message}[/yellow]")


# ============================================================================
# Notification Commands
# ============================================================================

@notifications_app.command("list")
def list_notifications(
    ctx: typer.Context,
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Fetch and show current notifications.

    Examples:
        securewatch notifications list
        securewatch notifications list --json
    """

    async def action(engine: NotificationEngine):
        return engine.notifications, engine.unread_count

    notifications, unread = _run(ctx.obj, action)

    if output_json:
        print(json.dumps({
            "success": True,
            "unreadCount": unread,
            "notifications": [n.to_dict() for n in notifications],
        }))
        return

    if not notifications:
        console.print("[dim]No notifications[/dim]")
        return
    console.print(_notifications_table(notifications, unread))


@notifications_app.command("watch")
def watch_notifications(
    ctx: typer.Context,
    interval: Optional[float] = typer.Option(None, "--interval", "-i", help="Poll interval in seconds"),
) -> None:
    """Poll for notifications until interrupted (Ctrl+C)."""
    config: EngineConfig = ctx.obj
    if interval is not None:
        config = config.model_copy(update={"poll_interval_seconds": interval})

    async def watch() -> None:
        engine = create_engine(config)
        last_seen: Optional[tuple] = None
        try:
            await engine.start()
            while True:
                snapshot = tuple((n.id, n.read) for n in engine.notifications)
                if snapshot != last_seen and not engine.loading:
                    last_seen = snapshot
                    console.print(_notifications_table(engine.notifications, engine.unread_count))
                await asyncio.sleep(1)
        finally:
            await engine.stop()

    try:
        asyncio.run(watch())
    except KeyboardInterrupt:
        console.print("[dim]Stopped watching[/dim]")


@notifications_app.command("mark-read")
def mark_read(
    ctx: typer.Context,
    notification_id: str = typer.Argument(..., help="Notification ID"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Mark one notification as read."""

    async def action(engine: NotificationEngine):
        return await engine.mark_as_read(notification_id)

    ok = _run(ctx.obj, action)
    _print_result(
        output_json,
        ok,
        f"Marked {notification_id} as read" if ok else f"Could not mark {notification_id} as read",
        id=notification_id,
    )


@notifications_app.command("mark-all-read")
def mark_all_read(
    ctx: typer.Context,
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Mark every notification as read."""

    async def action(engine: NotificationEngine):
        return await engine.mark_all_as_read()

    ok = _run(ctx.obj, action)
    _print_result(
        output_json,
        ok,
        "All notifications marked as read" if ok else "Server rejected mark-all-read",
    )


@notifications_app.command("remove")
def remove(
    ctx: typer.Context,
    notification_id: str = typer.Argument(..., help="Notification ID"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Remove a notification (dashboard alerts are dismissed permanently)."""

    async def action(engine: NotificationEngine):
        return await engine.remove_notification(notification_id)

    ok = _run(ctx.obj, action)
    _print_result(
        output_json,
        ok,
        f"Removed {notification_id}" if ok else f"Could not remove {notification_id}",
        id=notification_id,
    )


# ============================================================================
# Dismissal Commands
# ============================================================================

@notifications_app.command("dismissed")
def list_dismissed(
    ctx: typer.Context,
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show dismissed dashboard alerts."""
    config: EngineConfig = ctx.obj
    store = DismissalStore(
        JsonFileStorage(config.storage_dir),
        max_entries=config.dismissal_limit,
        retain=config.dismissal_retain,
    )
    ids = store.ids()

    if output_json:
        print(json.dumps({"success": True, "dismissed": ids}))
        return

    if not ids:
        console.print("[dim]No dismissed alerts[/dim]")
        return
    console.print(f"\n[bold]Dismissed alerts ({len(ids)})[/bold]")
    for alert_id in ids:
        console.print(f"  {alert_id}")


@notifications_app.command("clear-dismissed")
def clear_dismissed(
    ctx: typer.Context,
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Forget all dismissed alerts so they show up again."""

    async def action(engine: NotificationEngine):
        return await engine.clear_dismissed_alerts()

    count = _run(ctx.obj, action)
    _print_result(output_json, True, f"Cleared {count} dismissed alerts", cleared=count)


# ============================================================================
# Preferences Commands
# ============================================================================

@notifications_app.command("settings")
def show_settings(
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show notification preferences."""
    settings = SettingsStore().settings
    quiet = settings.quiet_hours

    if output_json:
        print(json.dumps({
            "success": True,
            **settings.to_dict(),
            "quiet_hours_active": quiet.is_active(),
        }))
        return

    console.print("\n[bold]Notification Preferences[/bold]")
    console.print(f"Email: {'enabled' if settings.email_enabled else 'disabled'}")
    console.print(f"In-app: {'enabled' if settings.in_app_enabled else 'disabled'}")
    console.print(f"Critical only: {settings.critical_only}")
    console.print("\nCategories:")
    for category, enabled in settings.categories.items():
        console.print(f"  {category}: {'on' if enabled else 'off'}")
    status = "ACTIVE" if quiet.is_active() else "inactive"
    console.print(f"\nQuiet hours: {quiet.start_time} - {quiet.end_time} "
                  f"(enabled={quiet.enabled}, {status})")
