"""Command line entry point for qbtui.

Parses flags, loads configuration and settings, sets up logging and runs
the interactive session until the operator quits.
"""

from __future__ import annotations

import asyncio
import logging
import sys

import click
from rich.console import Console
from rich.table import Table

from qbtui import __version__
from qbtui.client.qbittorrent import QBittorrentClient
from qbtui.config.config import get_config, init_config
from qbtui.config.settings import SettingsStore
from qbtui.interface.app import SessionApp
from qbtui.interface.render import SessionView
from qbtui.interface.session import Session, SessionController, new_session
from qbtui.models import Config, LogLevel
from qbtui.utils.exceptions import ConfigurationError, QBTUIError, TimezoneError
from qbtui.utils.logging_config import setup_logging
from qbtui.utils.timezones import COMMON_TIMEZONES, known_timezones

logger = logging.getLogger(__name__)

console = Console(stderr=True)


def print_timezones(out: Console) -> None:
    """Print common timezone names and the database size."""
    table = Table(title="Common timezones", show_header=False, box=None)
    table.add_column("Timezone", style="cyan")
    for name in COMMON_TIMEZONES:
        table.add_row(name)
    out.print(table)
    out.print(
        f"\n{len(known_timezones())} timezones available in the database. "
        "Any IANA name (e.g. Europe/Amsterdam) is accepted by --timezone."
    )


def initial_session(
    cfg: Config,
    store: SettingsStore,
    url: str | None,
    username: str | None,
    password: str | None,
) -> Session:
    """Build the startup session from flags, saved settings and config."""
    settings = store.settings
    start_url = url or settings.last_url or cfg.connection.default_url
    start_user = username
    if username is None and password is None:
        start_user = settings.last_username
    return new_session(start_url, start_user, password)


async def run_session(
    session: Session,
    store: SettingsStore,
    tz_name: str | None = None,
) -> int:
    """Run the interactive session with the global configuration.

    Returns:
        The terminal application's exit code

    """

    cfg = get_config()

    def client_factory(url: str) -> QBittorrentClient:
        return QBittorrentClient(
            url,
            timeout=cfg.connection.request_timeout,
            verify_ssl=cfg.connection.verify_ssl,
        )

    controller = SessionController(
        session,
        client_factory,
        store,
        refresh_interval=cfg.ui.refresh_interval,
    )
    view = SessionView(
        controller,
        min_width=cfg.ui.min_width,
        min_height=cfg.ui.min_height,
        default_url=cfg.connection.default_url,
        timezone=tz_name,
    )
    app = SessionApp(controller, view, poll_interval=cfg.ui.input_poll_interval)

    try:
        await app.run_async()
    finally:
        await controller.close()
    return app.return_code or 0


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--url", "-u", help="qBittorrent WebUI URL (e.g. http://localhost:8080)")
@click.option("--username", "-U", help="WebUI username")
@click.option("--password", "-p", help="WebUI password (with --username skips the setup screens)")
@click.option(
    "--timezone",
    "-t",
    "timezone_name",
    help="Timezone for log timestamps (saved for later runs)",
)
@click.option(
    "--list-timezones",
    is_flag=True,
    help="List common timezone names and exit",
)
@click.option(
    "--config",
    "-c",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    help="Configuration file path",
)
@click.option(
    "--print-config",
    is_flag=True,
    help="Print the effective configuration as TOML and exit",
)
@click.option(
    "--log-level",
    type=click.Choice([level.value for level in LogLevel], case_sensitive=False),
    help="Override the configured log level",
)
@click.version_option(__version__, prog_name="qbtui")
def cli(
    url: str | None,
    username: str | None,
    password: str | None,
    timezone_name: str | None,
    list_timezones: bool,
    config_file: str | None,
    print_config: bool,
    log_level: str | None,
) -> None:
    """Interactive terminal client for the qBittorrent WebUI."""
    if list_timezones:
        print_timezones(Console())
        return

    try:
        manager = init_config(config_file)
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e
    cfg = manager.config
    if log_level:
        cfg.observability.log_level = LogLevel(log_level.upper())
    if print_config:
        click.echo(manager.export(), nl=False)
        return

    store = SettingsStore()
    if timezone_name:
        try:
            store.set_timezone(timezone_name)
        except TimezoneError as e:
            raise click.BadParameter(e.message, param_hint="'--timezone'") from e
        except ConfigurationError as e:
            console.print(f"[yellow]Warning: {e.message}[/yellow]")
    tz_name = timezone_name or store.settings.timezone

    try:
        log_path = setup_logging(cfg.observability, tz_name=tz_name)
    except OSError as e:
        raise click.ClickException(f"Cannot open log file: {e}") from e
    logger.info("qbtui %s starting (log file: %s, timezone: %s)", __version__, log_path, tz_name)

    if not sys.stdin.isatty():
        raise click.ClickException("qbtui needs an interactive terminal on stdin")

    session = initial_session(cfg, store, url, username, password)
    try:
        return_code = asyncio.run(run_session(session, store, tz_name))
    except QBTUIError as e:
        logger.exception("Session aborted")
        raise click.ClickException(str(e)) from e
    except Exception as e:
        logger.exception("Unexpected error")
        console.print(f"[red]Unexpected error: {e}[/red]")
        raise SystemExit(1) from e
    if return_code:
        logger.error("Terminal UI exited with code %s", return_code)
        raise SystemExit(return_code)
    logger.info("qbtui exited normally")


def main() -> None:
    """Main CLI entry point."""
    cli()


if __name__ == "__main__":
    main()
