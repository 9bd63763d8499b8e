"""Igor CLI using Click."""

from __future__ import annotations

import logging
import sys
from importlib.metadata import version
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

import click
from dotenv import load_dotenv

from .cli_types import TuiArgs, WatchArgs, WhoamiArgs
from .commands import cmd_tui, cmd_watch, cmd_whoami
from .conductor import Command
from .config import AppConfig, Connection, load_config, resolve_connection
from .constants import LOG_BACKUP_DAYS, RUNNER_STATUSES, RUNNER_TYPES
from .exceptions import CommandFailureError, IgorError, UserError
from .utils import default_log_path, ensure_parent_dir

# Module logger
logger = logging.getLogger("igor")


def setup_logging(debug: bool = False) -> None:
    """Configure logging for the CLI."""
    level = logging.DEBUG if debug else logging.WARNING
    logger.setLevel(level)
    if any(
        isinstance(h, logging.StreamHandler) and getattr(h, "stream", None) is sys.stderr
        for h in logger.handlers
    ):
        return
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    logger.addHandler(handler)


def setup_file_logging(log_path: Path, debug: bool = False) -> None:
    """Send logging to a daily-rotated file instead of stderr.

    Used by the dashboard, where stderr output would corrupt the screen.
    """
    ensure_parent_dir(log_path)
    for h in list(logger.handlers):
        if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler):
            logger.removeHandler(h)
    handler = TimedRotatingFileHandler(
        log_path, when="midnight", backupCount=LOG_BACKUP_DAYS, encoding="utf-8"
    )
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s")
    )
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if debug else logging.INFO)


def _load_app_config(config_path: str | None) -> AppConfig:
    try:
        return load_config(config_path)
    except UserError:
        raise
    except IgorError as e:
        logger.warning("Ignoring config file: %s", e)
        return AppConfig()


def _connection(ctx: click.Context) -> tuple[Connection, AppConfig]:
    obj = ctx.obj
    config = _load_app_config(obj["config_path"])
    if config.source:
        logger.debug("Loaded config from %s", config.source)
    conn = resolve_connection(host=obj["host"], token=obj["token"], config=config)
    return conn, config


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=version("igor"), prog_name="igor")
@click.option(
    "--debug",
    "-d",
    is_flag=True,
    help="Enable debug logging.",
)
@click.option(
    "--host",
    envvar="GITLAB_HOST",
    help="GitLab base URL (default: https://gitlab.com).",
)
@click.option(
    "--token",
    envvar="GITLAB_TOKEN",
    help="GitLab personal access token with read_api scope.",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    help="Path to config.toml (default: ./config.toml, then ~/.config/igor/config.toml).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    debug: bool,
    host: str | None,
    token: str | None,
    config_path: str | None,
):
    """Igor: monitor GitLab runners and their managers."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["host"] = host
    ctx.obj["token"] = token
    ctx.obj["config_path"] = config_path
    setup_logging(debug=debug)


@cli.command("tui")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False),
    help="Dashboard log file (default: ~/.igor/logs/igor.log).",
)
@click.pass_context
def tui(ctx: click.Context, log_file: str | None):
    """Open the interactive runner dashboard."""
    conn, config = _connection(ctx)
    log_path = Path(log_file) if log_file else default_log_path()
    setup_file_logging(log_path, debug=ctx.obj["debug"])
    cmd_tui(TuiArgs(host=conn.host, token=conn.token, config=config))


@cli.command("watch")
@click.option(
    "--command",
    "command_name",
    type=click.Choice(Command.names(), case_sensitive=False),
    default=Command.ROTATE.value,
    show_default=True,
    help="Command to run on every poll.",
)
@click.option(
    "--tags",
    help="Comma-separated runner tags; a runner matches if it has any of them.",
)
@click.option(
    "--status",
    type=click.Choice(RUNNER_STATUSES),
    help="Only runners GitLab reports with this status.",
)
@click.option(
    "--type",
    "runner_type",
    type=click.Choice(RUNNER_TYPES),
    help="Only runners of this type.",
)
@click.option(
    "--interval",
    type=click.IntRange(min=1),
    help="Seconds between polls (default: poll_interval_secs from config, 30).",
)
@click.option(
    "--timeout",
    type=click.IntRange(min=1),
    help="Stop polling after this many seconds (default: poll_timeout_secs, 1800).",
)
@click.option(
    "--once",
    is_flag=True,
    help="Run a single poll and exit.",
)
@click.option(
    "--json",
    "json_output",
    is_flag=True,
    help="Emit one JSON object per poll to stdout.",
)
@click.pass_context
def watch(
    ctx: click.Context,
    command_name: str,
    tags: str | None,
    status: str | None,
    runner_type: str | None,
    interval: int | None,
    timeout: int | None,
    once: bool,
    json_output: bool,
):
    """Poll a runner command headlessly and print each result."""
    conn, config = _connection(ctx)
    args = WatchArgs(
        host=conn.host,
        token=conn.token,
        config=config,
        command=command_name.lower(),
        tags=tags,
        interval=interval,
        timeout=timeout,
        once=once,
        json=json_output,
        status=status,
        runner_type=runner_type,
    )
    cmd_watch(args)


@cli.command("whoami")
@click.option(
    "--json",
    "json_output",
    is_flag=True,
    help="Emit machine-readable JSON to stdout.",
)
@click.pass_context
def whoami(ctx: click.Context, json_output: bool):
    """Show which GitLab user the token belongs to."""
    conn, _config = _connection(ctx)
    cmd_whoami(WhoamiArgs(host=conn.host, token=conn.token, json=json_output))


def main():
    """Main entry point for the CLI."""
    load_dotenv()
    try:
        cli()
    except CommandFailureError as e:
        # Command already printed its error message, just exit
        sys.exit(e.rc)
    except UserError as e:
        click.echo(f"ERROR: {e}", err=True)
        sys.exit(e.rc)
    except IgorError as e:
        click.echo(f"ERROR: {e}", err=True)
        sys.exit(2)
    except KeyboardInterrupt:
        click.echo("ERROR: Interrupted", err=True)
        sys.exit(130)
