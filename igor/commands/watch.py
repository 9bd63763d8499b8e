"""Igor watch command: headless polling of one command."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from dataclasses import asdict
from typing import TYPE_CHECKING, Any

import click

from ..conductor import Command, CommandResult, Conductor, ResultView, execute_command
from ..exceptions import CommandFailureError, GitLabError
from ..gitlab import GitLabClient
from ..models import RunnerFilters
from ..utils import format_clock, parse_tag_list
from .tui.formatting import (
    WORKER_COLUMNS,
    format_health_line,
    format_poll_header,
    format_runner_brief,
    manager_row_values,
    render_table,
)

if TYPE_CHECKING:
    from ..cli_types import WatchArgs

logger = logging.getLogger(__name__)


def result_count(result: CommandResult) -> int:
    if result.view is ResultView.HEALTH_CHECK and result.health is not None:
        return result.health.total_count
    return result.row_count


def result_to_json(result: CommandResult, *, poll_number: int, elapsed_s: float) -> dict[str, Any]:
    return {
        "poll": poll_number,
        "elapsed_s": round(elapsed_s, 1),
        "command": result.command.value,
        "view": result.view.value,
        "count": result_count(result),
        "runners": [asdict(r) for r in result.runners],
        "manager_rows": [asdict(r) for r in result.manager_rows],
        "health": asdict(result.health) if result.health is not None else None,
    }


def render_result_lines(result: CommandResult) -> list[str]:
    """Plain-text body for one poll result."""
    if result.view is ResultView.HEALTH_CHECK:
        if result.health is None:
            return []
        return [f"  {format_health_line(result.health)}"]
    if result.view is ResultView.WORKERS:
        if not result.manager_rows:
            return ["  No managers found"]
        header, lines = render_table(
            WORKER_COLUMNS,
            [manager_row_values(r) for r in result.manager_rows],
            cap_widths=False,
        )
        return [f"  {header}"] + [f"  {line}" for line in lines]
    if not result.runners and result.view is ResultView.ROTATION:
        return ["  No rotation detected (all runners have at most one manager)"]
    return [format_runner_brief(r) for r in result.runners]


def cmd_watch(
    args: WatchArgs,
    *,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> None:
    """Poll one command until the timeout, printing each result.

    Failed polls are reported on stderr and polling continues. With
    ``--once`` a failed poll exits non-zero.
    """
    command = Command(args.command)
    filters = RunnerFilters(
        tag_list=parse_tag_list(args.tags),
        status=args.status,
        runner_type=args.runner_type,
    )
    interval = args.interval or args.config.poll_interval_secs
    timeout = args.timeout or args.config.poll_timeout_secs

    client = GitLabClient(args.host, args.token)
    conductor = Conductor(client)

    if not args.json:
        tags = ",".join(filters.tag_list) if filters.tag_list else "(all)"
        click.echo(
            f"Watching '{command.value}' on {args.host} tags={tags} "
            f"every {interval}s for up to {timeout}s"
        )

    started = clock()
    poll_number = 0
    try:
        while True:
            elapsed = clock() - started
            if poll_number and elapsed >= timeout:
                if not args.json:
                    click.echo(f"Poll timeout reached ({timeout} seconds). Exiting.")
                return
            poll_number += 1

            try:
                result = execute_command(conductor, command, filters)
            except GitLabError as e:
                logger.debug("Poll #%d failed", poll_number, exc_info=True)
                click.echo(f"[{format_clock(elapsed)}] Poll #{poll_number} failed: {e}", err=True)
                if args.once:
                    raise CommandFailureError(rc=1) from e
            else:
                if args.json:
                    payload = result_to_json(result, poll_number=poll_number, elapsed_s=elapsed)
                    click.echo(json.dumps(payload, sort_keys=True))
                else:
                    click.echo(
                        format_poll_header(
                            elapsed, poll_number, result_count(result), command.value
                        )
                    )
                    for line in render_result_lines(result):
                        click.echo(line)

            if args.once:
                return
            sleep(interval)
    finally:
        client.close()
