"""Igor whoami command: verify the token against GitLab."""

from __future__ import annotations

import json
from dataclasses import asdict
from typing import TYPE_CHECKING

import click

from ..gitlab import GitLabClient

if TYPE_CHECKING:
    from ..cli_types import WhoamiArgs


def cmd_whoami(args: WhoamiArgs) -> None:
    """Print the user the token authenticates as."""
    client = GitLabClient(args.host, args.token)
    try:
        user = client.get_current_user()
    finally:
        client.close()

    if args.json:
        click.echo(json.dumps(asdict(user), indent=2, sort_keys=True))
        return

    flags = []
    if user.bot:
        flags.append("bot")
    if user.locked:
        flags.append("locked")
    suffix = f" [{', '.join(flags)}]" if flags else ""
    click.echo(f"{user.username} ({user.name}) id={user.id} state={user.state}{suffix}")
    click.echo(f"Host: {args.host}")
