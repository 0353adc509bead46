"""openclaw-feishu-fixer status command."""

from __future__ import annotations

import click

from feishufix.cli.context import get_orchestrator
from feishufix.core.output import print_banner, print_status, print_unexpected_error


@click.command()
@click.pass_context
def status(ctx: click.Context):
    """Show install, fix, backup and service state."""
    print_banner("OpenClaw Feishu media status")

    try:
        info = get_orchestrator(ctx).status()
        print_status(info)
        code = 0
    except Exception as exc:
        print_unexpected_error("status", exc)
        code = 1

    ctx.exit(code)
