"""openclaw-feishu-fixer undo command."""

from __future__ import annotations

import click

from feishufix.cli.context import get_orchestrator
from feishufix.core.output import print_banner, print_undo_summary, print_unexpected_error


@click.command()
@click.option("--no-restart", is_flag=True, help="Do not restart the gateway service")
@click.option("--delete-backup", "-d", is_flag=True, help="Delete the backup after restoring it")
@click.pass_context
def undo(ctx: click.Context, no_restart: bool, delete_backup: bool):
    """Undo the fix by restoring the newest backup."""
    print_banner("OpenClaw Feishu media undo")

    try:
        orchestrator = get_orchestrator(ctx)
        restart = not no_restart and orchestrator.config.fix.auto_restart
        summary = orchestrator.undo(restart=restart, delete_backup=delete_backup)
        print_undo_summary(summary)
        code = 0 if summary.success else 1
    except Exception as exc:
        print_unexpected_error("undo", exc)
        code = 2

    ctx.exit(code)
