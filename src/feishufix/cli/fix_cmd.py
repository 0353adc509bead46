"""openclaw-feishu-fixer fix command."""

from __future__ import annotations

import click
from rich.prompt import Confirm

from feishufix.cli.context import get_orchestrator
from feishufix.core.output import (
    console,
    print_banner,
    print_fix_summary,
    print_patch_preview,
    print_unexpected_error,
)


@click.command()
@click.option("--no-restart", is_flag=True, help="Do not restart the gateway service")
@click.option("--no-backup", is_flag=True, help="Skip the backup (not recommended)")
@click.option("--force", "-f", is_flag=True, help="Re-apply even if already fixed")
@click.option("--preview", is_flag=True, help="Show the change without applying it")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompts")
@click.pass_context
def fix(ctx: click.Context, no_restart: bool, no_backup: bool, force: bool,
        preview: bool, yes: bool):
    """Apply the media patch to the Feishu reply dispatcher.

    A backup is taken first and restored automatically if the patch fails.
    """
    print_banner("OpenClaw Feishu media fix")

    try:
        orchestrator = get_orchestrator(ctx)

        if preview:
            result = orchestrator.preview()
            print_patch_preview(result)
            code = 0 if result.success else 1
        elif no_backup and not yes and not Confirm.ask(
            "  Continue without a backup? A failed patch cannot be rolled back", default=False
        ):
            console.print("  [dim]Skipped.[/dim]")
            code = 1
        else:
            restart = not no_restart and orchestrator.config.fix.auto_restart
            skip_backup = no_backup or not orchestrator.config.fix.create_backup
            if skip_backup:
                console.print("  [yellow]Running without a backup.[/yellow]")
            summary = orchestrator.fix(restart=restart, no_backup=skip_backup, force=force)
            print_fix_summary(summary)
            code = 0 if summary.success else 1
    except Exception as exc:
        print_unexpected_error("fix", exc)
        code = 2

    ctx.exit(code)
