"""openclaw-feishu-fixer check command."""

from __future__ import annotations

import click

from feishufix.cli.context import get_orchestrator
from feishufix.core.output import print_banner, print_report, print_unexpected_error


@click.command()
@click.pass_context
def check(ctx: click.Context):
    """Check whether Feishu media delivery needs the fix.

    Exits 1 when a problem is detected, 0 otherwise.
    """
    print_banner("OpenClaw Feishu media check")

    try:
        report = get_orchestrator(ctx).check()
        print_report(report)
        code = 1 if report.problem else 0
    except Exception as exc:
        print_unexpected_error("check", exc)
        code = 2

    ctx.exit(code)
