"""Rich terminal formatting for feishufix output."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from feishufix.core.models import (
    BackupRecord,
    CheckStatus,
    DetectionReport,
    Finding,
    FixSummary,
    PatchPreview,
    RestartResult,
    Severity,
    StatusInfo,
    UndoSummary,
)

console = Console()
error_console = Console(stderr=True)

PROG_NAME = "openclaw-feishu-fixer"

SEVERITY_ICONS = {
    Severity.ERROR: "[red]✗[/red]",
    Severity.WARNING: "[yellow]⚠[/yellow]",
    Severity.INFO: "[dim]○[/dim]",
}


def print_banner(title: str) -> None:
    console.print()
    console.print(Panel(f"[bold]{title}[/bold]", border_style="cyan", padding=(0, 1)))


def print_step(step: int, total: int, message: str) -> None:
    console.print(f"  [dim]\\[{step}/{total}][/dim] {message}")


def format_finding(finding: Finding) -> str:
    icon = SEVERITY_ICONS.get(finding.severity, "○")
    location = ""
    if finding.line:
        location = f"  [dim](line {finding.line})[/dim]"
    text = f"    {icon} {escape(finding.message)}{location}"
    if finding.suggestion:
        suggestion = escape(finding.suggestion).splitlines()
        text += f"\n      [dim]Suggestion:[/dim] {suggestion[0]}"
        for extra in suggestion[1:]:
            text += f"\n      {extra}"
    return text


def _state_label(report: DetectionReport) -> str:
    if report.status == CheckStatus.FIXED:
        return "[green bold]Fixed[/green bold]"
    if report.fixable:
        return "[yellow bold]Needs fix[/yellow bold]"
    return "[red bold]Cannot fix automatically[/red bold]"


def print_report(report: DetectionReport) -> None:
    """Print the result of ``check``."""
    lines = []
    lines.append(f"  OpenClaw path:    {_path_or_missing(report.install_path)}")
    lines.append(f"  OpenClaw version: {report.version or '[dim]unknown[/dim]'}")
    lines.append(f"  Target file:      {_path_or_missing(report.target_file)}")
    lines.append("")
    lines.append(f"  Status: {_state_label(report)}")
    lines.append("")

    icon = "[green]✓[/green]" if not report.problem else "[yellow]•[/yellow]"
    for detail in report.details:
        lines.append(f"    {icon} {detail}")

    if report.findings:
        lines.append("")
        counts = f"{len(report.errors)} error(s), {len(report.warnings)} warning(s)"
        lines.append(f"  [bold]Findings:[/bold] [dim]{counts}[/dim]")
        for finding in report.findings:
            lines.append(format_finding(finding))

    if report.problem and report.fixable:
        lines.append("")
        lines.append(f"  Run [cyan]{PROG_NAME} fix[/cyan] to fix this problem")

    border = "green" if not report.problem else "yellow" if report.fixable else "red"
    console.print(Panel("\n".join(lines), title="[bold]Detection Result[/bold]",
                        border_style=border, padding=(0, 1)))


def _path_or_missing(path) -> str:
    return f"[cyan]{path}[/cyan]" if path else "[red]not found[/red]"


def _print_restart(restart: RestartResult | None, lines: list[str]) -> None:
    if restart is None:
        return
    if restart.ready:
        lines.append("    [dim]•[/dim] Service:     [green]restarted[/green]")
    elif restart.attempted:
        lines.append(f"    [dim]•[/dim] Service:     [yellow]{restart.message}[/yellow]")


def _print_warnings(warnings: list[str]) -> None:
    for warning in warnings:
        console.print(f"  [yellow]⚠ {warning}[/yellow]")


def print_fix_summary(summary: FixSummary) -> None:
    console.print()
    if not summary.success:
        console.print(f"  [red]✗ Fix failed[/red]  [dim]{summary.code.value if summary.code else ''}[/dim]")
        console.print(f"  {summary.message}")
        if summary.verify_report is not None:
            for finding in summary.verify_report.findings:
                console.print(format_finding(finding))
        if summary.restored:
            console.print(f"  [dim]Original restored from {summary.backup.path}[/dim]")
        elif summary.backup is not None:
            console.print(f"  [yellow]Original not restored; backup kept at {summary.backup.path}[/yellow]")
            console.print(f"  [dim]Restore it with: {PROG_NAME} undo[/dim]")
        _print_warnings(summary.warnings)
        console.print()
        return

    if summary.no_op:
        console.print(f"  [green]✓ {summary.message}[/green]")
        console.print()
        return

    lines = ["", "  [green bold]✓ Fix complete[/green bold]", ""]
    if summary.report and summary.report.target_file:
        lines.append(f"    [dim]•[/dim] Target file: [cyan]{summary.report.target_file}[/cyan]")
    if summary.backup is not None:
        lines.append(f"    [dim]•[/dim] Backup:      [cyan]{summary.backup.path}[/cyan]")
    if summary.pruned:
        lines.append(f"    [dim]•[/dim] Pruned:      {summary.pruned} old backup(s)")
    _print_restart(summary.restart, lines)
    lines.append(f"    [dim]•[/dim] Elapsed:     {summary.elapsed * 1000:.0f}ms")
    lines.append("")
    lines.append(f"  [dim]To revert, run: {PROG_NAME} undo[/dim]")
    console.print(Panel("\n".join(lines), border_style="green", padding=(0, 1)))
    _print_warnings(summary.warnings)
    console.print()


def print_patch_preview(preview: PatchPreview) -> None:
    """Print the diff ``fix --preview`` would apply."""
    if not preview.success:
        console.print(f"  [red]✗ Preview failed[/red]  [dim]{preview.code.value if preview.code else ''}[/dim]")
        console.print(f"  {preview.message}")
        console.print()
        return

    if not preview.diff:
        console.print(f"  [green]✓ {preview.message}[/green]")
        console.print()
        return

    lines = []
    if preview.report and preview.report.target_file:
        lines.append(f"  [cyan]{preview.report.target_file}[/cyan]")
        lines.append("")
    for diff_line in preview.diff.splitlines():
        safe = escape(diff_line)
        if diff_line.startswith(("+++", "---")):
            lines.append(f"  [bold]{safe}[/bold]")
        elif diff_line.startswith("-"):
            lines.append(f"  [red]{safe}[/red]")
        elif diff_line.startswith("+"):
            lines.append(f"  [green]{safe}[/green]")
        elif diff_line.startswith("@@"):
            lines.append(f"  [cyan]{safe}[/cyan]")
        else:
            lines.append(f"  {safe}")
    lines.append("")
    lines.append(f"  [dim]Apply it with: {PROG_NAME} fix[/dim]")

    console.print(Panel("\n".join(lines), title="[bold]Patch Preview[/bold]",
                        border_style="cyan", padding=(0, 1)))
    console.print()


def print_undo_summary(summary: UndoSummary) -> None:
    console.print()
    if not summary.success:
        console.print(f"  [red]✗ Undo failed[/red]  [dim]{summary.code.value if summary.code else ''}[/dim]")
        console.print(f"  {summary.message}")
        console.print()
        return

    lines = ["", "  [green bold]✓ Undo complete[/green bold]", ""]
    if summary.report and summary.report.target_file:
        lines.append(f"    [dim]•[/dim] Target file: [cyan]{summary.report.target_file}[/cyan]")
    if summary.restored is not None:
        lines.append(f"    [dim]•[/dim] Restored:    [cyan]{summary.restored.path}[/cyan]")
    if summary.deleted:
        lines.append("    [dim]•[/dim] Backup file deleted")
    elif summary.remaining:
        lines.append(f"    [dim]•[/dim] Remaining:   {summary.remaining} backup(s)")
    _print_restart(summary.restart, lines)
    lines.append(f"    [dim]•[/dim] Elapsed:     {summary.elapsed * 1000:.0f}ms")
    lines.append("")
    lines.append(f"  [dim]To re-apply, run: {PROG_NAME} fix[/dim]")
    console.print(Panel("\n".join(lines), border_style="green", padding=(0, 1)))
    _print_warnings(summary.warnings)
    console.print()


def backups_table(backups: list[BackupRecord], limit: int = 3) -> Table:
    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
    table.add_column("")
    table.add_column("Backup")
    table.add_column("Created")
    table.add_column("Size", justify="right")
    for i, backup in enumerate(backups[:limit]):
        icon = "[green]●[/green]" if i == 0 else "[dim]○[/dim]"
        created = backup.created_at.astimezone().strftime("%Y-%m-%d %H:%M:%S")
        table.add_row(icon, f"[cyan]{backup.path}[/cyan]", created, f"{backup.size / 1024:.2f} KB")
    return table


def print_status(info: StatusInfo) -> None:
    report = info.report

    console.print(f"  [bold]System[/bold]  [dim]checked {info.checked_at:%Y-%m-%d %H:%M:%S}[/dim]")
    if info.installed:
        console.print("  OpenClaw:       [green]installed[/green]")
        console.print(f"  Install path:   [cyan]{report.install_path}[/cyan]")
        if report.version:
            console.print(f"  Version:        [cyan]{report.version}[/cyan]")
    else:
        console.print("  OpenClaw:       [red]not installed[/red]")
    console.print()

    console.print("  [bold]Fix[/bold]")
    if info.fixed:
        console.print("  State:          [green]fixed[/green]")
        console.print("  Media delivery: [green]working[/green]")
    elif report.fixable:
        console.print("  State:          [yellow]needs fix[/yellow]")
        console.print("  Media delivery: [yellow]likely broken[/yellow]")
    else:
        console.print("  State:          [dim]cannot be determined[/dim]")
    if report.target_file:
        console.print(f"  Target file:    [cyan]{report.target_file}[/cyan]")
    console.print()

    console.print("  [bold]Backups[/bold]")
    if info.backups:
        console.print(f"  Count:          {len(info.backups)}")
        console.print(backups_table(info.backups))
        if len(info.backups) > 3:
            console.print(f"  [dim]... {len(info.backups) - 3} older backup(s)[/dim]")
    else:
        console.print("  Count:          [dim]none[/dim]")
    console.print()

    if info.service is not None:
        console.print("  [bold]Service[/bold]")
        if info.service.active:
            console.print("  State:          [green]running[/green]")
            if info.service.since:
                console.print(f"  Since:          [cyan]{info.service.since}[/cyan]")
        else:
            console.print(f"  State:          [dim]{info.service.state}[/dim]")
        console.print()

    console.print("  [bold]Next step[/bold]")
    if not info.installed:
        console.print("  [yellow]•[/yellow] Install OpenClaw")
    elif not info.fixed:
        console.print(f"  [yellow]•[/yellow] Run [cyan]{PROG_NAME} fix[/cyan]")
    else:
        console.print("  [green]✓[/green] Nothing to do")
    console.print()


def print_unexpected_error(action: str, exc: BaseException) -> None:
    error_console.print()
    error_console.print(f"  [red bold]Unexpected error during {action}:[/red bold]")
    error_console.print(f"    [red]✗[/red] {exc}")
    error_console.print_exception()
    error_console.print()
