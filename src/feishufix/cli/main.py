"""Click CLI entry point for openclaw-feishu-fixer."""

from __future__ import annotations

import logging
from pathlib import Path

import click
from rich.logging import RichHandler

from feishufix._version import __version__
from feishufix.core.output import error_console


def _setup_logging(verbose: bool) -> None:
    level = logging.INFO if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=error_console, show_time=False, show_path=False)],
    )


@click.group()
@click.version_option(version=__version__, prog_name="openclaw-feishu-fixer")
@click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to config.toml (default: ~/.config/openclaw-feishu-fixer/config.toml)",
)
@click.option("--verbose", "-v", is_flag=True, help="Show progress logging")
@click.pass_context
def cli(ctx: click.Context, config_file: Path | None, verbose: bool):
    """OpenClaw Feishu media fixer.

    Detects and fixes the missing image delivery in OpenClaw's Feishu
    extension, with backups and one-command undo.
    """
    _setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj.setdefault("config_file", config_file)


# Import and register subcommands
from feishufix.cli.check_cmd import check  # noqa: E402
from feishufix.cli.fix_cmd import fix  # noqa: E402
from feishufix.cli.undo_cmd import undo  # noqa: E402
from feishufix.cli.status_cmd import status  # noqa: E402

cli.add_command(check)
cli.add_command(fix)
cli.add_command(undo)
cli.add_command(status)


if __name__ == "__main__":
    cli()
