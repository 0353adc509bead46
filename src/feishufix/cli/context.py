"""Builds the per-invocation orchestrator for CLI commands."""

from __future__ import annotations

import click

from feishufix.core.config import load_config
from feishufix.core.output import print_step
from feishufix.fix.orchestrator import Orchestrator


def get_orchestrator(ctx: click.Context) -> Orchestrator:
    """Return the orchestrator placed in ``ctx.obj`` or build a fresh one."""
    obj = ctx.ensure_object(dict)
    if obj.get("orchestrator") is not None:
        return obj["orchestrator"]
    config = load_config(obj.get("config_file"))
    return Orchestrator(config=config, on_step=print_step)
