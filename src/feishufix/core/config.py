"""Configuration management for feishufix (config.toml parsing + defaults)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

try:
    import tomllib
except ImportError:
    try:
        import tomli as tomllib  # type: ignore[no-redef]
    except ImportError:
        tomllib = None  # type: ignore[assignment]

CONFIG_ENV_VAR = "OPENCLAW_FEISHU_FIXER_CONFIG"

PACKAGE_NAME = "openclaw"
MANIFEST_NAME = "package.json"
TARGET_FILE_RELATIVE = "extensions/feishu/src/reply-dispatcher.ts"
COMPILED_FILE_RELATIVE = "extensions/feishu/dist/reply-dispatcher.js"


def default_install_candidates() -> list[Path]:
    """Ordered list of places OpenClaw is usually installed."""
    home = Path.home()
    candidates = [
        home / ".npm-global" / "lib" / "node_modules" / PACKAGE_NAME,
        home / ".openclaw",
        home / ".openclaw" / "workspace",
        Path("/usr/local/lib/node_modules") / PACKAGE_NAME,
        Path("/usr/lib/node_modules") / PACKAGE_NAME,
    ]
    nvm_versions = home / ".nvm" / "versions" / "node"
    if nvm_versions.is_dir():
        for version_dir in sorted(nvm_versions.iterdir(), reverse=True):
            candidates.append(version_dir / "lib" / "node_modules" / PACKAGE_NAME)
    return candidates


def default_config_file() -> Path:
    return Path.home() / ".config" / "openclaw-feishu-fixer" / "config.toml"


@dataclass
class PathsConfig:
    install_candidates: list[Path] = field(default_factory=default_install_candidates)
    backup_dir: Path = field(
        default_factory=lambda: Path.home() / ".openclaw-feishu-fixer" / "backups"
    )
    executable: str = "openclaw-gateway"
    package_name: str = PACKAGE_NAME


@dataclass
class FixConfig:
    create_backup: bool = True
    auto_restart: bool = True


@dataclass
class BackupConfig:
    max_age_days: int = 0  # 0 keeps every backup


@dataclass
class ServiceConfig:
    name: str = "openclaw-gateway.service"
    restart_timeout: float = 30.0
    poll_interval: float = 1.0
    command_timeout: float = 10.0

    @property
    def manual_restart_command(self) -> str:
        return f"systemctl --user restart {self.name}"


@dataclass
class FixerConfig:
    """Complete feishufix configuration."""

    paths: PathsConfig = field(default_factory=PathsConfig)
    fix: FixConfig = field(default_factory=FixConfig)
    backup: BackupConfig = field(default_factory=BackupConfig)
    service: ServiceConfig = field(default_factory=ServiceConfig)


def resolve_config_file(config_file: Path | None = None) -> Path:
    """Pick the config file: explicit argument, then env var, then the per-user default."""
    if config_file is not None:
        return config_file
    env_value = os.environ.get(CONFIG_ENV_VAR, "").strip()
    if env_value:
        return Path(env_value).expanduser()
    return default_config_file()


def load_config(config_file: Path | None = None) -> FixerConfig:
    """Load configuration from the TOML file if present, otherwise return defaults."""
    config = FixerConfig()

    config_file = resolve_config_file(config_file)
    if not config_file.exists():
        return config

    if tomllib is None:
        return config

    with open(config_file, "rb") as f:
        data = tomllib.load(f)

    if "paths" in data:
        p = data["paths"]
        if "install_candidates" in p:
            config.paths.install_candidates = [Path(c).expanduser() for c in p["install_candidates"]]
        if "backup_dir" in p:
            config.paths.backup_dir = Path(p["backup_dir"]).expanduser()
        for attr in ("executable", "package_name"):
            if attr in p:
                setattr(config.paths, attr, p[attr])

    if "fix" in data:
        fx = data["fix"]
        for attr in ("create_backup", "auto_restart"):
            if attr in fx:
                setattr(config.fix, attr, fx[attr])

    if "backup" in data:
        b = data["backup"]
        if "max_age_days" in b:
            config.backup.max_age_days = max(0, int(b["max_age_days"]))

    if "service" in data:
        s = data["service"]
        if "name" in s:
            config.service.name = s["name"]
        for attr in ("restart_timeout", "poll_interval", "command_timeout"):
            if attr in s:
                setattr(config.service, attr, float(s[attr]))

    return config
