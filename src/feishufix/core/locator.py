"""Locate the OpenClaw install, its version and the reply dispatcher file.

Pure filesystem probing. Every lookup returns ``None`` instead of raising
so the detector can turn a miss into a structured report.
"""

from __future__ import annotations

import json
import logging
import shutil
import subprocess
from pathlib import Path

from feishufix.core.config import (
    COMPILED_FILE_RELATIVE,
    MANIFEST_NAME,
    TARGET_FILE_RELATIVE,
    PathsConfig,
)

logger = logging.getLogger(__name__)

# How far up from the resolved gateway binary we look for the package root.
MAX_WALK_UP = 4


class InstallLocator:
    """Resolves the host application's install directory and target file."""

    def __init__(
        self,
        paths: PathsConfig | None = None,
        command_timeout: float = 10.0,
    ) -> None:
        self.paths = paths or PathsConfig()
        self.command_timeout = command_timeout

    def locate_install(self) -> Path | None:
        """Return the first install directory found, or None."""
        for candidate in self.paths.install_candidates:
            if self._has_manifest(candidate):
                logger.debug("Install found at candidate %s", candidate)
                return candidate

        found = self._from_executable()
        if found:
            return found

        return self._from_npm_root()

    def resolve_version(self, install_path: Path) -> str | None:
        manifest = self._read_manifest(install_path)
        if manifest and manifest.get("version"):
            return str(manifest["version"])

        version_file = install_path / "VERSION"
        if version_file.is_file():
            try:
                return version_file.read_text(encoding="utf-8").strip() or None
            except OSError:
                logger.debug("Unreadable VERSION file at %s", version_file)
        return None

    def resolve_target_file(self, install_path: Path) -> Path | None:
        """Prefer the TypeScript source, fall back to the compiled JavaScript."""
        for relative in (TARGET_FILE_RELATIVE, COMPILED_FILE_RELATIVE):
            path = install_path / relative
            if path.is_file():
                return path
        return None

    def expected_target_file(self, install_path: Path) -> Path:
        return install_path / TARGET_FILE_RELATIVE

    # ------------------------------------------------------------------
    # Fallback lookups
    # ------------------------------------------------------------------

    def _from_executable(self) -> Path | None:
        binary = shutil.which(self.paths.executable)
        if not binary:
            return None

        resolved = Path(binary).resolve()
        logger.debug("%s resolves to %s", self.paths.executable, resolved)
        for parent in list(resolved.parents)[:MAX_WALK_UP]:
            manifest = self._read_manifest(parent)
            if manifest and manifest.get("name") == self.paths.package_name:
                return parent
        return None

    def _from_npm_root(self) -> Path | None:
        try:
            result = subprocess.run(
                ["npm", "root", "-g"],
                capture_output=True, text=True, timeout=self.command_timeout,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            logger.debug("npm root -g failed: %s", exc)
            return None

        root = result.stdout.strip()
        if result.returncode != 0 or not root:
            return None

        candidate = Path(root) / self.paths.package_name
        if self._has_manifest(candidate):
            return candidate
        return None

    # ------------------------------------------------------------------
    # Manifest helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _has_manifest(path: Path) -> bool:
        return (path / MANIFEST_NAME).is_file()

    @staticmethod
    def _read_manifest(path: Path) -> dict | None:
        manifest = path / MANIFEST_NAME
        if not manifest.is_file():
            return None
        try:
            data = json.loads(manifest.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.debug("Unreadable manifest at %s", manifest)
            return None
        return data if isinstance(data, dict) else None
