"""Sequences detect, backup, patch, verify and restart for each command.

Nothing here is shared across invocations: every call re-reads the target
from disk. The file is not locked, so another process could change it
between detection and patching; the pre-patch backup and the post-patch
re-detection are the only guards against that.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable

from feishufix.core.config import FixerConfig, load_config
from feishufix.core.errors import ErrorCode, FixerError
from feishufix.core.locator import InstallLocator
from feishufix.core.models import (
    BackupRecord,
    CheckStatus,
    DetectionReport,
    FixSummary,
    PatchPreview,
    RestartResult,
    StatusInfo,
    UndoSummary,
)
from feishufix.core.service import ServiceController, SystemdUserService, wait_until_active
from feishufix.fix.backup import BackupStore
from feishufix.fix.detector import Detector
from feishufix.fix.patcher import Patcher, patch_text, render_diff

logger = logging.getLogger(__name__)

StepCallback = Callable[[int, int, str], None]


def _no_step(step: int, total: int, message: str) -> None:
    logger.debug("[%d/%d] %s", step, total, message)


def _missing_install_code(report: DetectionReport) -> tuple[ErrorCode, str] | None:
    if report.status == CheckStatus.NOT_FOUND:
        return ErrorCode.INSTALL_NOT_FOUND, "OpenClaw installation not found"
    if report.status == CheckStatus.FILE_NOT_FOUND or report.target_file is None:
        return ErrorCode.FILE_NOT_FOUND, "Target file not found; check the OpenClaw version (2026.2.x)"
    if report.status == CheckStatus.READ_ERROR:
        return ErrorCode.PERMISSION_DENIED, "Target file could not be read"
    return None


class Orchestrator:
    """Owns one detector, backup store, patcher and service per invocation."""

    def __init__(
        self,
        config: FixerConfig | None = None,
        detector: Detector | None = None,
        backup_store: BackupStore | None = None,
        patcher: Patcher | None = None,
        service: ServiceController | None = None,
        on_step: StepCallback | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config or load_config()
        self.detector = detector or Detector(
            InstallLocator(self.config.paths, self.config.service.command_timeout)
        )
        self.backup_store = backup_store or BackupStore(self.config.paths.backup_dir)
        self.patcher = patcher or Patcher(self.backup_store)
        self.service = service or SystemdUserService(self.config.service)
        self.on_step = on_step or _no_step
        self._sleep = sleep

    def check(self) -> DetectionReport:
        return self.detector.detect()

    # ------------------------------------------------------------------
    # fix
    # ------------------------------------------------------------------

    def fix(self, restart: bool = True, no_backup: bool = False, force: bool = False) -> FixSummary:
        started = time.monotonic()
        total = 5 if restart else 4

        self.on_step(1, total, "Detecting problem...")
        report = self.detector.detect()

        missing = _missing_install_code(report)
        if missing:
            code, message = missing
            return FixSummary(success=False, message=message, code=code, report=report,
                              elapsed=time.monotonic() - started)

        if not report.problem and not force:
            return FixSummary(
                success=True,
                message="Already fixed; use --force to re-apply",
                report=report,
                no_op=True,
                elapsed=time.monotonic() - started,
            )

        target = report.target_file
        warnings: list[str] = []

        self.on_step(2, total, "Creating backup...")
        backup: BackupRecord | None = None
        if no_backup:
            warnings.append("Backup skipped (--no-backup); a failed patch cannot be rolled back")
        else:
            try:
                backup = self.backup_store.create(target)
            except FixerError as exc:
                return FixSummary(success=False, message=f"Backup failed: {exc.message}",
                                  code=exc.code, report=report,
                                  elapsed=time.monotonic() - started)

        self.on_step(3, total, "Applying patch...")
        outcome = self.patcher.apply(report, no_backup=no_backup, force=force, backup=backup)
        if not outcome.success:
            return FixSummary(
                success=False,
                message=outcome.message,
                code=outcome.code,
                report=report,
                outcome=outcome,
                backup=backup,
                restored=outcome.restored,
                warnings=warnings,
                elapsed=time.monotonic() - started,
            )

        self.on_step(4, total, "Verifying fix...")
        verify_report = self.detector.detect()
        if verify_report.problem:
            # The file changed under us or the patch did not take; undo it.
            restored = backup is not None and self._restore_quietly(backup, target)
            return FixSummary(
                success=False,
                message="Patch written but re-detection still reports a problem",
                code=ErrorCode.NOT_FIXED,
                report=report,
                verify_report=verify_report,
                outcome=outcome,
                backup=backup,
                restored=restored,
                warnings=warnings,
                elapsed=time.monotonic() - started,
            )

        pruned = 0
        if self.config.backup.max_age_days > 0:
            try:
                pruned = self.backup_store.prune(self.config.backup.max_age_days, target)
            except FixerError as exc:
                warnings.append(f"Pruning old backups failed: {exc.message}")

        restart_result = None
        if restart:
            self.on_step(5, total, "Restarting service...")
            restart_result = self._restart(warnings)

        return FixSummary(
            success=True,
            message="Fix applied",
            report=report,
            verify_report=verify_report,
            outcome=outcome,
            backup=backup,
            pruned=pruned,
            restart=restart_result,
            warnings=warnings,
            elapsed=time.monotonic() - started,
        )

    def preview(self) -> PatchPreview:
        """Compute the patch diff in memory. Nothing is written or backed up."""
        report = self.detector.detect()

        missing = _missing_install_code(report)
        if missing:
            code, message = missing
            return PatchPreview(success=False, message=message, code=code, report=report)

        if not report.problem:
            return PatchPreview(success=True, message="Already fixed; nothing to change", report=report)

        target = report.target_file
        try:
            text = target.read_bytes().decode("utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            return PatchPreview(success=False, message=f"Could not read file: {exc}",
                                code=ErrorCode.PERMISSION_DENIED, report=report)

        try:
            patched = patch_text(text)
        except FixerError as exc:
            return PatchPreview(success=False, message=f"Patch failed: {exc.message}",
                                code=exc.code, report=report)

        return PatchPreview(
            success=True,
            message="Patch preview",
            report=report,
            diff=render_diff(text, patched, target.name),
        )

    # ------------------------------------------------------------------
    # undo
    # ------------------------------------------------------------------

    def undo(self, restart: bool = True, delete_backup: bool = False) -> UndoSummary:
        started = time.monotonic()
        total = 4 if restart else 3

        self.on_step(1, total, "Detecting current state...")
        report = self.detector.detect()
        if report.install_path is None:
            return UndoSummary(success=False, message="OpenClaw installation not found",
                               code=ErrorCode.INSTALL_NOT_FOUND, report=report,
                               elapsed=time.monotonic() - started)
        if report.target_file is None:
            return UndoSummary(success=False, message="Target file not found",
                               code=ErrorCode.FILE_NOT_FOUND, report=report,
                               elapsed=time.monotonic() - started)

        target = report.target_file

        self.on_step(2, total, "Looking for backups...")
        latest = self.backup_store.latest(target)
        if latest is None:
            return UndoSummary(success=False, message="No backup found; nothing to undo",
                               code=ErrorCode.BACKUP_NOT_FOUND, report=report,
                               elapsed=time.monotonic() - started)

        logger.info("Restoring %s (%s, %d bytes)", latest.path, latest.created_at, latest.size)

        self.on_step(3, total, "Restoring backup...")
        try:
            self.backup_store.restore(latest.path, target)
        except FixerError as exc:
            return UndoSummary(success=False, message=f"Restore failed: {exc.message}",
                               code=exc.code, report=report,
                               elapsed=time.monotonic() - started)

        warnings: list[str] = []
        deleted = False
        if delete_backup:
            try:
                self.backup_store.delete(latest.path)
                deleted = True
            except FixerError as exc:
                warnings.append(f"Could not delete backup: {exc.message}")

        restart_result = None
        if restart:
            self.on_step(4, total, "Restarting service...")
            restart_result = self._restart(warnings)

        return UndoSummary(
            success=True,
            message="Fix undone",
            report=report,
            restored=latest,
            deleted=deleted,
            remaining=sum(1 for b in self.backup_store.list(target) if b.path != latest.path),
            restart=restart_result,
            warnings=warnings,
            elapsed=time.monotonic() - started,
        )

    # ------------------------------------------------------------------
    # status
    # ------------------------------------------------------------------

    def status(self) -> StatusInfo:
        report = self.detector.detect()
        backups = self.backup_store.list(report.target_file) if report.target_file else []
        service = self.service.query_status() if self.service.exists() else None
        return StatusInfo(report=report, backups=backups, service=service)

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _restart(self, warnings: list[str]) -> RestartResult:
        """Restart the gateway. Failures become warnings, never errors."""
        manual = self.config.service.manual_restart_command

        if not self.service.exists():
            warnings.append("Gateway service not detected; restart skipped")
            return RestartResult(attempted=False, message="service not found")

        if not self.service.restart():
            warnings.append(f"Service restart failed; run manually: {manual}")
            return RestartResult(attempted=True, ready=False, message="restart failed",
                                 code=ErrorCode.SERVICE_ERROR)

        ready = wait_until_active(
            self.service,
            timeout=self.config.service.restart_timeout,
            interval=self.config.service.poll_interval,
            sleep=self._sleep,
        )
        if not ready:
            warnings.append(f"Service did not become active in time; check it with: {manual}")
            return RestartResult(attempted=True, ready=False, message="timed out waiting for service",
                                 code=ErrorCode.SERVICE_ERROR)

        return RestartResult(attempted=True, ready=True, message="service restarted")

    def _restore_quietly(self, backup: BackupRecord, target: Path) -> bool:
        try:
            self.backup_store.restore(backup.path, target)
        except FixerError as exc:
            logger.error("Restoring backup %s failed: %s", backup.path, exc.message)
            return False
        return True
