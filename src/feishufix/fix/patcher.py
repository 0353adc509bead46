"""Patch engine: inserts the media import and dispatch block into deliver.

The text steps run in memory and the file is written only after the
patched text passes verification. When anything fails after a backup was
taken, the backup is restored before the failed outcome is returned.
"""

from __future__ import annotations

import difflib
import logging
from pathlib import Path

from feishufix.core.errors import ErrorCode, FixerError, PatchError
from feishufix.core.models import BackupRecord, DetectionReport, ErrorInfo, PatchOutcome
from feishufix.fix import anchors
from feishufix.fix.backup import BackupStore

logger = logging.getLogger(__name__)


def newline_of(text: str) -> str:
    return "\r\n" if "\r\n" in text else "\n"


def insert_import(text: str) -> str:
    if anchors.import_already_present(text):
        logger.debug("Media import already present, skipping")
        return text

    offset = anchors.find_send_import_anchor(text)
    if offset is None:
        offset = anchors.find_last_import_line_end(text)
        if offset is None:
            raise PatchError("No suitable insertion point for the media import")
        logger.debug("send.js anchor missing, inserting after the last import")

    return text[:offset] + newline_of(text) + anchors.MEDIA_IMPORT + text[offset:]


def insert_logic(text: str) -> str:
    if anchors.logic_already_present(text):
        logger.debug("Media logic already present, skipping")
        return text

    signature = anchors.find_handler_signature(text)
    if signature is None:
        raise PatchError("deliver handler definition not found")

    offset = anchors.find_handler_body_open(text, signature.start())
    if offset is None:
        raise PatchError("Could not parse deliver handler structure")

    logic = anchors.MEDIA_LOGIC.replace("\n", newline_of(text))
    return text[:offset] + logic + text[offset:]


def verify(text: str) -> bool:
    """All three markers plus the attribution comment must be present."""
    return (
        anchors.has_import_marker(text)
        and anchors.has_logic_marker(text)
        and anchors.has_call_marker(text)
        and anchors.has_attribution_marker(text)
    )


def patch_text(text: str) -> str:
    """Return the patched text or raise :class:`PatchError`. Idempotent."""
    patched = insert_logic(insert_import(text))
    if not verify(patched):
        raise PatchError("Patch verification failed: patched text lacks the expected fragments")
    return patched


def render_diff(original: str, patched: str, name: str) -> str:
    """Unified diff of the patch, as ``fix --preview`` shows it."""
    return "".join(difflib.unified_diff(
        original.splitlines(keepends=True),
        patched.splitlines(keepends=True),
        fromfile=f"a/{name}",
        tofile=f"b/{name}",
        n=2,
    ))


def _failure(code: ErrorCode, message: str, file: Path | None = None,
             backup_path: Path | None = None, restored: bool = False) -> PatchOutcome:
    return PatchOutcome(
        success=False,
        message=message,
        backup_path=backup_path,
        restored=restored,
        errors=[ErrorInfo(code=code, message=message, file=file)],
    )


class Patcher:
    """Applies the fixed media patch to the file named in a detection report."""

    def __init__(self, backup_store: BackupStore) -> None:
        self.backup_store = backup_store

    def apply(
        self,
        report: DetectionReport,
        *,
        no_backup: bool = False,
        force: bool = False,
        backup: BackupRecord | None = None,
    ) -> PatchOutcome:
        """Patch ``report.target_file``.

        ``backup`` is a backup the caller already took of the same file; it
        is used for rollback instead of taking a new one.
        """
        logger.info("Applying media patch")

        target = report.target_file
        if target is None:
            return _failure(ErrorCode.FILE_NOT_FOUND, "Target file not found")

        if not report.problem and not force:
            return _failure(ErrorCode.ALREADY_FIXED, "Already fixed; nothing to do", target)

        if not target.is_file():
            return _failure(ErrorCode.FILE_NOT_FOUND, f"Target file does not exist: {target}", target)

        try:
            text = target.read_bytes().decode("utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            return _failure(ErrorCode.PERMISSION_DENIED, f"Could not read file: {exc}", target)

        if backup is None and not no_backup:
            try:
                backup = self.backup_store.create(target)
            except FixerError as exc:
                return _failure(exc.code, f"Backup failed: {exc.message}", target)

        backup_path = backup.path if backup is not None else None

        try:
            patched = patch_text(text)
            self._write(target, patched)
        except FixerError as exc:
            logger.error("Patch failed: %s", exc.message)
            restored = backup_path is not None and self._rollback(backup_path, target)
            return _failure(exc.code, f"Patch failed: {exc.message}", target, backup_path, restored)

        logger.info("Patch applied to %s", target)
        return PatchOutcome(success=True, message="Patch applied", backup_path=backup_path)

    @staticmethod
    def _write(target: Path, text: str) -> None:
        try:
            target.write_bytes(text.encode("utf-8"))
        except OSError as exc:
            raise FixerError(ErrorCode.PERMISSION_DENIED, f"Could not write file: {exc}", exc) from exc

    def _rollback(self, backup_path: Path, target: Path) -> bool:
        try:
            self.backup_store.restore(backup_path, target)
        except FixerError as exc:
            logger.error("Restoring backup %s failed: %s", backup_path, exc.message)
            return False
        logger.info("Backup restored after failed patch")
        return True
