"""Flat, timestamped backups of the reply dispatcher.

Backups are named ``<basename>.backup-<timestamp>`` in a single directory,
e.g. ``reply-dispatcher.ts.backup-2026-10-16T08-15-30-123456Z``. A numeric
suffix (``-1``, ``-2``) is added when two backups land on the same
timestamp.
"""

from __future__ import annotations

import logging
import re
import shutil
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable

from feishufix.core.errors import ErrorCode, FixerError
from feishufix.core.models import BackupRecord

logger = logging.getLogger(__name__)

BACKUP_INFIX = ".backup-"

_TIMESTAMP_RE = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})T(\d{2})-(\d{2})-(\d{2})-(\d{1,6})Z(?:-(\d+))?$"
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 UTC with ``:`` and ``.`` replaced so it is filename-safe."""
    moment = moment.astimezone(timezone.utc)
    iso = moment.strftime("%Y-%m-%dT%H:%M:%S.%f") + "Z"
    return iso.replace(":", "-").replace(".", "-")


def parse_timestamp(stamp: str) -> tuple[datetime, int] | None:
    """Parse a backup name's timestamp part into ``(moment, sequence)``."""
    match = _TIMESTAMP_RE.match(stamp)
    if not match:
        return None
    year, month, day, hour, minute, second, fraction, seq = match.groups()
    try:
        moment = datetime(
            int(year), int(month), int(day), int(hour), int(minute), int(second),
            int(fraction.ljust(6, "0")), tzinfo=timezone.utc,
        )
    except ValueError:
        return None
    return moment, int(seq) if seq else 0


class BackupStore:
    """Copy, restore, list and prune backups of a single tracked file."""

    def __init__(self, backup_dir: Path, clock: Callable[[], datetime] = _utcnow) -> None:
        self.backup_dir = backup_dir
        self._clock = clock

    def create(self, path: Path) -> BackupRecord:
        if not path.is_file():
            raise FixerError(ErrorCode.FILE_NOT_FOUND, f"File not found: {path}")

        created_at = self._clock().astimezone(timezone.utc)
        base = f"{path.name}{BACKUP_INFIX}{format_timestamp(created_at)}"
        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            backup_path = self.backup_dir / base
            counter = 1
            while backup_path.exists():
                backup_path = self.backup_dir / f"{base}-{counter}"
                counter += 1
            shutil.copy2(path, backup_path)
            size = backup_path.stat().st_size
        except OSError as exc:
            raise FixerError(
                ErrorCode.PERMISSION_DENIED, f"Could not create backup: {exc}", exc
            ) from exc

        logger.info("Backup created: %s", backup_path)
        return BackupRecord(
            path=backup_path,
            original_path=path,
            created_at=created_at,
            size=size,
        )

    def restore(self, backup_path: Path, target_path: Path) -> None:
        if not backup_path.is_file():
            raise FixerError(ErrorCode.BACKUP_NOT_FOUND, f"Backup not found: {backup_path}")
        try:
            shutil.copyfile(backup_path, target_path)
        except OSError as exc:
            raise FixerError(
                ErrorCode.PERMISSION_DENIED, f"Could not restore backup: {exc}", exc
            ) from exc
        logger.info("Backup restored to %s", target_path)

    def list(self, original: Path | None = None) -> list[BackupRecord]:
        """All backups, newest first. Entries that cannot be read are skipped."""
        if not self.backup_dir.is_dir():
            return []

        keyed: list[tuple[tuple[datetime, int], BackupRecord]] = []
        for entry in self.backup_dir.iterdir():
            name = entry.name
            if BACKUP_INFIX not in name:
                continue
            original_name, _, stamp = name.partition(BACKUP_INFIX)
            if original is not None and original_name != original.name:
                continue

            try:
                stats = entry.stat()
            except OSError:
                continue
            if not entry.is_file():
                continue

            parsed = parse_timestamp(stamp)
            if parsed is None:
                created = getattr(stats, "st_birthtime", stats.st_ctime)
                parsed = (datetime.fromtimestamp(created, tz=timezone.utc), 0)

            record = BackupRecord(
                path=entry,
                original_path=original if original is not None else Path(original_name),
                created_at=parsed[0],
                size=stats.st_size,
            )
            keyed.append((parsed, record))

        keyed.sort(key=lambda item: item[0], reverse=True)
        return [record for _, record in keyed]

    def latest(self, original: Path) -> BackupRecord | None:
        backups = self.list(original)
        return backups[0] if backups else None

    def delete(self, backup_path: Path) -> None:
        if not backup_path.exists():
            logger.debug("Backup already gone: %s", backup_path)
            return
        try:
            backup_path.unlink()
        except FileNotFoundError:
            return
        except OSError as exc:
            raise FixerError(
                ErrorCode.PERMISSION_DENIED, f"Could not delete backup: {exc}", exc
            ) from exc
        logger.info("Backup deleted: %s", backup_path)

    def prune(self, max_age_days: float, original: Path | None = None) -> int:
        """Delete backups strictly older than ``max_age_days``. Returns the count removed."""
        now = self._clock().astimezone(timezone.utc)
        max_age = timedelta(seconds=max_age_days * 86400)
        deleted = 0
        for record in self.list(original):
            if now - record.created_at > max_age:
                self.delete(record.path)
                deleted += 1
        if deleted:
            logger.info("Pruned %d old backup(s)", deleted)
        return deleted
