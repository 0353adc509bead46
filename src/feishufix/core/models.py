"""Shared data models used across feishufix modules."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from feishufix.core.errors import ErrorCode


class Severity(enum.Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class FindingKind(enum.Enum):
    MISSING_IMPORT = "missing-import"
    MISSING_LOGIC = "missing-logic"
    MISSING_CALL = "missing-call"
    STRUCTURALLY_UNRECOGNIZED = "structurally-unrecognized"
    INSTALL_NOT_FOUND = "install-not-found"
    FILE_NOT_FOUND = "file-not-found"
    READ_ERROR = "read-error"


class CheckStatus(enum.Enum):
    FIXED = "fixed"
    NEEDS_FIX = "needs_fix"
    NOT_FOUND = "not_found"
    FILE_NOT_FOUND = "file_not_found"
    READ_ERROR = "read_error"


@dataclass(frozen=True)
class Finding:
    """A single condition detected in the target document."""

    kind: FindingKind
    severity: Severity
    message: str
    suggestion: str = ""
    line: int | None = None
    file: Path | None = None


@dataclass(frozen=True)
class DetectionReport:
    """Result of one detection pass over one snapshot of the target file.

    ``problem`` is False exactly when the import, logic and call markers are
    all present. ``fixable`` is None for a fixed document, True when the
    patch engine can act and False when the install or file is missing.
    """

    problem: bool
    status: CheckStatus
    fixable: bool | None = None
    findings: tuple[Finding, ...] = ()
    install_path: Path | None = None
    target_file: Path | None = None
    version: str | None = None
    files_examined: tuple[Path, ...] = ()
    details: tuple[str, ...] = ()

    @property
    def is_fixed(self) -> bool:
        return self.status == CheckStatus.FIXED

    @property
    def installed(self) -> bool:
        return self.install_path is not None

    @property
    def errors(self) -> list[Finding]:
        return [f for f in self.findings if f.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[Finding]:
        return [f for f in self.findings if f.severity == Severity.WARNING]


@dataclass
class ErrorInfo:
    """A structured ``{code, message}`` pair."""

    code: ErrorCode
    message: str
    file: Path | None = None


@dataclass
class PatchOutcome:
    """Result of one patch attempt."""

    success: bool
    message: str
    backup_path: Path | None = None
    restored: bool = False  # backup put back after a failed patch
    errors: list[ErrorInfo] = field(default_factory=list)

    @property
    def code(self) -> ErrorCode | None:
        return self.errors[0].code if self.errors else None


@dataclass
class PatchPreview:
    """The change ``fix`` would make, computed without touching the file."""

    success: bool
    message: str
    code: ErrorCode | None = None
    report: DetectionReport | None = None
    diff: str = ""


@dataclass(frozen=True)
class BackupRecord:
    """A flat timestamped copy of the target file."""

    path: Path
    original_path: Path
    created_at: datetime
    size: int


@dataclass
class ServiceStatus:
    active: bool
    state: str
    since: str | None = None


@dataclass
class RestartResult:
    """What happened when the gateway service was asked to restart."""

    attempted: bool
    ready: bool = False
    message: str = ""
    code: ErrorCode | None = None  # SERVICE_ERROR when attempted but not ready


@dataclass
class FixSummary:
    """Everything the ``fix`` command needs to print and pick an exit code."""

    success: bool
    message: str
    code: ErrorCode | None = None
    report: DetectionReport | None = None
    verify_report: DetectionReport | None = None
    outcome: PatchOutcome | None = None
    backup: BackupRecord | None = None
    restored: bool = False
    no_op: bool = False
    pruned: int = 0
    restart: RestartResult | None = None
    warnings: list[str] = field(default_factory=list)
    elapsed: float = 0.0


@dataclass
class UndoSummary:
    """Everything the ``undo`` command needs to print and pick an exit code."""

    success: bool
    message: str
    code: ErrorCode | None = None
    report: DetectionReport | None = None
    restored: BackupRecord | None = None
    deleted: bool = False
    remaining: int = 0
    restart: RestartResult | None = None
    warnings: list[str] = field(default_factory=list)
    elapsed: float = 0.0


@dataclass
class StatusInfo:
    """Read-only aggregate view for the ``status`` command."""

    report: DetectionReport
    backups: list[BackupRecord] = field(default_factory=list)
    service: ServiceStatus | None = None
    checked_at: datetime = field(default_factory=datetime.now)

    @property
    def installed(self) -> bool:
        return self.report.installed

    @property
    def fixed(self) -> bool:
        return not self.report.problem
