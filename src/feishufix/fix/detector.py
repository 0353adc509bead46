"""Problem detector for the Feishu media delivery bug.

Classifies a snapshot of the reply dispatcher as fixed, needing the fix,
or unusable. ``Detector.detect`` never raises: every failure becomes a
:class:`DetectionReport` with a status the caller can act on.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from feishufix.core.config import TARGET_FILE_RELATIVE
from feishufix.core.locator import InstallLocator
from feishufix.core.models import (
    CheckStatus,
    DetectionReport,
    Finding,
    FindingKind,
    Severity,
)
from feishufix.fix import anchors

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MarkerScan:
    has_import: bool
    has_logic: bool
    has_call: bool

    @property
    def complete(self) -> bool:
        return self.has_import and self.has_logic and self.has_call


@dataclass
class Classification:
    scan: MarkerScan
    problem: bool
    fixable: bool | None
    status: CheckStatus
    findings: list[Finding] = field(default_factory=list)
    details: list[str] = field(default_factory=list)


def scan_markers(text: str) -> MarkerScan:
    return MarkerScan(
        has_import=anchors.has_import_marker(text),
        has_logic=anchors.has_logic_marker(text),
        has_call=anchors.has_call_marker(text),
    )


def classify(text: str, file: Path | None = None) -> Classification:
    """Apply the three-marker policy to ``text``.

    A logic block without an awaited helper call is reported as a separate
    warning; it does not change the three-marker verdict on its own.
    """
    scan = scan_markers(text)
    findings: list[Finding] = []

    if not scan.has_import:
        findings.append(Finding(
            kind=FindingKind.MISSING_IMPORT,
            severity=Severity.ERROR,
            message="Missing sendMediaFeishu import",
            suggestion=anchors.MEDIA_IMPORT,
            file=file,
        ))

    if not scan.has_logic:
        findings.append(Finding(
            kind=FindingKind.MISSING_LOGIC,
            severity=Severity.ERROR,
            message="Missing media dispatch logic in the deliver handler",
            suggestion=anchors.MEDIA_LOGIC.strip("\n"),
            file=file,
        ))
    elif not scan.has_call:
        match = anchors.LOGIC_MARKER.search(text)
        findings.append(Finding(
            kind=FindingKind.MISSING_CALL,
            severity=Severity.WARNING,
            message="Media logic present without a dispatching sendMediaFeishu call",
            suggestion="await sendMediaFeishu({ cfg, to: chatId, mediaUrl, replyToMessageId, accountId });",
            line=anchors.line_of(text, match.start()) if match else None,
            file=file,
        ))

    if scan.complete:
        return Classification(
            scan=scan,
            problem=False,
            fixable=None,
            status=CheckStatus.FIXED,
            findings=findings,
            details=[
                "Feishu media delivery is configured",
                "sendMediaFeishu is imported and called from deliver",
            ],
        )

    details = ["Feishu media delivery needs the fix"]
    details.extend(f"- {f.message}" for f in findings)
    return Classification(
        scan=scan,
        problem=True,
        fixable=True,
        status=CheckStatus.NEEDS_FIX,
        findings=findings,
        details=details,
    )


def validate_content(text: str) -> list[str]:
    """Structural sanity check. Returns error messages, never raises."""
    errors = []
    if not anchors.has_framework_import(text):
        errors.append("Unrecognized file layout: no openclaw/plugin-sdk import")
    if anchors.find_handler_signature(text) is None:
        errors.append("Unrecognized file layout: deliver handler definition not found")
    return errors


class Detector:
    """Locates the reply dispatcher and classifies its current content."""

    def __init__(self, locator: InstallLocator | None = None) -> None:
        self.locator = locator or InstallLocator()

    def detect(self) -> DetectionReport:
        logger.debug("Checking OpenClaw Feishu media delivery")

        install_path = self.locator.locate_install()
        if install_path is None:
            logger.info("OpenClaw installation not found")
            return DetectionReport(
                problem=True,
                fixable=False,
                status=CheckStatus.NOT_FOUND,
                findings=(Finding(
                    kind=FindingKind.INSTALL_NOT_FOUND,
                    severity=Severity.ERROR,
                    message="OpenClaw installation not found",
                    suggestion="Install OpenClaw with: npm install -g openclaw",
                ),),
                details=("OpenClaw installation not found; make sure it is installed",),
            )

        version = self.locator.resolve_version(install_path)
        logger.info("OpenClaw %s at %s", version or "(unknown version)", install_path)

        target = self.locator.resolve_target_file(install_path)
        if target is None:
            expected = self.locator.expected_target_file(install_path)
            logger.info("Target file not found: %s", expected)
            return DetectionReport(
                problem=True,
                fixable=False,
                status=CheckStatus.FILE_NOT_FOUND,
                install_path=install_path,
                version=version,
                findings=(Finding(
                    kind=FindingKind.FILE_NOT_FOUND,
                    severity=Severity.ERROR,
                    message=f"Target file not found: {TARGET_FILE_RELATIVE}",
                    suggestion="Check that the OpenClaw version is compatible (2026.2.x)",
                    file=expected,
                ),),
                details=(f"Target file not found: {expected}",),
            )

        try:
            text = target.read_bytes().decode("utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.info("Could not read %s: %s", target, exc)
            return DetectionReport(
                problem=True,
                fixable=False,
                status=CheckStatus.READ_ERROR,
                install_path=install_path,
                target_file=target,
                version=version,
                files_examined=(target,),
                findings=(Finding(
                    kind=FindingKind.READ_ERROR,
                    severity=Severity.ERROR,
                    message=f"Could not read target file: {exc}",
                    file=target,
                ),),
                details=("Could not read the target file",),
            )

        result = classify(text, file=target)
        findings = list(result.findings)
        if result.problem:
            for error in validate_content(text):
                findings.append(Finding(
                    kind=FindingKind.STRUCTURALLY_UNRECOGNIZED,
                    severity=Severity.WARNING,
                    message=error,
                    suggestion="The installed OpenClaw version may be incompatible with this fix",
                    file=target,
                ))

        logger.info("Detection finished: %s", result.status.value)
        return DetectionReport(
            problem=result.problem,
            fixable=result.fixable,
            status=result.status,
            findings=tuple(findings),
            install_path=install_path,
            target_file=target,
            version=version,
            files_examined=(target,),
            details=tuple(result.details),
        )
