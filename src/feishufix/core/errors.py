"""Error taxonomy shared by the detector, backup store and patch engine."""

from __future__ import annotations

import enum


class ErrorCode(enum.Enum):
    INSTALL_NOT_FOUND = "INSTALL_NOT_FOUND"
    FILE_NOT_FOUND = "FILE_NOT_FOUND"
    ALREADY_FIXED = "ALREADY_FIXED"
    NOT_FIXED = "NOT_FIXED"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    PATCH_FAILED = "PATCH_FAILED"
    SERVICE_ERROR = "SERVICE_ERROR"
    BACKUP_NOT_FOUND = "BACKUP_NOT_FOUND"


class FixerError(Exception):
    """A handled failure tagged with an :class:`ErrorCode`.

    Filesystem errors are wrapped in this type before they leave the
    component that hit them; ``cause`` keeps the original exception for
    debug logging.
    """

    def __init__(self, code: ErrorCode, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        return self.message


class PatchError(FixerError):
    """Raised by the text-level patch steps; always ``PATCH_FAILED``."""

    def __init__(self, message: str):
        super().__init__(ErrorCode.PATCH_FAILED, message)
