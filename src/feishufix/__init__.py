"""openclaw-feishu-fixer: restores image delivery in OpenClaw's Feishu extension."""

from feishufix._version import __version__
from feishufix.core.errors import ErrorCode, FixerError
from feishufix.fix.detector import Detector, classify, validate_content
from feishufix.fix.patcher import Patcher, patch_text

__all__ = [
    "__version__",
    "ErrorCode",
    "FixerError",
    "Detector",
    "classify",
    "validate_content",
    "Patcher",
    "patch_text",
]
