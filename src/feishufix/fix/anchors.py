"""Markers and anchors used against the reply dispatcher source.

Markers answer "has the media fix been applied?"; anchors locate where a
fragment goes. Each is a separate named function so that a change in the
host file's layout only means replacing one pattern.
"""

from __future__ import annotations

import re

ATTRIBUTION_MARKER = "openclaw-feishu-media-fixer"

HELPER_SYMBOL = "sendMediaFeishu"
HELPER_MODULE = "./media.js"

MEDIA_IMPORT = 'import { sendMediaFeishu } from "./media.js";'

MEDIA_LOGIC = """
  // Send media (images/files) first - added by openclaw-feishu-media-fixer
  if (payload.mediaUrls?.length) {
    for (const mediaUrl of payload.mediaUrls) {
      try {
        await sendMediaFeishu({
          cfg,
          to: chatId,
          mediaUrl,
          replyToMessageId,
          accountId,
        });
        params.runtime.log?.(`feishu[${account.accountId}]: sent media: ${mediaUrl}`);
      } catch (error) {
        params.runtime.error?.(
          `feishu[${account.accountId}]: failed to send media ${mediaUrl}: ${String(error)}`,
        );
      }
    }
  }
"""

# Markers
IMPORT_MARKER = re.compile(r"""import\s*\{[^}]*sendMediaFeishu[^}]*\}\s*from\s*['"]\./media\.js['"]""")
LOGIC_MARKER = re.compile(r"payload\.mediaUrls\?\.length")
CALL_MARKER = re.compile(r"await\s+sendMediaFeishu\s*\(")

# Structural markers of a compatible host file
FRAMEWORK_IMPORT = re.compile(r"""from\s*['"]openclaw/plugin-sdk['"]""")

# Anchors
SEND_IMPORT_ANCHOR = re.compile(
    r"""import\s*\{[^}]*sendMarkdownCardFeishu[^}]*\}\s*from\s*['"]\./send\.js['"][ \t]*;?"""
)
TOP_LEVEL_IMPORT = re.compile(r"""^import\s[^;]*?['"][^'"\n]+['"][ \t]*;?""", re.MULTILINE)
HANDLER_SIGNATURE_ANCHORS = (
    # TypeScript source
    re.compile(r"deliver:\s*async\s*\(\s*payload\s*:\s*ReplyPayload"),
    # Compiled JavaScript, annotations stripped
    re.compile(r"deliver:\s*async\s*\(\s*payload\s*[,)]"),
)
HANDLER_BODY_OPEN = re.compile(r"deliver:\s*async\s*\([^)]*\)\s*(?::\s*[^=]+)?\s*=>\s*\{")


def has_import_marker(text: str) -> bool:
    return IMPORT_MARKER.search(text) is not None


def has_logic_marker(text: str) -> bool:
    return LOGIC_MARKER.search(text) is not None


def has_call_marker(text: str) -> bool:
    return CALL_MARKER.search(text) is not None


def has_attribution_marker(text: str) -> bool:
    return ATTRIBUTION_MARKER in text


def has_framework_import(text: str) -> bool:
    return FRAMEWORK_IMPORT.search(text) is not None


def import_already_present(text: str) -> bool:
    """Looser than :func:`has_import_marker`; decides whether to skip insertion."""
    return HELPER_SYMBOL in text and HELPER_MODULE in text


def logic_already_present(text: str) -> bool:
    return "payload.mediaUrls?.length" in text


def find_send_import_anchor(text: str) -> int | None:
    """Offset just past the ``./send.js`` import that exists in every host version."""
    match = SEND_IMPORT_ANCHOR.search(text)
    return match.end() if match else None


def find_last_import_line_end(text: str) -> int | None:
    """Offset of the line break ending the last top-level import statement.

    Returns ``len(text)`` when that import is the final line without a
    trailing newline, and None when the text has no import statement.
    """
    last = None
    for last in TOP_LEVEL_IMPORT.finditer(text):
        pass
    if last is None:
        return None
    newline = text.find("\n", last.end())
    if newline == -1:
        return len(text)
    return newline - 1 if text[newline - 1] == "\r" else newline


def find_handler_signature(text: str) -> re.Match[str] | None:
    """Coarse anchor: the ``deliver`` handler's parameter list."""
    for pattern in HANDLER_SIGNATURE_ANCHORS:
        match = pattern.search(text)
        if match:
            return match
    return None


def find_handler_body_open(text: str, start: int) -> int | None:
    """Offset just past the handler's opening brace, matched at ``start``."""
    match = HANDLER_BODY_OPEN.match(text, start)
    return match.end() if match else None


def line_of(text: str, offset: int) -> int:
    """1-based line number of ``offset``."""
    return text.count("\n", 0, offset) + 1
