"""End-to-end check -> fix -> check -> undo -> check against a fake install."""

from __future__ import annotations

from pathlib import Path

from click.testing import CliRunner

from feishufix.cli.main import cli
from feishufix.core.config import COMPILED_FILE_RELATIVE
from feishufix.fix import anchors
from feishufix.fix.backup import BackupStore
from feishufix.fix.orchestrator import Orchestrator

COMPILED_DISPATCHER = """\
import { createReplyPrefixContext } from "openclaw/plugin-sdk";
import { sendMessageFeishu, sendMarkdownCardFeishu } from "./send.js";
export function createFeishuReplyDispatcher(params) {
    const { cfg, chatId, replyToMessageId, accountId } = params;
    return core.channel.reply.createReplyDispatcherWithTyping({
        deliver: async (payload, info) => {
            await sendMessageFeishu({ cfg, to: chatId, text: payload.text });
        },
    });
}
"""


def _run(orchestrator: Orchestrator, *args: str):
    return CliRunner().invoke(cli, list(args), obj={"orchestrator": orchestrator})


class TestFullCycle:
    def test_cycle_restores_original_bytes(self, orchestrator: Orchestrator, backup_store: BackupStore,
                                           target_file: Path, service):
        original = target_file.read_bytes()

        assert _run(orchestrator, "check").exit_code == 1

        result = _run(orchestrator, "fix")
        assert result.exit_code == 0, result.output
        patched = target_file.read_bytes()
        assert patched != original

        assert _run(orchestrator, "check").exit_code == 0

        # A second fix leaves the file and the backup directory alone.
        assert _run(orchestrator, "fix").exit_code == 0
        assert target_file.read_bytes() == patched
        assert len(backup_store.list(target_file)) == 1

        result = _run(orchestrator, "undo")
        assert result.exit_code == 0, result.output
        assert target_file.read_bytes() == original
        assert _run(orchestrator, "check").exit_code == 1

        assert service.restarts == 2

    def test_undo_without_fix_changes_nothing(self, orchestrator: Orchestrator, target_file: Path):
        original = target_file.read_bytes()

        result = _run(orchestrator, "undo")

        assert result.exit_code == 1
        assert target_file.read_bytes() == original

    def test_compiled_javascript_install(self, orchestrator: Orchestrator, install: Path,
                                         target_file: Path):
        target_file.unlink()
        compiled = install / COMPILED_FILE_RELATIVE
        compiled.parent.mkdir(parents=True)
        compiled.write_text(COMPILED_DISPATCHER)

        result = _run(orchestrator, "fix", "--no-restart")

        assert result.exit_code == 0, result.output
        text = compiled.read_text()
        assert anchors.MEDIA_IMPORT in text
        assert text.index(anchors.ATTRIBUTION_MARKER) < text.index("await sendMessageFeishu")

        assert _run(orchestrator, "undo", "--no-restart").exit_code == 0
        assert compiled.read_text() == COMPILED_DISPATCHER

    def test_crlf_line_endings_survive_cycle(self, orchestrator: Orchestrator, target_file: Path,
                                             unpatched_text: str):
        original = unpatched_text.replace("\n", "\r\n").encode("utf-8")
        target_file.write_bytes(original)

        assert _run(orchestrator, "fix", "--no-restart").exit_code == 0
        patched = target_file.read_bytes()
        assert b"\r\n" in patched
        assert patched.count(b"\n") == patched.count(b"\r\n")

        assert _run(orchestrator, "undo", "--no-restart").exit_code == 0
        assert target_file.read_bytes() == original
