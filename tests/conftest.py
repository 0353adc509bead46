"""Shared fixtures: a fake OpenClaw install and an in-memory service."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from feishufix.core.config import FixerConfig, PathsConfig, TARGET_FILE_RELATIVE
from feishufix.core.locator import InstallLocator
from feishufix.core.models import ServiceStatus
from feishufix.fix import anchors
from feishufix.fix.backup import BackupStore
from feishufix.fix.detector import Detector
from feishufix.fix.orchestrator import Orchestrator
from feishufix.fix.patcher import Patcher

UNPATCHED_DISPATCHER = '''\
import type { ClawdbotConfig, ReplyPayload, RuntimeEnv } from "openclaw/plugin-sdk";
import { createReplyPrefixContext } from "openclaw/plugin-sdk";
import { getFeishuRuntime } from "./runtime.js";
import { sendMessageFeishu, sendMarkdownCardFeishu } from "./send.js";
import type { FeishuConfig } from "./types.js";

export function createFeishuReplyDispatcher(params: CreateFeishuReplyDispatcherParams) {
  const core = getFeishuRuntime();
  const { cfg, agentId, chatId, replyToMessageId, accountId } = params;
  const account = resolveFeishuAccount({ cfg, accountId });

  const { dispatcher, replyOptions, markDispatchIdle } =
    core.channel.reply.createReplyDispatcherWithTyping({
      deliver: async (payload: ReplyPayload, info?: { kind: string }) => {
        const text = payload.text ?? "";
        if (!text.trim()) {
          return;
        }
        await sendMessageFeishu({ cfg, to: chatId, text, replyToMessageId, accountId });
      },
    });

  return { dispatcher, replyOptions, markDispatchIdle };
}
'''


class FakeService:
    """In-memory stand-in for the systemd gateway unit."""

    def __init__(self, exists: bool = True, active: bool = True,
                 restart_ok: bool = True, comes_up: bool = True) -> None:
        self._exists = exists
        self.active = active
        self.restart_ok = restart_ok
        self.comes_up = comes_up
        self.restarts = 0

    def query_status(self) -> ServiceStatus:
        return ServiceStatus(
            active=self.active,
            state="active" if self.active else "inactive",
            since="Fri 2026-10-16 08:00:00 UTC" if self.active else None,
        )

    def restart(self) -> bool:
        self.restarts += 1
        if not self.restart_ok:
            return False
        self.active = self.comes_up
        return True

    def exists(self) -> bool:
        return self._exists


@pytest.fixture
def unpatched_text() -> str:
    return UNPATCHED_DISPATCHER


@pytest.fixture
def logic_without_call_text() -> str:
    """Import and attributed media block present, but the block never sends."""
    return UNPATCHED_DISPATCHER.replace(
        'from "./send.js";',
        'from "./send.js";\n' + anchors.MEDIA_IMPORT,
        1,
    ).replace(
        'const text = payload.text ?? "";',
        "// Send media - added by openclaw-feishu-media-fixer\n"
        "        if (payload.mediaUrls?.length) { }\n"
        '        const text = payload.text ?? "";',
        1,
    )


@pytest.fixture
def install(tmp_path: Path) -> Path:
    """A minimal OpenClaw install with an unpatched reply dispatcher."""
    root = tmp_path / "node_modules" / "openclaw"
    target = root / TARGET_FILE_RELATIVE
    target.parent.mkdir(parents=True)
    (root / "package.json").write_text(json.dumps({"name": "openclaw", "version": "2026.2.3"}))
    target.write_text(UNPATCHED_DISPATCHER)
    return root


@pytest.fixture
def target_file(install: Path) -> Path:
    return install / TARGET_FILE_RELATIVE


@pytest.fixture
def config(tmp_path: Path, install: Path) -> FixerConfig:
    cfg = FixerConfig(paths=PathsConfig(
        install_candidates=[install],
        backup_dir=tmp_path / "backups",
        executable="openclaw-gateway-not-installed",
    ))
    cfg.service.restart_timeout = 0.0
    cfg.service.poll_interval = 0.0
    return cfg


@pytest.fixture
def detector(config: FixerConfig) -> Detector:
    return Detector(InstallLocator(config.paths))


@pytest.fixture
def backup_store(config: FixerConfig) -> BackupStore:
    return BackupStore(config.paths.backup_dir)


@pytest.fixture
def patcher(backup_store: BackupStore) -> Patcher:
    return Patcher(backup_store)


@pytest.fixture
def service() -> FakeService:
    return FakeService()


@pytest.fixture
def orchestrator(config, detector, backup_store, patcher, service) -> Orchestrator:
    return Orchestrator(
        config=config,
        detector=detector,
        backup_store=backup_store,
        patcher=patcher,
        service=service,
        sleep=lambda _: None,
    )
