"""Tests for content classification and install detection."""

from __future__ import annotations

import itertools
import json
from pathlib import Path

import pytest

from feishufix.core.config import COMPILED_FILE_RELATIVE, PathsConfig, TARGET_FILE_RELATIVE
from feishufix.core.locator import InstallLocator
from feishufix.core.models import CheckStatus, FindingKind, Severity
from feishufix.fix import anchors
from feishufix.fix.detector import Detector, classify, validate_content

IMPORT_LINE = 'import { sendMediaFeishu } from "./media.js";\n'
LOGIC_LINE = "  if (payload.mediaUrls?.length) {\n"
CALL_LINE = "    await sendMediaFeishu({ cfg, to: chatId, mediaUrl });\n"


def _document(has_import: bool, has_logic: bool, has_call: bool) -> str:
    text = 'import { sendMessageFeishu } from "./send.js";\n'
    if has_import:
        text += IMPORT_LINE
    text += "deliver: async (payload: ReplyPayload) => {\n"
    if has_logic:
        text += LOGIC_LINE
    if has_call:
        text += CALL_LINE
    if has_logic:
        text += "  }\n"
    return text + "}\n"


class TestClassify:
    @pytest.mark.parametrize(
        "has_import,has_logic,has_call",
        list(itertools.product([True, False], repeat=3)),
    )
    def test_policy_table(self, has_import: bool, has_logic: bool, has_call: bool):
        result = classify(_document(has_import, has_logic, has_call))

        expected_kinds = []
        if not has_import:
            expected_kinds.append(FindingKind.MISSING_IMPORT)
        if not has_logic:
            expected_kinds.append(FindingKind.MISSING_LOGIC)
        if has_logic and not has_call:
            expected_kinds.append(FindingKind.MISSING_CALL)

        complete = has_import and has_logic and has_call
        assert result.problem is (not complete)
        assert [f.kind for f in result.findings] == expected_kinds
        if complete:
            assert result.status == CheckStatus.FIXED
            assert result.fixable is None
        else:
            assert result.status == CheckStatus.NEEDS_FIX
            assert result.fixable is True

    def test_missing_call_is_a_warning_with_line(self):
        text = _document(True, True, False)
        result = classify(text)
        finding = result.findings[0]
        assert finding.kind == FindingKind.MISSING_CALL
        assert finding.severity == Severity.WARNING
        assert finding.line == 4

    def test_missing_markers_are_errors(self):
        result = classify(_document(False, False, False))
        assert all(f.severity == Severity.ERROR for f in result.findings)

    def test_suggestions_carry_literal_remedy(self):
        result = classify(_document(False, False, False))
        by_kind = {f.kind: f for f in result.findings}
        assert by_kind[FindingKind.MISSING_IMPORT].suggestion == anchors.MEDIA_IMPORT
        assert "payload.mediaUrls?.length" in by_kind[FindingKind.MISSING_LOGIC].suggestion
        assert anchors.ATTRIBUTION_MARKER in by_kind[FindingKind.MISSING_LOGIC].suggestion

    def test_details_list_missing_parts(self):
        result = classify(_document(False, True, True))
        assert any("import" in d for d in result.details)


class TestValidateContent:
    def test_valid_host_file(self, unpatched_text: str):
        assert validate_content(unpatched_text) == []

    def test_missing_framework_import(self, unpatched_text: str):
        text = unpatched_text.replace('"openclaw/plugin-sdk"', '"other-sdk"')
        errors = validate_content(text)
        assert len(errors) == 1
        assert "plugin-sdk" in errors[0]

    def test_missing_handler(self):
        errors = validate_content('import x from "openclaw/plugin-sdk";\n')
        assert len(errors) == 1
        assert "deliver" in errors[0]

    def test_never_raises_on_garbage(self):
        assert len(validate_content("")) == 2


class TestDetector:
    def test_unpatched_install(self, detector: Detector, install: Path, target_file: Path):
        report = detector.detect()

        assert report.problem is True
        assert report.fixable is True
        assert report.status == CheckStatus.NEEDS_FIX
        assert report.install_path == install
        assert report.target_file == target_file
        assert report.version == "2026.2.3"
        assert report.files_examined == (target_file,)
        kinds = [f.kind for f in report.findings]
        assert kinds == [FindingKind.MISSING_IMPORT, FindingKind.MISSING_LOGIC]

    def test_fixed_install(self, detector: Detector, target_file: Path, unpatched_text: str):
        from feishufix.fix.patcher import patch_text

        target_file.write_text(patch_text(unpatched_text))
        report = detector.detect()

        assert report.problem is False
        assert report.is_fixed
        assert report.findings == ()

    def test_install_not_found(self, tmp_path: Path, monkeypatch):
        monkeypatch.setattr("feishufix.core.locator.shutil.which", lambda name: None)

        def no_npm(*args, **kwargs):
            raise FileNotFoundError("npm")

        monkeypatch.setattr("feishufix.core.locator.subprocess.run", no_npm)
        locator = InstallLocator(PathsConfig(install_candidates=[tmp_path / "missing"]))

        report = Detector(locator).detect()

        assert report.problem is True
        assert report.fixable is False
        assert report.status == CheckStatus.NOT_FOUND
        assert len(report.findings) == 1
        assert report.findings[0].kind == FindingKind.INSTALL_NOT_FOUND
        assert report.install_path is None

    def test_target_file_not_found(self, detector: Detector, target_file: Path):
        target_file.unlink()
        report = detector.detect()

        assert report.status == CheckStatus.FILE_NOT_FOUND
        assert report.fixable is False
        assert report.install_path is not None
        assert report.target_file is None
        finding = report.findings[0]
        assert finding.kind == FindingKind.FILE_NOT_FOUND
        assert finding.file == report.install_path / TARGET_FILE_RELATIVE
        assert "version" in finding.suggestion

    def test_falls_back_to_compiled_file(self, detector: Detector, install: Path, target_file: Path):
        target_file.unlink()
        compiled = install / COMPILED_FILE_RELATIVE
        compiled.parent.mkdir(parents=True)
        compiled.write_text("deliver: async (payload, info) => {\n}\n")

        report = detector.detect()
        assert report.target_file == compiled
        assert report.status == CheckStatus.NEEDS_FIX

    def test_undecodable_file_is_read_error(self, detector: Detector, target_file: Path):
        target_file.write_bytes(b"\xff\xfe\x00broken")
        report = detector.detect()

        assert report.status == CheckStatus.READ_ERROR
        assert report.problem is True
        assert report.fixable is False
        assert report.findings[0].kind == FindingKind.READ_ERROR

    def test_structural_warnings_do_not_change_verdict(self, detector: Detector, target_file: Path):
        target_file.write_text("const unrelated = true;\n")
        report = detector.detect()

        assert report.status == CheckStatus.NEEDS_FIX
        unrecognized = [f for f in report.findings if f.kind == FindingKind.STRUCTURALLY_UNRECOGNIZED]
        assert len(unrecognized) == 2
        assert all(f.severity == Severity.WARNING for f in unrecognized)

    def test_attributed_logic_without_call(self, detector: Detector, target_file: Path,
                                           logic_without_call_text: str):
        target_file.write_text(logic_without_call_text)
        report = detector.detect()

        assert report.problem is True
        assert report.status == CheckStatus.NEEDS_FIX
        assert len(report.findings) == 1
        assert report.findings[0].kind == FindingKind.MISSING_CALL
        assert report.warnings == list(report.findings)
        assert report.errors == []

    def test_rereads_file_every_call(self, detector: Detector, target_file: Path, unpatched_text: str):
        from feishufix.fix.patcher import patch_text

        assert detector.detect().problem is True
        target_file.write_text(patch_text(unpatched_text))
        assert detector.detect().problem is False

    def test_version_from_version_file(self, install: Path):
        (install / "package.json").write_text(json.dumps({"name": "openclaw"}))
        (install / "VERSION").write_text("2026.2.9\n")
        assert InstallLocator().resolve_version(install) == "2026.2.9"
