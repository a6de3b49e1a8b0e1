from __future__ import annotations

from pathlib import Path

import pytest

from monetaris.core.config import settings
from monetaris.workflow import CaseStatus, WorkflowConfig

KREDITOR_ID = "0f8fad5b-d9cb-469f-a165-70867728950e"
ENV_PREFIX = "WORKFLOW_0F8FAD5B_D9CB_469F_A165_70867728950E"


def _write(tmp_path: Path, text: str) -> str:
    path = tmp_path / "deadlines.yaml"
    path.write_text(text, encoding="utf-8")
    return str(path)


def test_legal_defaults() -> None:
    config = WorkflowConfig.from_kreditor(None, "")
    assert config.days_for(CaseStatus.NEW) == 7
    assert config.days_for(CaseStatus.MB_ISSUED) == 14
    assert config.days_for(CaseStatus.MB_OBJECTION) == 7
    assert config.days_for(CaseStatus.PAID) is None


def test_file_default_and_kreditor_sections(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        f"""
default:
  NEW: 10
  reminder_1: 21
kreditoren:
  {KREDITOR_ID}:
    NEW: 5
    MB_ISSUED: 28
""",
    )
    config = WorkflowConfig.from_kreditor(KREDITOR_ID, path)
    assert config.days_for(CaseStatus.NEW) == 5
    assert config.days_for(CaseStatus.REMINDER_1) == 21
    assert config.days_for(CaseStatus.MB_ISSUED) == 28

    other = WorkflowConfig.from_kreditor("someone-else", path)
    assert other.days_for(CaseStatus.NEW) == 10
    assert other.days_for(CaseStatus.MB_ISSUED) == 14


def test_invalid_entries_are_ignored(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        """
default:
  NEW: -3
  PAID: 5
  NOT_A_STATUS: 4
  REMINDER_2: soon
  PREPARE_MB: 1
""",
    )
    config = WorkflowConfig.from_kreditor(None, path)
    assert config.days_for(CaseStatus.NEW) == 7
    assert config.days_for(CaseStatus.PAID) is None
    assert config.days_for(CaseStatus.REMINDER_2) == 14
    assert config.days_for(CaseStatus.PREPARE_MB) == 1


def test_missing_or_malformed_file_keeps_defaults(tmp_path: Path) -> None:
    missing = WorkflowConfig.from_kreditor(None, str(tmp_path / "nope.yaml"))
    assert missing.days_for(CaseStatus.NEW) == 7

    path = _write(tmp_path, "- just\n- a list\n")
    listed = WorkflowConfig.from_kreditor(None, path)
    assert listed.days_for(CaseStatus.NEW) == 7


def test_environment_overrides_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = _write(tmp_path, f"kreditoren:\n  {KREDITOR_ID}:\n    REMINDER_1: 20\n")
    monkeypatch.setenv(f"{ENV_PREFIX}_REMINDER_1_DAYS", "3")
    monkeypatch.setenv(f"{ENV_PREFIX}_MB_ISSUED_DAYS", "abc")
    config = WorkflowConfig.from_kreditor(KREDITOR_ID, path)
    assert config.days_for(CaseStatus.REMINDER_1) == 3
    assert config.days_for(CaseStatus.MB_ISSUED) == 14


def test_settings_path_is_used_by_default(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = _write(tmp_path, "default:\n  ADDRESS_RESEARCH: 45\n")
    monkeypatch.setattr(settings, "WORKFLOW_DEADLINES_PATH", path)
    config = WorkflowConfig.from_kreditor(None)
    assert config.days_for(CaseStatus.ADDRESS_RESEARCH) == 45


def test_configs_do_not_share_state() -> None:
    first = WorkflowConfig()
    first.deadline_days[CaseStatus.NEW] = 99
    assert WorkflowConfig().days_for(CaseStatus.NEW) == 7
