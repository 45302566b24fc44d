from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path

import pytest

from happy_companion.engine import cli
from happy_companion.engine.config import CompanionConfig
from happy_companion.shared.services.session_registry import (
    PersistedSessionStore,
    SessionMarkerRegistry,
    SessionSnapshot,
)


@pytest.fixture
def home(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    home = tmp_path / "home"
    monkeypatch.setenv("HAPPY_HOME_DIR", str(home))
    monkeypatch.setenv("CODEX_HOME", str(tmp_path / ".codex"))
    return home


def _run(argv: list[str]) -> int:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(argv)
    return excinfo.value.code


def test_markers_command_lists_markers(home: Path, capsys: pytest.CaptureFixture[str]) -> None:
    config = CompanionConfig(happy_home_dir=home)
    asyncio.run(SessionMarkerRegistry(config).write_marker(31, "sess-31", flavor="claude"))

    assert _run(["markers"]) == 0

    payload = json.loads(capsys.readouterr().out)
    assert [m["happySessionId"] for m in payload] == ["sess-31"]


def test_session_command_hides_key_material(home: Path, capsys: pytest.CaptureFixture[str]) -> None:
    config = CompanionConfig(happy_home_dir=home)
    snapshot = SessionSnapshot(
        id="sess-9",
        metadata={"name": "demo"},
        metadata_version=1,
        agent_state=None,
        agent_state_version=0,
        encryption_key=b"k" * 32,
        encryption_variant="legacy",
    )
    asyncio.run(PersistedSessionStore(config).write(snapshot, flavor="codex"))

    assert _run(["session", "sess-9"]) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["sessionId"] == "sess-9"
    assert "encryptionKeyBase64" not in payload


def test_session_command_missing_session(home: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert _run(["session", "absent"]) == 1
    assert "absent" in capsys.readouterr().err


def test_resume_command_unknown_target(home: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert _run(["resume", "no-such-session"]) == 1
    assert "no-such-session" in capsys.readouterr().err


def _write_rollout(config: CompanionConfig, name: str, text: str) -> Path:
    path = config.codex_sessions_dir / "2026" / "02" / "18" / name
    path.parent.mkdir(parents=True, exist_ok=True)
    row = {"type": "event_msg", "payload": {"type": "user_message", "message": text}}
    path.write_text(json.dumps(row) + "\n", encoding="utf-8")
    return path


def test_resume_last_uses_newest_transcript(
    home: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str],
) -> None:
    config = CompanionConfig(happy_home_dir=home, codex_home_dir=tmp_path / ".codex")
    older = _write_rollout(config, "rollout-a.jsonl", "older question")
    newer = _write_rollout(config, "rollout-b.jsonl", "newer question")
    os.utime(older, (1_000, 1_000))
    os.utime(newer, (2_000, 2_000))

    assert _run(["resume", "--last"]) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["resumeTranscriptFile"] == str(newer)
    assert "newer question" in payload["resumeContext"]


def test_resume_last_without_transcripts_is_empty(
    home: Path, capsys: pytest.CaptureFixture[str],
) -> None:
    assert _run(["resume", "--last"]) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["resumeTranscriptFile"] is None


def test_resume_last_conflicts_with_target(home: Path) -> None:
    assert _run(["resume", "--last", "sess-1"]) == 2


def test_logging_configured_before_config_load(
    home: Path, monkeypatch: pytest.MonkeyPatch,
) -> None:
    order: list[str] = []
    real_load = cli._load_config

    def _basic_config(**kwargs) -> None:
        order.append("logging")

    def _load(path):
        order.append("config")
        return real_load(path)

    monkeypatch.setattr(cli.logging, "basicConfig", _basic_config)
    monkeypatch.setattr(cli, "_load_config", _load)

    assert _run(["markers"]) == 0
    assert order == ["logging", "config"]
