from __future__ import annotations

import json
from pathlib import Path

import pytest

from happy_companion.engine.config import CompanionConfig
from happy_companion.engine.errors import ValidationError
from happy_companion.engine.models import Flavor
from happy_companion.shared.services.session_registry import SessionMarkerRegistry


def _config(tmp_path: Path, name: str = "home") -> CompanionConfig:
    return CompanionConfig(happy_home_dir=tmp_path / name, codex_home_dir=tmp_path / ".codex")


@pytest.mark.asyncio
async def test_write_then_list_returns_written_marker(tmp_path: Path) -> None:
    config = _config(tmp_path)
    registry = SessionMarkerRegistry(config)

    written = await registry.write_marker(4242, "sess-abc", flavor="codex")
    markers = await registry.list_markers()

    assert markers == [written]
    marker = markers[0]
    assert marker.pid == 4242
    assert marker.happy_session_id == "sess-abc"
    assert marker.flavor is Flavor.CODEX
    assert marker.happy_home_dir == str(config.happy_home_dir)
    assert marker.created_at > 0
    assert marker.created_at == marker.updated_at

    path = config.daemon_sessions_dir / "pid-4242.json"
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["happySessionId"] == "sess-abc"
    assert payload["flavor"] == "codex"
    assert "cwd" not in payload


@pytest.mark.asyncio
async def test_write_marker_keeps_explicit_timestamps_and_metadata(tmp_path: Path) -> None:
    registry = SessionMarkerRegistry(_config(tmp_path))

    await registry.write_marker(
        7,
        "sess-7",
        started_by="daemon",
        cwd="/work/project",
        metadata={"host": "laptop", "tags": ["a", 1, None]},
        created_at=1000,
        updated_at=2000,
    )

    [marker] = await registry.list_markers()
    assert marker.created_at == 1000
    assert marker.updated_at == 2000
    assert marker.started_by == "daemon"
    assert marker.cwd == "/work/project"
    assert marker.metadata == {"host": "laptop", "tags": ["a", 1, None]}
    assert marker.flavor is None


@pytest.mark.asyncio
@pytest.mark.parametrize("pid", [0, -3, True, "12"])
async def test_write_marker_rejects_invalid_pid(tmp_path: Path, pid) -> None:
    config = _config(tmp_path)
    registry = SessionMarkerRegistry(config)

    with pytest.raises(ValidationError) as excinfo:
        await registry.write_marker(pid, "sess")

    assert any(problem.startswith("pid:") for problem in excinfo.value.problems)
    assert not config.daemon_sessions_dir.exists() or not any(config.daemon_sessions_dir.iterdir())


@pytest.mark.asyncio
async def test_write_marker_rejects_unknown_flavor(tmp_path: Path) -> None:
    registry = SessionMarkerRegistry(_config(tmp_path))

    with pytest.raises(ValidationError, match="flavor"):
        await registry.write_marker(10, "sess", flavor="copilot")


@pytest.mark.asyncio
async def test_list_excludes_markers_from_other_home(tmp_path: Path) -> None:
    config = _config(tmp_path)
    registry = SessionMarkerRegistry(config)
    await registry.write_marker(100, "ours")

    foreign = {
        "pid": 200,
        "happySessionId": "theirs",
        "happyHomeDir": str(tmp_path / "other-home"),
        "createdAt": 1,
        "updatedAt": 1,
    }
    (config.daemon_sessions_dir / "pid-200.json").write_text(json.dumps(foreign), encoding="utf-8")

    markers = await registry.list_markers()
    assert [m.happy_session_id for m in markers] == ["ours"]


@pytest.mark.asyncio
async def test_list_skips_malformed_and_unrelated_files(tmp_path: Path) -> None:
    config = _config(tmp_path)
    registry = SessionMarkerRegistry(config)
    await registry.write_marker(1, "good")

    directory = config.daemon_sessions_dir
    (directory / "pid-2.json").write_text("{not json", encoding="utf-8")
    (directory / "pid-3.json").write_text(
        json.dumps({"pid": -1, "happySessionId": "bad", "happyHomeDir": str(config.happy_home_dir)}),
        encoding="utf-8",
    )
    (directory / "pid-4.json").write_text("[]", encoding="utf-8")
    (directory / "notes.json").write_text(
        json.dumps({"pid": 9, "happySessionId": "ignored"}), encoding="utf-8",
    )
    (directory / "pid-5.json").mkdir()

    markers = await registry.list_markers()
    assert [m.happy_session_id for m in markers] == ["good"]


@pytest.mark.asyncio
async def test_list_creates_missing_directory(tmp_path: Path) -> None:
    config = _config(tmp_path)
    registry = SessionMarkerRegistry(config)

    assert await registry.list_markers() == []
    assert config.daemon_sessions_dir.is_dir()


@pytest.mark.asyncio
async def test_remove_marker_is_idempotent(tmp_path: Path) -> None:
    config = _config(tmp_path)
    registry = SessionMarkerRegistry(config)
    await registry.write_marker(55, "sess")

    await registry.remove_marker(55)
    await registry.remove_marker(55)
    await registry.remove_marker(999)

    assert await registry.list_markers() == []
    assert not registry.marker_path(55).exists()


@pytest.mark.asyncio
async def test_rewrite_same_pid_replaces_marker(tmp_path: Path) -> None:
    registry = SessionMarkerRegistry(_config(tmp_path))
    await registry.write_marker(77, "first", created_at=10, updated_at=10)
    await registry.write_marker(77, "second", created_at=10, updated_at=20)

    [marker] = await registry.list_markers()
    assert marker.happy_session_id == "second"
    assert marker.updated_at == 20


@pytest.mark.asyncio
async def test_touch_marker_refreshes_updated_at(tmp_path: Path) -> None:
    registry = SessionMarkerRegistry(_config(tmp_path))
    await registry.write_marker(8, "sess", created_at=5, updated_at=5)

    touched = await registry.touch_marker(8)

    assert touched is not None
    assert touched.created_at == 5
    assert touched.updated_at > 5
    [marker] = await registry.list_markers()
    assert marker.updated_at == touched.updated_at
    assert await registry.touch_marker(9) is None


@pytest.mark.asyncio
async def test_registries_with_different_homes_are_isolated(tmp_path: Path) -> None:
    first = SessionMarkerRegistry(_config(tmp_path, "home-a"))
    second = SessionMarkerRegistry(_config(tmp_path, "home-b"))

    await first.write_marker(1, "a")
    await second.write_marker(1, "b")

    assert [m.happy_session_id for m in await first.list_markers()] == ["a"]
    assert [m.happy_session_id for m in await second.list_markers()] == ["b"]
