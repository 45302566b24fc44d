from __future__ import annotations

from pathlib import Path

import pytest

from happy_companion.adapters.diff_processor import DiffProcessor
from happy_companion.engine.config import CompanionConfig


@pytest.fixture
def sent() -> list[dict]:
    return []


def _processor(tmp_path: Path, sent: list[dict], *, disabled: bool = False) -> DiffProcessor:
    config = CompanionConfig(
        happy_home_dir=tmp_path / "home",
        codex_home_dir=tmp_path / ".codex",
        disable_codex_diffs=disabled,
    )
    return DiffProcessor(config, on_message=sent.append)


def test_flush_emits_paired_tool_call_and_result(tmp_path: Path, sent: list[dict]) -> None:
    processor = _processor(tmp_path, sent)
    processor.process_diff("A")

    assert processor.flush() is True

    call, result = sent
    assert call["type"] == "tool-call"
    assert call["name"] == "CodexDiff"
    assert call["input"] == {"unified_diff": "A"}
    assert result == {
        "type": "tool-call-result",
        "callId": call["callId"],
        "output": {"status": "completed"},
        "id": result["id"],
    }
    assert call["callId"] and call["id"] and result["id"]
    assert len({call["callId"], call["id"], result["id"]}) == 3
    assert processor.state == "emitted"


def test_second_flush_without_new_diff_emits_nothing(tmp_path: Path, sent: list[dict]) -> None:
    processor = _processor(tmp_path, sent)
    processor.process_diff("A")
    processor.flush()

    assert processor.flush() is False
    assert len(sent) == 2


def test_record_does_not_emit(tmp_path: Path, sent: list[dict]) -> None:
    processor = _processor(tmp_path, sent)
    processor.process_diff("A")
    processor.process_diff("B")

    assert sent == []
    assert processor.current_diff == "B"
    assert processor.state == "buffered"


def test_only_latest_diff_is_flushed(tmp_path: Path, sent: list[dict]) -> None:
    processor = _processor(tmp_path, sent)
    processor.process_diff("A")
    processor.process_diff("B")
    processor.flush()

    assert [m["input"]["unified_diff"] for m in sent if m["type"] == "tool-call"] == ["B"]


def test_patch_applied_suppresses_flush(tmp_path: Path, sent: list[dict]) -> None:
    processor = _processor(tmp_path, sent)
    processor.process_diff("A")
    processor.mark_patch_applied()

    assert processor.flush() is False
    assert sent == []
    assert processor.sent_diff is None


def test_reset_clears_turn_state_but_keeps_sent_diff(tmp_path: Path, sent: list[dict]) -> None:
    processor = _processor(tmp_path, sent)
    processor.process_diff("A")
    processor.flush()
    processor.mark_patch_applied()

    processor.reset()

    assert processor.current_diff is None
    assert processor.patch_applied_this_turn is False
    assert processor.sent_diff == "A"
    assert processor.state == "idle"

    processor.process_diff("A")
    assert processor.flush() is False
    assert len(sent) == 2


def test_diff_is_resent_after_a_different_diff(tmp_path: Path, sent: list[dict]) -> None:
    processor = _processor(tmp_path, sent)
    for diff in ("A", "B", "A"):
        processor.process_diff(diff)
        processor.flush()
        processor.reset()

    assert [m["input"]["unified_diff"] for m in sent if m["type"] == "tool-call"] == ["A", "B", "A"]


def test_flush_without_diff_is_noop(tmp_path: Path, sent: list[dict]) -> None:
    processor = _processor(tmp_path, sent)

    assert processor.flush() is False
    processor.process_diff("")
    assert processor.flush() is False
    assert sent == []


def test_disabled_emission_still_tracks_diff(tmp_path: Path, sent: list[dict]) -> None:
    processor = _processor(tmp_path, sent, disabled=True)
    processor.process_diff("A")

    assert processor.current_diff == "A"
    assert processor.flush() is False
    assert sent == []


def test_callback_can_be_replaced_and_errors_do_not_break_state(tmp_path: Path) -> None:
    processor = _processor(tmp_path, [])

    def _boom(message):
        raise RuntimeError("observer down")

    processor.set_message_callback(_boom)
    processor.process_diff("A")
    assert processor.flush() is True
    assert processor.sent_diff == "A"

    received: list[dict] = []
    processor.set_message_callback(received.append)
    processor.process_diff("B")
    processor.flush()
    assert [m["type"] for m in received] == ["tool-call", "tool-call-result"]
