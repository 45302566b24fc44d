"""Discovery and parsing of Codex rollout transcripts.

Codex appends one JSON record per line to
``<codex_home>/sessions/YYYY/MM/DD/rollout-<timestamp>-<session id>.jsonl``.
Only ``session_meta`` and user/assistant text are of interest here;
every other record type is ignored.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from .models import TranscriptFile, TranscriptMessage, TranscriptSessionMeta

logger = logging.getLogger(__name__)

TRANSCRIPT_SUFFIX = ".jsonl"
MAX_MESSAGE_CHARS = 8000
TRUNCATION_MARKER = "\n…[truncated]"
MAX_TAIL_COUNT = 100
SESSION_META_SCAN_LINES = 200


def list_transcript_files(root: Path) -> list[TranscriptFile]:
    """Return all transcript files under *root*, newest first."""
    if not root.is_dir():
        return []
    entries: list[TranscriptFile] = []
    for path in root.rglob(f"*{TRANSCRIPT_SUFFIX}"):
        try:
            stat = path.stat()
            if not path.is_file():
                continue
        except OSError:
            continue
        entries.append(TranscriptFile(path=path, mtime_ms=stat.st_mtime_ns / 1_000_000))
    entries.sort(key=lambda entry: entry.mtime_ms, reverse=True)
    return entries


def find_transcript_for_session(root: Path, session_id: str) -> Path | None:
    """Return the newest transcript named ``*-<session_id>.jsonl``, if any."""
    if not session_id:
        return None
    suffix = f"-{session_id}{TRANSCRIPT_SUFFIX}"
    for entry in list_transcript_files(root):
        if entry.path.name.endswith(suffix):
            return entry.path
    return None


def _session_meta_payload(row: Any) -> dict | None:
    if not isinstance(row, dict) or row.get("type") != "session_meta":
        return None
    payload = row.get("payload")
    return payload if isinstance(payload, dict) else None


def _meta_from_payload(payload: dict) -> TranscriptSessionMeta:
    def _str(value: Any) -> str | None:
        return value if isinstance(value, str) and value else None

    git = payload.get("git")
    git = git if isinstance(git, dict) else {}
    return TranscriptSessionMeta(
        session_id=_str(payload.get("id")),
        cwd=_str(payload.get("cwd")),
        git_branch=_str(git.get("branch")),
        git_commit=_str(git.get("commit_hash")),
        model_provider=_str(payload.get("model_provider")),
    )


def read_session_meta(
    path: Path,
    *,
    max_lines: int = SESSION_META_SCAN_LINES,
) -> TranscriptSessionMeta:
    """Find the ``session_meta`` record within the first non-blank lines.

    Never raises; an unreadable file yields an empty meta.
    """
    try:
        with open(path, encoding="utf-8", errors="replace") as f:
            seen = 0
            for line in f:
                line = line.strip()
                if not line:
                    continue
                seen += 1
                if seen > max_lines:
                    break
                try:
                    row = json.loads(line)
                except json.JSONDecodeError:
                    continue
                payload = _session_meta_payload(row)
                if payload is not None:
                    return _meta_from_payload(payload)
    except OSError as exc:
        logger.debug("Cannot read session meta from %s: %s", path, exc)
    return TranscriptSessionMeta()


def _content_text(content: Any) -> str | None:
    if isinstance(content, str):
        return content
    if not isinstance(content, list):
        return None
    parts = [
        block["text"]
        for block in content
        if isinstance(block, dict) and isinstance(block.get("text"), str)
    ]
    return "\n".join(parts) if parts else None


def _row_message(row: Any) -> tuple[str, str] | None:
    """Extract ``(role, text)`` from a transcript record, if it carries one."""
    if not isinstance(row, dict):
        return None
    payload = row.get("payload")
    if not isinstance(payload, dict):
        return None
    row_type = row.get("type")

    if row_type == "response_item" and payload.get("type") == "message":
        role = payload.get("role")
        if role not in ("user", "assistant"):
            return None
        text = _content_text(payload.get("content"))
        return (role, text) if text is not None else None

    if row_type == "event_msg":
        message = payload.get("message")
        if not isinstance(message, str):
            return None
        if payload.get("type") == "user_message":
            return ("user", message)
        if payload.get("type") == "agent_message":
            return ("assistant", message)
    return None


def clip_message_text(text: str) -> str:
    if len(text) <= MAX_MESSAGE_CHARS:
        return text
    return f"{text[:MAX_MESSAGE_CHARS]}{TRUNCATION_MARKER}"


def parse_transcript(path: Path) -> tuple[TranscriptSessionMeta, list[TranscriptMessage]]:
    """Parse a whole transcript into its session meta and text messages.

    Blank and non-JSON lines are skipped. Consecutive identical messages
    collapse to one and long bodies are clipped. Raises ``OSError`` if
    the file cannot be read.
    """
    meta = TranscriptSessionMeta()
    messages: list[TranscriptMessage] = []
    raw = path.read_text(encoding="utf-8", errors="replace")

    for line in raw.split("\n"):
        if not line.strip():
            continue
        try:
            row = json.loads(line)
        except json.JSONDecodeError:
            continue

        payload = _session_meta_payload(row)
        if payload is not None:
            meta = _meta_from_payload(payload)
            continue

        extracted = _row_message(row)
        if extracted is None:
            continue
        role, text = extracted
        trimmed = text.strip()
        if not trimmed:
            continue
        message = TranscriptMessage(role=role, text=clip_message_text(trimmed))
        if messages and messages[-1] == message:
            continue
        messages.append(message)

    return meta, messages


def clamp_tail_count(count: int) -> int:
    return max(0, min(MAX_TAIL_COUNT, int(count)))


def render_transcript_tail(
    meta: TranscriptSessionMeta,
    messages: list[TranscriptMessage],
    tail_count: int,
) -> str:
    """Render the last *tail_count* messages under a metadata header."""
    count = clamp_tail_count(tail_count)
    tail = messages[-count:] if count else []
    body = "\n\n".join(f"--- {m.role} ---\n{m.text}" for m in tail)
    return f"{meta.header()}\n\n{body}".strip()
