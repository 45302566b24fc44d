"""Tool-call events emitted to observers.

Each event is a typed dataclass; ``to_dict`` yields the record handed
to the registered message callback.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any

CODEX_DIFF_TOOL = "CodexDiff"


def _gen_id() -> str:
    return str(uuid.uuid4())


@dataclass
class DiffToolCall:
    call_id: str
    unified_diff: str
    name: str = CODEX_DIFF_TOOL
    id: str = field(default_factory=_gen_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "tool-call",
            "name": self.name,
            "callId": self.call_id,
            "input": {"unified_diff": self.unified_diff},
            "id": self.id,
        }


@dataclass
class DiffToolResult:
    call_id: str
    status: str = "completed"
    id: str = field(default_factory=_gen_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "tool-call-result",
            "callId": self.call_id,
            "output": {"status": self.status},
            "id": self.id,
        }


def diff_event_pair(unified_diff: str) -> tuple[DiffToolCall, DiffToolResult]:
    """Build a tool call and its completed result sharing one call id."""
    call_id = _gen_id()
    return DiffToolCall(call_id=call_id, unified_diff=unified_diff), DiffToolResult(call_id=call_id)
