"""Turn diff tracking for Codex sessions.

Codex reports the cumulative unified diff of a turn many times while
the turn runs. The processor buffers the latest one and emits it as a
``CodexDiff`` tool call only when flushed (typically at end of turn),
and only if it differs from the last diff actually sent.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from happy_companion.adapters.events import diff_event_pair
from happy_companion.engine.config import CompanionConfig

logger = logging.getLogger(__name__)

# Signature: def callback(message: dict[str, Any]) -> None
MessageCallback = Callable[[dict[str, Any]], None]


class DiffProcessor:
    """Decide when a turn's unified diff should be (re-)emitted."""

    def __init__(
        self,
        config: CompanionConfig,
        on_message: MessageCallback | None = None,
    ) -> None:
        self._config = config
        self._on_message = on_message
        self._previous_diff: str | None = None
        self._sent_diff: str | None = None
        self._patch_applied_this_turn = False

    @property
    def current_diff(self) -> str | None:
        return self._previous_diff

    @property
    def sent_diff(self) -> str | None:
        return self._sent_diff

    @property
    def patch_applied_this_turn(self) -> bool:
        return self._patch_applied_this_turn

    @property
    def state(self) -> str:
        """``idle``, ``buffered`` or ``emitted`` for the current diff."""
        if self._previous_diff is None:
            return "idle"
        if self._previous_diff == self._sent_diff:
            return "emitted"
        return "buffered"

    def set_message_callback(self, callback: MessageCallback | None) -> None:
        self._on_message = callback

    def process_diff(self, unified_diff: str) -> None:
        """Record the latest turn diff. Never emits on its own."""
        self._previous_diff = unified_diff
        if self._config.disable_codex_diffs:
            logger.debug("Codex diff emission disabled; diff stored only")
            return
        logger.debug("Updated stored diff (buffered)")

    def flush(self) -> bool:
        """Emit the buffered diff once. Returns True if events were sent."""
        if self._config.disable_codex_diffs:
            return False
        if self._patch_applied_this_turn:
            logger.debug("Skipping CodexDiff flush because a patch was applied this turn")
            return False
        unified_diff = self._previous_diff
        if not unified_diff:
            return False
        if self._sent_diff == unified_diff:
            return False

        logger.debug("Flushing unified diff as CodexDiff tool call")
        tool_call, tool_result = diff_event_pair(unified_diff)
        self._emit(tool_call.to_dict())
        self._emit(tool_result.to_dict())
        self._sent_diff = unified_diff
        return True

    def mark_patch_applied(self) -> None:
        """Suppress the end-of-turn diff; a patch event already covers it."""
        self._patch_applied_this_turn = True

    def reset(self) -> None:
        """Clear per-turn state on task completion or abort.

        The last sent diff is kept so an identical diff in a later turn
        is not emitted again.
        """
        logger.debug("Resetting diff state")
        self._previous_diff = None
        self._patch_applied_this_turn = False

    def _emit(self, message: dict[str, Any]) -> None:
        if self._on_message is None:
            return
        try:
            self._on_message(message)
        except Exception:
            logger.exception("Diff message callback failed for %s", message.get("type"))
