"""Adapters package - Bridge between session state and observers.

Contains the turn diff processor and the tool-call events it emits
to the relay layer.
"""
from __future__ import annotations

__all__ = [
    "DiffProcessor",
    "DiffToolCall",
    "DiffToolResult",
]

from happy_companion.adapters.diff_processor import DiffProcessor
from happy_companion.adapters.events import DiffToolCall, DiffToolResult
