"""Uninterpreted JSON values carried through the stores untouched."""

from __future__ import annotations

import math
from typing import Any, Union

JsonValue = Union[None, bool, int, float, str, list["JsonValue"], dict[str, "JsonValue"]]


def validate_json_value(value: Any, path: str = "$") -> list[str]:
    """Return problems preventing *value* from round-tripping through JSON."""
    if value is None or isinstance(value, (bool, str, int)):
        return []
    if isinstance(value, float):
        if math.isfinite(value):
            return []
        return [f"{path}: non-finite number {value!r}"]
    if isinstance(value, (list, tuple)):
        problems: list[str] = []
        for idx, item in enumerate(value):
            problems.extend(validate_json_value(item, f"{path}[{idx}]"))
        return problems
    if isinstance(value, dict):
        problems = []
        for key, item in value.items():
            if not isinstance(key, str):
                problems.append(f"{path}: non-string key {key!r}")
                continue
            problems.extend(validate_json_value(item, f"{path}.{key}"))
        return problems
    return [f"{path}: unsupported type {type(value).__name__}"]
