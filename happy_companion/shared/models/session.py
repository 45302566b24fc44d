"""Persisted session records: daemon markers and durable sessions.

Both records are stored as camelCase JSON documents. ``to_dict`` /
``from_dict`` translate between the wire form and the dataclasses;
``validate`` raises ``ValidationError`` listing every problem found.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from happy_companion.engine.errors import ValidationError
from happy_companion.engine.models import EncryptionVariant, Flavor
from happy_companion.shared.models.json_value import JsonValue, validate_json_value


def _check_int(problems: list[str], name: str, value: Any, *, minimum: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        problems.append(f"{name}: expected integer, got {type(value).__name__}")
    elif value < minimum:
        qualifier = "positive" if minimum > 0 else "non-negative"
        problems.append(f"{name}: expected {qualifier} integer, got {value}")


def _check_str(problems: list[str], name: str, value: Any, *, optional: bool = False) -> None:
    if value is None and optional:
        return
    if not isinstance(value, str):
        problems.append(f"{name}: expected string, got {type(value).__name__}")


def _coerce_enum(
    problems: list[str],
    name: str,
    enum_cls: type[Enum],
    value: Any,
    *,
    optional: bool = False,
) -> Any:
    if value is None and optional:
        return None
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        problems.append(f"{name}: expected one of {allowed}, got {value!r}")
        return value


@dataclass
class DaemonSessionMarker:
    """Record of a live agent session, keyed by OS process id."""

    pid: int
    happy_session_id: str
    happy_home_dir: str
    created_at: int
    updated_at: int
    flavor: Flavor | None = None
    started_by: str | None = None
    cwd: str | None = None
    metadata: JsonValue = None

    def validate(self) -> DaemonSessionMarker:
        problems: list[str] = []
        _check_int(problems, "pid", self.pid, minimum=1)
        _check_str(problems, "happySessionId", self.happy_session_id)
        _check_str(problems, "happyHomeDir", self.happy_home_dir)
        _check_int(problems, "createdAt", self.created_at, minimum=1)
        _check_int(problems, "updatedAt", self.updated_at, minimum=1)
        self.flavor = _coerce_enum(problems, "flavor", Flavor, self.flavor, optional=True)
        _check_str(problems, "startedBy", self.started_by, optional=True)
        _check_str(problems, "cwd", self.cwd, optional=True)
        problems.extend(validate_json_value(self.metadata, "metadata"))
        if problems:
            raise ValidationError("DaemonSessionMarker", problems)
        return self

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "pid": self.pid,
            "happySessionId": self.happy_session_id,
            "happyHomeDir": self.happy_home_dir,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
        if self.flavor is not None:
            data["flavor"] = Flavor(self.flavor).value
        if self.started_by is not None:
            data["startedBy"] = self.started_by
        if self.cwd is not None:
            data["cwd"] = self.cwd
        if self.metadata is not None:
            data["metadata"] = self.metadata
        return data

    @classmethod
    def from_dict(cls, data: Any) -> DaemonSessionMarker:
        if not isinstance(data, dict):
            raise ValidationError(
                "DaemonSessionMarker", [f"expected object, got {type(data).__name__}"],
            )
        return cls(
            pid=data.get("pid"),
            happy_session_id=data.get("happySessionId"),
            happy_home_dir=data.get("happyHomeDir"),
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
            flavor=data.get("flavor"),
            started_by=data.get("startedBy"),
            cwd=data.get("cwd"),
            metadata=data.get("metadata"),
        ).validate()


@dataclass
class PersistedHappySession:
    """Durable session identity, key material and versioned snapshots."""

    session_id: str
    encryption_key_base64: str
    encryption_variant: EncryptionVariant
    metadata: JsonValue
    metadata_version: int
    agent_state: JsonValue
    agent_state_version: int
    flavor: Flavor
    created_at: int
    updated_at: int
    vendor_resume: str | None = None

    def validate(self) -> PersistedHappySession:
        problems: list[str] = []
        _check_str(problems, "sessionId", self.session_id)
        if isinstance(self.session_id, str) and (
            not self.session_id or "/" in self.session_id or "\\" in self.session_id
        ):
            problems.append(f"sessionId: not usable as a file name: {self.session_id!r}")
        _check_str(problems, "encryptionKeyBase64", self.encryption_key_base64)
        self.encryption_variant = _coerce_enum(
            problems, "encryptionVariant", EncryptionVariant, self.encryption_variant,
        )
        problems.extend(validate_json_value(self.metadata, "metadata"))
        _check_int(problems, "metadataVersion", self.metadata_version, minimum=0)
        problems.extend(validate_json_value(self.agent_state, "agentState"))
        _check_int(problems, "agentStateVersion", self.agent_state_version, minimum=0)
        self.flavor = _coerce_enum(problems, "flavor", Flavor, self.flavor)
        _check_str(problems, "vendorResume", self.vendor_resume, optional=True)
        _check_int(problems, "createdAt", self.created_at, minimum=1)
        _check_int(problems, "updatedAt", self.updated_at, minimum=1)
        if problems:
            raise ValidationError("PersistedHappySession", problems)
        return self

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "sessionId": self.session_id,
            "encryptionKeyBase64": self.encryption_key_base64,
            "encryptionVariant": EncryptionVariant(self.encryption_variant).value,
            "metadata": self.metadata,
            "metadataVersion": self.metadata_version,
            "agentState": self.agent_state,
            "agentStateVersion": self.agent_state_version,
            "flavor": Flavor(self.flavor).value,
        }
        if self.vendor_resume is not None:
            data["vendorResume"] = self.vendor_resume
        data["createdAt"] = self.created_at
        data["updatedAt"] = self.updated_at
        return data

    @classmethod
    def from_dict(cls, data: Any) -> PersistedHappySession:
        if not isinstance(data, dict):
            raise ValidationError(
                "PersistedHappySession", [f"expected object, got {type(data).__name__}"],
            )
        return cls(
            session_id=data.get("sessionId"),
            encryption_key_base64=data.get("encryptionKeyBase64"),
            encryption_variant=data.get("encryptionVariant"),
            metadata=data.get("metadata"),
            metadata_version=data.get("metadataVersion"),
            agent_state=data.get("agentState"),
            agent_state_version=data.get("agentStateVersion"),
            flavor=data.get("flavor"),
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
            vendor_resume=data.get("vendorResume"),
        ).validate()
