"""Session registry: live daemon markers and durable session records.

Storage layout:
    <home>/tmp/daemon-sessions/pid-<pid>.json   (one marker per live process)
    <home>/sessions/<sessionId>.json           (one record per session id)

Every write replaces the whole document via temp-file-then-rename.
Blocking file I/O runs in a worker thread so callers on the event loop
are never stalled.
"""

from __future__ import annotations

import asyncio
import base64
import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path

from happy_companion.engine.config import CompanionConfig
from happy_companion.engine.errors import ValidationError
from happy_companion.engine.models import EncryptionVariant, Flavor
from happy_companion.shared.models.json_value import JsonValue
from happy_companion.shared.models.session import DaemonSessionMarker, PersistedHappySession
from happy_companion.shared.services.durable_write import read_json_documents, write_json_atomic

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _is_marker_file(name: str) -> bool:
    return name.startswith("pid-") and name.endswith(".json")


class SessionMarkerRegistry:
    """Track live agent sessions owned by this daemon, one file per pid."""

    def __init__(self, config: CompanionConfig) -> None:
        self._config = config

    @property
    def directory(self) -> Path:
        return self._config.daemon_sessions_dir

    @property
    def home_dir(self) -> str:
        return str(self._config.happy_home_dir)

    def marker_path(self, pid: int) -> Path:
        return self.directory / f"pid-{pid}.json"

    async def write_marker(
        self,
        pid: int,
        happy_session_id: str,
        *,
        flavor: Flavor | str | None = None,
        started_by: str | None = None,
        cwd: str | None = None,
        metadata: JsonValue = None,
        created_at: int | None = None,
        updated_at: int | None = None,
    ) -> DaemonSessionMarker:
        """Validate and persist the marker for *pid*.

        ``happyHomeDir`` always comes from the configuration; missing
        timestamps default to now. Raises ``ValidationError``.
        """
        now = _now_ms()
        marker = DaemonSessionMarker(
            pid=pid,
            happy_session_id=happy_session_id,
            happy_home_dir=self.home_dir,
            created_at=created_at if created_at is not None else now,
            updated_at=updated_at if updated_at is not None else now,
            flavor=flavor,
            started_by=started_by,
            cwd=cwd,
            metadata=metadata,
        ).validate()

        path = self.marker_path(marker.pid)
        await asyncio.to_thread(write_json_atomic, path, marker.to_dict())
        logger.debug("Session marker written: pid=%d session=%s", marker.pid, marker.happy_session_id)
        return marker

    async def touch_marker(self, pid: int) -> DaemonSessionMarker | None:
        """Rewrite an existing marker with a fresh ``updatedAt``.

        Returns None when no valid marker exists for *pid*.
        """
        path = self.marker_path(pid)
        try:
            raw = await asyncio.to_thread(path.read_text, encoding="utf-8")
            marker = DaemonSessionMarker.from_dict(json.loads(raw))
        except FileNotFoundError:
            return None
        except (OSError, ValueError, ValidationError) as exc:
            logger.debug("Cannot refresh marker %s: %s", path, exc)
            return None
        if marker.happy_home_dir != self.home_dir:
            logger.debug("Not refreshing marker %s owned by %s", path, marker.happy_home_dir)
            return None
        marker.updated_at = max(_now_ms(), marker.created_at)
        await asyncio.to_thread(write_json_atomic, path, marker.to_dict())
        return marker

    async def remove_marker(self, pid: int) -> None:
        """Delete the marker for *pid*; a missing file is not an error."""
        path = self.marker_path(pid)
        try:
            await asyncio.to_thread(path.unlink)
            logger.debug("Session marker removed: pid=%d", pid)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.debug("Failed to remove session marker %s: %s", path, exc)

    async def list_markers(self) -> list[DaemonSessionMarker]:
        """Return valid markers belonging to this home directory."""
        markers = await asyncio.to_thread(
            read_json_documents,
            self.directory,
            name_filter=_is_marker_file,
            parse=DaemonSessionMarker.from_dict,
        )
        owned: list[DaemonSessionMarker] = []
        for marker in markers:
            if marker.happy_home_dir != self.home_dir:
                logger.debug(
                    "Ignoring marker pid=%d from foreign home %s",
                    marker.pid, marker.happy_home_dir,
                )
                continue
            owned.append(marker)
        return owned


@dataclass
class SessionSnapshot:
    """Caller-side view of a session as handed to ``PersistedSessionStore``."""

    id: str
    metadata: JsonValue
    metadata_version: int
    agent_state: JsonValue
    agent_state_version: int
    encryption_key: bytes
    encryption_variant: EncryptionVariant | str


class PersistedSessionStore:
    """Durable per-session records keyed by session id."""

    def __init__(self, config: CompanionConfig) -> None:
        self._config = config

    @property
    def directory(self) -> Path:
        return self._config.sessions_dir

    def session_path(self, session_id: str) -> Path:
        return self.directory / f"{session_id}.json"

    def _build(
        self,
        session: SessionSnapshot,
        *,
        flavor: Flavor | str,
        vendor_resume: str | None,
        created_at: int,
        updated_at: int,
    ) -> PersistedHappySession:
        return PersistedHappySession(
            session_id=session.id,
            encryption_key_base64=base64.b64encode(bytes(session.encryption_key)).decode("ascii"),
            encryption_variant=session.encryption_variant,
            metadata=session.metadata,
            metadata_version=session.metadata_version,
            agent_state=session.agent_state,
            agent_state_version=session.agent_state_version,
            flavor=flavor,
            vendor_resume=vendor_resume,
            created_at=created_at,
            updated_at=updated_at,
        ).validate()

    async def write(
        self,
        session: SessionSnapshot,
        *,
        flavor: Flavor | str,
        vendor_resume: str | None = None,
        created_at: int | None = None,
    ) -> PersistedHappySession:
        """Replace the record for ``session.id``.

        Without *created_at* both timestamps are set to now; pass the
        original creation time (or use ``update``) to keep it.
        Raises ``ValidationError``.
        """
        now = _now_ms()
        record = self._build(
            session,
            flavor=flavor,
            vendor_resume=vendor_resume,
            created_at=created_at if created_at is not None else now,
            updated_at=now,
        )
        path = self.session_path(record.session_id)
        await asyncio.to_thread(write_json_atomic, path, record.to_dict())
        logger.debug(
            "Persisted session %s (metadata v%d, agent state v%d)",
            record.session_id, record.metadata_version, record.agent_state_version,
        )
        return record

    async def update(
        self,
        session: SessionSnapshot,
        *,
        flavor: Flavor | str,
        vendor_resume: str | None = None,
    ) -> PersistedHappySession:
        """Like ``write`` but keeps ``createdAt`` of an existing record."""
        existing = await self.read(session.id)
        created_at = existing.created_at if existing is not None else None
        return await self.write(
            session,
            flavor=flavor,
            vendor_resume=vendor_resume,
            created_at=created_at,
        )

    async def read(self, session_id: str) -> PersistedHappySession | None:
        """Return the stored record, or None if absent, unreadable or invalid."""
        path = self.session_path(session_id)
        try:
            raw = await asyncio.to_thread(path.read_text, encoding="utf-8")
            return PersistedHappySession.from_dict(json.loads(raw))
        except FileNotFoundError:
            logger.debug("No persisted session at %s", path)
        except (OSError, ValueError, ValidationError) as exc:
            logger.debug("Failed to read persisted session %s: %s", path, exc)
        return None

    @staticmethod
    def decode_key(record: PersistedHappySession) -> bytes:
        """Return the raw key bytes stored in *record*."""
        return base64.b64decode(record.encryption_key_base64)
