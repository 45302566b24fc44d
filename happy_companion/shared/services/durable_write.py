from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

from happy_companion.engine.errors import ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _fsync_dir(dir_path: Path) -> None:
    """Best-effort directory fsync to persist rename/unlink metadata."""
    try:
        flags = os.O_RDONLY
        if hasattr(os, "O_DIRECTORY"):
            flags |= os.O_DIRECTORY
        fd = os.open(str(dir_path), flags)
        try:
            os.fsync(fd)
        finally:
            os.close(fd)
    except OSError:
        # Some platforms/filesystems do not support directory fsync.
        pass


def atomic_write_text(path: Path, content: str, *, encoding: str = "utf-8") -> None:
    """Atomically write text to path and fsync file + parent directory."""
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding=encoding) as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())

        os.replace(tmp_path, path)
        _fsync_dir(path.parent)
    finally:
        if tmp_path.exists():
            try:
                tmp_path.unlink()
            except OSError:
                pass


def write_json_atomic(path: Path, value: Any) -> None:
    """Write *value* as pretty-printed JSON; readers never see a partial file."""
    atomic_write_text(path, json.dumps(value, indent=2, ensure_ascii=False))
    logger.debug("Wrote %s", path)


def read_json_documents(
    directory: Path,
    *,
    name_filter: Callable[[str], bool],
    parse: Callable[[Any], T],
) -> list[T]:
    """Parse every matching JSON document in *directory*.

    The directory is created if missing. Entries that vanish, cannot be
    decoded or fail *parse* are skipped; one bad file never aborts the
    listing. Order follows directory enumeration.
    """
    directory.mkdir(parents=True, exist_ok=True)
    documents: list[T] = []
    for name in os.listdir(directory):
        if not name_filter(name):
            continue
        path = directory / name
        try:
            raw = path.read_text(encoding="utf-8")
            documents.append(parse(json.loads(raw)))
        except FileNotFoundError:
            logger.debug("Skipping %s: removed during scan", path)
        except (OSError, UnicodeDecodeError) as exc:
            logger.debug("Skipping unreadable document %s: %s", path, exc)
        except json.JSONDecodeError as exc:
            logger.debug("Skipping invalid JSON in %s: %s", path, exc)
        except ValidationError as exc:
            logger.debug("Skipping %s: %s", path, exc)
    return documents
