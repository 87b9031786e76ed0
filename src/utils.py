"""Shared utilities for writing generated files."""

from __future__ import annotations

import hashlib
import logging
import os
import shutil
import tempfile
from pathlib import Path

from errors import WriteError

logger = logging.getLogger(__name__)


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def atomic_write_bytes(
    path: Path,
    data: bytes,
    *,
    mode: int = 0o644,
    group: str | None = None,
) -> None:
    """Replace ``path`` with ``data`` without ever exposing a partial file.

    The content goes to a temporary file in the destination directory, is
    flushed to disk, given its final mode (and group), then renamed over the
    target. On failure the temporary file is removed and the previous
    content of ``path`` is left untouched.

    Raises:
        WriteError: If any step fails.
    """
    tmp_path: Path | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
        )
        tmp_path = Path(tmp_name)
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.chmod(tmp_path, mode)
        if group is not None:
            shutil.chown(tmp_path, group=group)
        os.replace(tmp_path, path)
    except (OSError, LookupError) as exc:
        if tmp_path is not None:
            tmp_path.unlink(missing_ok=True)
        msg = f"failed to write {path}: {exc}"
        raise WriteError(msg) from exc
    logger.info("wrote %s", path)
