"""Reload of the supervised services after new outputs are committed."""

from __future__ import annotations

import logging
import subprocess
from typing import TYPE_CHECKING, Any

from errors import ReloadError

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

logger = logging.getLogger(__name__)

SYSTEMCTL = "systemctl"


def _run(
    runner: Callable[..., subprocess.CompletedProcess[Any]], args: list[str]
) -> None:
    logger.info("running %s", " ".join(args))
    try:
        runner(args, check=True, capture_output=True, text=True)
    except subprocess.CalledProcessError as exc:
        detail = (exc.stderr or "").strip() or f"exit status {exc.returncode}"
        msg = f"'{' '.join(args)}' failed: {detail}"
        raise ReloadError(msg) from exc
    except OSError as exc:
        msg = f"'{' '.join(args)}' could not be started: {exc}"
        raise ReloadError(msg) from exc


def reload_services(
    units: Sequence[str],
    *,
    runner: Callable[..., subprocess.CompletedProcess[Any]] = subprocess.run,
) -> None:
    """Reload unit definitions and restart ``units`` in order."""
    _run(runner, [SYSTEMCTL, "daemon-reload"])
    if units:
        _run(runner, [SYSTEMCTL, "restart", *units])


__all__ = ["SYSTEMCTL", "reload_services"]
