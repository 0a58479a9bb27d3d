"""
Per-process scratch directories for conversion hand-off files.

Layout: ``<temp root>/pid_<pid>/``. The temp root comes from
``TempConfig.temp_root`` (``RMLPUB_TEMP_DIR``) and falls back to
``<system temp>/rmlpub``.
"""

from __future__ import annotations

import logging
import os
import shutil
import signal
import tempfile
import time
from pathlib import Path
from typing import Optional, Union

PathLike = Union[str, Path]

logger = logging.getLogger(__name__)


def resolve_temp_root(temp_root: Optional[PathLike] = None) -> Path:
    if temp_root:
        return Path(temp_root)
    return Path(tempfile.gettempdir()) / "rmlpub"


def get_pid_temp_dir(temp_root: Optional[PathLike] = None) -> Path:
    """Return (and create) the scratch directory owned by this process."""
    pid_dir = resolve_temp_root(temp_root) / f"pid_{os.getpid()}"
    pid_dir.mkdir(parents=True, exist_ok=True)
    return pid_dir


def cleanup_stale_files(retention_hours: int, temp_root: Optional[PathLike] = None) -> int:
    """
    Delete scratch files left behind by earlier runs.

    Files older than ``retention_hours`` go, then any ``pid_*`` directory
    that ended up empty.

    Returns:
        Number of files removed
    """
    root = resolve_temp_root(temp_root)
    if not root.exists():
        return 0

    cutoff = time.time() - retention_hours * 3600
    removed = 0
    for path in root.rglob("*"):
        if not path.is_file():
            continue
        try:
            if path.stat().st_mtime < cutoff:
                path.unlink()
                removed += 1
                logger.debug(f"Removed stale temp file: {path}")
        except OSError as e:
            logger.warning(f"Could not remove stale file {path}: {e}")

    for pid_dir in root.glob("pid_*"):
        if pid_dir.is_dir() and not any(pid_dir.iterdir()):
            try:
                pid_dir.rmdir()
            except OSError as e:
                logger.debug(f"Left empty directory {pid_dir}: {e}")

    if removed:
        logger.info(f"Removed {removed} stale temp files older than {retention_hours}h")
    return removed


def cleanup_current_pid(temp_root: Optional[PathLike] = None) -> None:
    """Remove this process's scratch directory, if any."""
    pid_dir = resolve_temp_root(temp_root) / f"pid_{os.getpid()}"
    if not pid_dir.exists():
        return
    try:
        shutil.rmtree(pid_dir)
        logger.debug(f"Removed PID temp directory: {pid_dir}")
    except OSError as e:
        logger.warning(f"Could not remove PID temp directory {pid_dir}: {e}")


def register_cleanup_handlers(temp_root: Optional[PathLike] = None) -> None:
    """Clear this process's scratch directory on SIGINT/SIGTERM, then exit 1."""
    def on_signal(signum: int, frame) -> None:
        logger.info(f"Received signal {signum}, removing temp files")
        cleanup_current_pid(temp_root)
        raise SystemExit(1)

    signal.signal(signal.SIGINT, on_signal)
    signal.signal(signal.SIGTERM, on_signal)
