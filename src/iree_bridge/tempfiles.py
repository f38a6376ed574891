"""Process-lifetime temporary files removed at interpreter exit."""

from __future__ import annotations

import atexit
import os
from pathlib import Path
import tempfile
import threading

TEMP_PREFIX = "ireeb_"

_LOCK = threading.Lock()
_REGISTERED: set[Path] = set()


def register_temp_file(path: str | os.PathLike[str]) -> Path:
    resolved = Path(path)
    with _LOCK:
        _REGISTERED.add(resolved)
    return resolved


def discard_temp_file(path: str | os.PathLike[str]) -> None:
    """Remove `path` now and forget it; missing files are fine."""
    resolved = Path(path)
    with _LOCK:
        _REGISTERED.discard(resolved)
    _remove_quietly(resolved)


def registered_temp_files() -> frozenset[Path]:
    with _LOCK:
        return frozenset(_REGISTERED)


def make_temp_file(suffix: str, *, text: str | None = None) -> Path:
    """Create a registered, uniquely named file in the system temp dir."""
    fd, name = tempfile.mkstemp(prefix=TEMP_PREFIX, suffix=suffix)
    path = register_temp_file(name)
    with os.fdopen(fd, "w", encoding="utf-8") as handle:
        if text is not None:
            handle.write(text)
    return path


def _remove_quietly(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError:
        # cleanup is best effort
        return


@atexit.register
def _cleanup_registered() -> None:
    with _LOCK:
        paths = list(_REGISTERED)
        _REGISTERED.clear()
    for path in paths:
        _remove_quietly(path)
