"""Source-keyed cache of compiled modules with single-flight compilation."""

from __future__ import annotations

from concurrent.futures import Future
import logging
from pathlib import Path
import threading
from typing import Callable

from .tempfiles import discard_temp_file

logger = logging.getLogger(__name__)


class CompilationCache:
    """Maps exact program text to the path of its compiled module.

    The lock guards only the maps; compilation runs outside it. The first
    caller for an uncached key owns an in-flight future, later callers for
    the same key block on that future instead of compiling again. Failed
    compilations are never recorded.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, Path] = {}
        self._in_flight: dict[str, Future] = {}
        self._stats: dict[str, int] = {"hits": 0, "misses": 0, "waits": 0, "failures": 0}

    def get(self, source: str) -> Path | None:
        with self._lock:
            return self._entries.get(source)

    def get_or_compile(self, source: str, compile_fn: Callable[[], object]) -> Path:
        with self._lock:
            cached = self._entries.get(source)
            if cached is not None:
                self._stats["hits"] += 1
                logger.debug("compile cache hit (%d chars)", len(source))
                return cached
            pending = self._in_flight.get(source)
            owner = pending is None
            if owner:
                pending = Future()
                self._in_flight[source] = pending
                self._stats["misses"] += 1
            else:
                self._stats["waits"] += 1

        if not owner:
            logger.debug("waiting on in-flight compilation (%d chars)", len(source))
            return pending.result()

        logger.debug("compile cache miss (%d chars)", len(source))
        try:
            path = Path(compile_fn())
        except BaseException as exc:
            with self._lock:
                self._in_flight.pop(source, None)
                self._stats["failures"] += 1
            pending.set_exception(exc)
            raise
        with self._lock:
            self._entries[source] = path
            self._in_flight.pop(source, None)
        pending.set_result(path)
        return path

    def invalidate(self, source: str, *, remove_artifact: bool = True) -> Path | None:
        """Forget `source`; the next access recompiles. Key match is exact."""
        with self._lock:
            path = self._entries.pop(source, None)
        if path is not None and remove_artifact:
            discard_temp_file(path)
        return path

    def clear(self, *, remove_artifacts: bool = True) -> None:
        with self._lock:
            paths = list(self._entries.values())
            self._entries.clear()
        if remove_artifacts:
            for path in paths:
                discard_temp_file(path)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, source: object) -> bool:
        with self._lock:
            return source in self._entries

    def stats(self, *, reset: bool = False) -> dict[str, float | int]:
        with self._lock:
            hits = self._stats["hits"]
            misses = self._stats["misses"]
            total = hits + misses
            stats: dict[str, float | int] = {
                "hits": hits,
                "misses": misses,
                "waits": self._stats["waits"],
                "failures": self._stats["failures"],
                "size": len(self._entries),
                "hit_rate": float(hits / total) if total else 0.0,
            }
            if reset:
                for key in self._stats:
                    self._stats[key] = 0
        return stats


_DEFAULT_LOCK = threading.Lock()
_DEFAULT_CACHE: CompilationCache | None = None


def default_cache() -> CompilationCache:
    """Process-wide cache used by bindings constructed without one."""
    global _DEFAULT_CACHE
    with _DEFAULT_LOCK:
        if _DEFAULT_CACHE is None:
            _DEFAULT_CACHE = CompilationCache()
        return _DEFAULT_CACHE
