"""Blocking subprocess execution for toolchain commands."""

from __future__ import annotations

import logging
import shlex
import subprocess

from .errors import SubprocessFailure

logger = logging.getLogger(__name__)


def _as_text(data: str | bytes | None) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


def run_tool(cmd: list[str], *, timeout: float | None = None) -> str:
    """Run `cmd` to completion and return its stdout.

    Non-zero exit and timeouts raise SubprocessFailure.
    """
    logger.debug("+ %s", " ".join(shlex.quote(c) for c in cmd))
    try:
        proc = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout, check=False)
    except subprocess.TimeoutExpired as exc:
        raise SubprocessFailure(command=tuple(cmd), returncode=None, stderr=_as_text(exc.stderr)) from exc
    except OSError as exc:
        raise SubprocessFailure(command=tuple(cmd), returncode=None, stderr=str(exc)) from exc
    if proc.returncode != 0:
        raise SubprocessFailure(command=tuple(cmd), returncode=proc.returncode, stderr=proc.stderr or "")
    return proc.stdout
