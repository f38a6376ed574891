"""Toolchain location and fixed command-line conventions."""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
import shutil
import threading
from typing import Final

from .errors import ConfigurationError

ROOT_ENV_VAR: Final = "IREE_BRIDGE_ROOT"
TIMEOUT_ENV_VAR: Final = "IREE_BRIDGE_TIMEOUT"

COMPILER_TOOL: Final = "iree-compile"
RUNNER_TOOL: Final = "iree-run-module"

TARGET_BACKEND: Final = "llvm-cpu"
INPUT_TYPE: Final = "tosa"

SOURCE_SUFFIX: Final = ".mlir"
BYTECODE_SUFFIX: Final = ".vmfb"
C_SOURCE_SUFFIX: Final = ".c"
ASM_SUFFIX: Final = ".vmvx"


@dataclass(frozen=True)
class Toolchain:
    """Resolved toolchain root; `root=None` fails at first use, not at construction."""

    root: Path | None
    timeout: float | None = None

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "Toolchain":
        env = os.environ if environ is None else environ
        configured = env.get(ROOT_ENV_VAR)
        if configured:
            root: Path | None = Path(configured)
        else:
            found = shutil.which(COMPILER_TOOL)
            root = Path(found).parent if found else None
        return cls(root=root, timeout=_parse_timeout(env.get(TIMEOUT_ENV_VAR)))

    @property
    def configured(self) -> bool:
        return self.root is not None

    def tool(self, name: str) -> Path:
        if self.root is None:
            raise ConfigurationError(
                f"IREE toolchain not found: set {ROOT_ENV_VAR} or put {COMPILER_TOOL} on PATH"
            )
        return self.root / name

    @property
    def compiler(self) -> Path:
        return self.tool(COMPILER_TOOL)

    @property
    def runner(self) -> Path:
        return self.tool(RUNNER_TOOL)


def _parse_timeout(raw: str | None) -> float | None:
    if raw is None or not raw.strip():
        return None
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{TIMEOUT_ENV_VAR} must be a number of seconds, got {raw!r}") from exc
    if value <= 0:
        raise ConfigurationError(f"{TIMEOUT_ENV_VAR} must be positive, got {raw!r}")
    return value


_DEFAULT_LOCK = threading.Lock()
_DEFAULT_TOOLCHAIN: Toolchain | None = None


def default_toolchain() -> Toolchain:
    global _DEFAULT_TOOLCHAIN
    with _DEFAULT_LOCK:
        if _DEFAULT_TOOLCHAIN is None:
            _DEFAULT_TOOLCHAIN = Toolchain.from_env()
        return _DEFAULT_TOOLCHAIN


def reset_default_toolchain() -> None:
    global _DEFAULT_TOOLCHAIN
    with _DEFAULT_LOCK:
        _DEFAULT_TOOLCHAIN = None
