"""`iree-compile` driver: MLIR source file to compiled module."""

from __future__ import annotations

from enum import Enum
import logging
import os
import time

from .config import (
    ASM_SUFFIX,
    BYTECODE_SUFFIX,
    C_SOURCE_SUFFIX,
    INPUT_TYPE,
    SOURCE_SUFFIX,
    TARGET_BACKEND,
    Toolchain,
    default_toolchain,
)
from .errors import InvalidInputError, InvalidOutputError, UnsupportedFormatError
from .process import run_tool

logger = logging.getLogger(__name__)


class OutputFormat(str, Enum):
    BYTECODE = "bytecode"
    C = "c"
    ASM = "asm"

    @property
    def suffix(self) -> str:
        return _FORMAT_SUFFIXES[self]

    @property
    def flag(self) -> str:
        return _FORMAT_FLAGS[self]


_FORMAT_SUFFIXES = {
    OutputFormat.BYTECODE: BYTECODE_SUFFIX,
    OutputFormat.C: C_SOURCE_SUFFIX,
    OutputFormat.ASM: ASM_SUFFIX,
}
_FORMAT_FLAGS = {
    OutputFormat.BYTECODE: "vm-bytecode",
    OutputFormat.C: "vm-c",
    OutputFormat.ASM: "vm-asm",
}


def _resolve_format(output_format: OutputFormat | str) -> OutputFormat:
    try:
        return OutputFormat(output_format)
    except ValueError as exc:
        raise UnsupportedFormatError(f"Invalid output format: {output_format!r}") from exc


def build_compile_command(
    output_path: str | os.PathLike[str],
    input_path: str | os.PathLike[str],
    output_format: OutputFormat | str = OutputFormat.BYTECODE,
    *,
    toolchain: Toolchain | None = None,
) -> list[str]:
    output_path = os.fspath(output_path)
    input_path = os.fspath(input_path)
    if not input_path.endswith(SOURCE_SUFFIX):
        raise InvalidInputError(f"Compiler input must end with {SOURCE_SUFFIX}: {input_path}")
    fmt = _resolve_format(output_format)
    if not output_path.endswith(fmt.suffix):
        raise InvalidOutputError(f"{fmt.value} output must end with {fmt.suffix}: {output_path}")
    tools = toolchain or default_toolchain()
    return [
        str(tools.compiler),
        f"--iree-hal-target-backends={TARGET_BACKEND}",
        f"--iree-input-type={INPUT_TYPE}",
        f"--output-format={fmt.flag}",
        "-o",
        output_path,
        input_path,
    ]


def compile_module(
    output_path: str | os.PathLike[str],
    input_path: str | os.PathLike[str],
    output_format: OutputFormat | str = OutputFormat.BYTECODE,
    *,
    toolchain: Toolchain | None = None,
) -> None:
    tools = toolchain or default_toolchain()
    cmd = build_compile_command(output_path, input_path, output_format, toolchain=tools)
    start = time.perf_counter()
    run_tool(cmd, timeout=tools.timeout)
    logger.info("compiled %s -> %s in %.1f ms", input_path, output_path, (time.perf_counter() - start) * 1000.0)
