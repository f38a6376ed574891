"""`iree-run-module` driver: encode arguments, run, decode results."""

from __future__ import annotations

import os
from pathlib import Path

from .codec import encode_argument
from .compiler import OutputFormat, compile_module
from .config import BYTECODE_SUFFIX, SOURCE_SUFFIX, Toolchain, default_toolchain
from .dtypes import INT8, ScalarType
from .errors import InvalidInputError
from .output import parse_results
from .process import run_tool


def build_run_command(
    module_path: str | os.PathLike[str],
    entry: str,
    *args: object,
    toolchain: Toolchain | None = None,
) -> list[str]:
    module_path = os.fspath(module_path)
    if not module_path.endswith(BYTECODE_SUFFIX):
        raise InvalidInputError(f"Module file must end with {BYTECODE_SUFFIX}: {module_path}")
    # encode before touching the toolchain so bad arguments fail without configuration
    inputs = [f"--function_input={encode_argument(arg)}" for arg in args]
    tools = toolchain or default_toolchain()
    return [
        str(tools.runner),
        f"--module_file={module_path}",
        f"--entry_function={entry}",
        *inputs,
    ]


def run_module(
    module_path: str | os.PathLike[str],
    entry: str,
    *args: object,
    toolchain: Toolchain | None = None,
    i8_as: ScalarType = INT8,
) -> list[object]:
    """Run `entry` from a compiled module and return its decoded results."""
    tools = toolchain or default_toolchain()
    cmd = build_run_command(module_path, entry, *args, toolchain=tools)
    stdout = run_tool(cmd, timeout=tools.timeout)
    return parse_results(stdout, i8_as=i8_as)


def compile_and_run(
    input_path: str | os.PathLike[str],
    entry: str,
    *args: object,
    toolchain: Toolchain | None = None,
    i8_as: ScalarType = INT8,
) -> list[object]:
    """Compile `x.mlir` to a sibling `x.vmfb`, run it, then remove the module."""
    source = Path(input_path)
    if source.suffix != SOURCE_SUFFIX:
        raise InvalidInputError(f"Compiler input must end with {SOURCE_SUFFIX}: {source}")
    module = source.with_suffix(BYTECODE_SUFFIX)
    compile_module(module, source, OutputFormat.BYTECODE, toolchain=toolchain)
    try:
        return run_module(module, entry, *args, toolchain=toolchain, i8_as=i8_as)
    finally:
        module.unlink(missing_ok=True)
