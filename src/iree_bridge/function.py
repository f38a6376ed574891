"""Typed callable handle over an MLIR entry point."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from .cache import CompilationCache, default_cache
from .compiler import OutputFormat, compile_module
from .config import BYTECODE_SUFFIX, SOURCE_SUFFIX, Toolchain
from .dtypes import BOOL, INT8, ArrayType, ScalarType, TypeDescriptor, as_descriptor, type_of, types_match
from .errors import ArgumentTypeMismatch, ResultArityError, ResultTypeMismatch, UnsupportedTypeError
from .runner import run_module
from .tempfiles import discard_temp_file, make_temp_file


def _describe(value: object) -> TypeDescriptor | str:
    try:
        return type_of(value)
    except UnsupportedTypeError:
        return type(value).__name__


@dataclass(frozen=True)
class MLIRFunction:
    """Callable binding of a declared signature to an entry point.

    `source` is MLIR text, or a path to a `.mlir` file when `is_file=True`.
    Compiled modules are shared through `cache` by exact source text, so two
    bindings over identical text compile once.
    """

    result_type: TypeDescriptor
    arg_types: tuple[TypeDescriptor, ...]
    source: str
    entry: str
    is_file: bool = False
    cache: CompilationCache = field(default_factory=default_cache, repr=False, compare=False)
    toolchain: Toolchain | None = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        arg_types = self.arg_types
        if not isinstance(arg_types, (tuple, list)):
            arg_types = (arg_types,)
        object.__setattr__(self, "result_type", as_descriptor(self.result_type))
        object.__setattr__(self, "arg_types", tuple(as_descriptor(t) for t in arg_types))

    @property
    def _i8_as(self):
        result = self.result_type
        element = result.element if isinstance(result, ArrayType) else result
        return BOOL if element == BOOL else INT8

    def check_arguments(self, args: tuple[object, ...]) -> None:
        actual = tuple(_describe(arg) for arg in args)
        if len(actual) != len(self.arg_types) or not all(
            isinstance(got, (ScalarType, ArrayType)) and types_match(want, got)
            for want, got in zip(self.arg_types, actual)
        ):
            raise ArgumentTypeMismatch(declared=self.arg_types, actual=actual)

    def _compile(self) -> Path:
        if self.is_file:
            mlir_path = Path(self.source)
        else:
            mlir_path = make_temp_file(SOURCE_SUFFIX, text=self.source)
        module_path = make_temp_file(BYTECODE_SUFFIX)
        try:
            compile_module(module_path, mlir_path, OutputFormat.BYTECODE, toolchain=self.toolchain)
        except BaseException:
            discard_temp_file(module_path)
            raise
        finally:
            if not self.is_file:
                discard_temp_file(mlir_path)
        return module_path

    def module_path(self) -> Path:
        """Compiled module for this binding, compiling on first use."""
        return self.cache.get_or_compile(self.source, self._compile)

    def __call__(self, *args: object):
        self.check_arguments(args)
        results = run_module(self.module_path(), self.entry, *args, toolchain=self.toolchain, i8_as=self._i8_as)
        if len(results) != 1:
            raise ResultArityError(count=len(results))
        (result,) = results
        actual = type_of(result)
        if not types_match(self.result_type, actual):
            raise ResultTypeMismatch(declared=self.result_type, actual=actual)
        return result

    def invalidate(self) -> None:
        self.cache.invalidate(self.source)

    def __repr__(self) -> str:
        args = ", ".join(str(t) for t in self.arg_types)
        data = f", data=<{self.source}>" if self.is_file else ""
        return f"MLIRFunction({self.result_type}, ({args}), entry={self.entry}{data})"
