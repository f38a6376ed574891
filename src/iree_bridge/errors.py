"""Structured error types for marshaling, toolchain and signature failures."""

from __future__ import annotations

from dataclasses import dataclass


class IREEBridgeError(Exception):
    """Base class for structured iree-bridge errors."""


class ConfigurationError(IREEBridgeError):
    """Toolchain root could not be resolved."""


class InvalidInputError(IREEBridgeError, ValueError):
    """Input file does not carry the expected suffix."""


class InvalidOutputError(IREEBridgeError, ValueError):
    """Output file suffix does not match the requested output format."""


class UnsupportedTypeError(IREEBridgeError, TypeError):
    """Host type or value has no type-tag encoding."""


class UnsupportedFormatError(IREEBridgeError, ValueError):
    """Requested output format is not one of the known formats."""


class DecodeError(IREEBridgeError, ValueError):
    """Toolchain output could not be decoded."""


class UnrecognizedTagError(DecodeError):
    """Type tag does not follow the scalar or array tag grammar."""


class InvalidWidthError(DecodeError):
    """Type tag names a bit width outside the supported set."""


class ValueParseError(DecodeError):
    """Literal text does not parse as the tagged type."""


class MalformedOutputError(DecodeError):
    """Result stream has a `result[...]` record of an unexpected shape."""


@dataclass(eq=False)
class ResultArityError(IREEBridgeError):
    """Entry point produced zero or several results where one was required."""

    count: int

    def __str__(self) -> str:
        return f"Expected exactly one result from entry point, got {self.count}"


class SignatureMismatch(IREEBridgeError, TypeError):
    """Runtime types disagree with a declared function signature."""


def _format_types(types: object) -> str:
    if isinstance(types, tuple):
        return "(" + ", ".join(str(t) for t in types) + ")"
    return str(types)


@dataclass(eq=False)
class ArgumentTypeMismatch(SignatureMismatch):
    declared: tuple[object, ...]
    actual: tuple[object, ...]

    def __str__(self) -> str:
        return (
            "Argument types do not match MLIR function type\n"
            f"Function type: {_format_types(self.declared)}\n"
            f"Argument types: {_format_types(self.actual)}"
        )


@dataclass(eq=False)
class ResultTypeMismatch(SignatureMismatch):
    declared: object
    actual: object

    def __str__(self) -> str:
        return (
            "Result type does not match MLIR function type\n"
            f"Function type: {_format_types(self.declared)}\n"
            f"Result type: {_format_types(self.actual)}"
        )


@dataclass(eq=False)
class SubprocessFailure(IREEBridgeError):
    """A toolchain subprocess exited non-zero or ran past its deadline."""

    command: tuple[str, ...]
    returncode: int | None
    stderr: str = ""

    def __str__(self) -> str:
        tool = self.command[0] if self.command else "<unknown>"
        if self.returncode is None:
            status = "timed out"
        else:
            status = f"exited with status {self.returncode}"
        detail = f": {self.stderr.strip()}" if self.stderr.strip() else ""
        return f"{tool} {status}{detail}"
