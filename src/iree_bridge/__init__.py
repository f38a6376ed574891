"""iree-bridge public API."""

from .cache import CompilationCache, default_cache
from .codec import decode_type, decode_value, encode_argument, encode_type
from .compiler import OutputFormat, build_compile_command, compile_module
from .config import Toolchain, default_toolchain, reset_default_toolchain
from .dtypes import (
    BOOL,
    FLOAT16,
    FLOAT32,
    FLOAT64,
    INT8,
    INT16,
    INT32,
    INT64,
    INT128,
    ArrayType,
    Int128,
    ScalarType,
    array_of,
    scalar_type,
    type_of,
    types_match,
)
from .errors import (
    ArgumentTypeMismatch,
    ConfigurationError,
    DecodeError,
    IREEBridgeError,
    InvalidInputError,
    InvalidOutputError,
    InvalidWidthError,
    MalformedOutputError,
    ResultArityError,
    ResultTypeMismatch,
    SignatureMismatch,
    SubprocessFailure,
    UnrecognizedTagError,
    UnsupportedFormatError,
    UnsupportedTypeError,
    ValueParseError,
)
from .function import MLIRFunction
from .output import parse_results
from .runner import build_run_command, compile_and_run, run_module

__all__ = [
    "MLIRFunction",
    "CompilationCache",
    "default_cache",
    "Toolchain",
    "default_toolchain",
    "reset_default_toolchain",
    "OutputFormat",
    "build_compile_command",
    "compile_module",
    "build_run_command",
    "run_module",
    "compile_and_run",
    "parse_results",
    "encode_type",
    "decode_type",
    "decode_value",
    "encode_argument",
    "ScalarType",
    "ArrayType",
    "Int128",
    "array_of",
    "scalar_type",
    "type_of",
    "types_match",
    "FLOAT16",
    "FLOAT32",
    "FLOAT64",
    "BOOL",
    "INT8",
    "INT16",
    "INT32",
    "INT64",
    "INT128",
    "IREEBridgeError",
    "ConfigurationError",
    "InvalidInputError",
    "InvalidOutputError",
    "UnsupportedTypeError",
    "UnsupportedFormatError",
    "DecodeError",
    "UnrecognizedTagError",
    "InvalidWidthError",
    "ValueParseError",
    "MalformedOutputError",
    "ResultArityError",
    "SignatureMismatch",
    "ArgumentTypeMismatch",
    "ResultTypeMismatch",
    "SubprocessFailure",
]
