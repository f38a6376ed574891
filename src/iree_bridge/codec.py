"""Type-tag codec between host values and the IREE textual argument protocol.

Tags follow the `iree-run-module` grammar: scalars are `f16`/`f32`/`f64` and
`i8`/`i16`/`i32`/`i64`/`i128`, arrays prefix one `<dim>x` segment per axis
(`4xf32`, `2x3xi64`). Values travel as `<tag>=<literal>` with array elements
separated by whitespace and optionally grouped in `[...]` rows.
"""

from __future__ import annotations

import math
import re
from typing import Final

import jax
import numpy as np

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
    TypeDescriptor,
    scalar_type,
    type_of,
)
from .errors import InvalidWidthError, UnrecognizedTagError, UnsupportedTypeError, ValueParseError

_FLOATS_BY_WIDTH: Final[dict[int, ScalarType]] = {16: FLOAT16, 32: FLOAT32, 64: FLOAT64}
_INTS_BY_WIDTH: Final[dict[int, ScalarType]] = {16: INT16, 32: INT32, 64: INT64, 128: INT128}

_DIGITS = re.compile(r"[0-9]+")
_INT_LITERAL = re.compile(r"[+-]?[0-9]+")
_FLOAT_LITERAL = re.compile(
    r"[+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|nan|inf|infinity)", re.IGNORECASE
)
_ARRAY_SEPARATORS = re.compile(r"[\s\[\],]+")
_TRUE_LITERALS: Final = frozenset({"1", "true"})
_FALSE_LITERALS: Final = frozenset({"0", "false"})


def encode_type(host: object) -> str:
    """Tag for a host scalar type, or for a concrete ArrayType."""
    if isinstance(host, ArrayType):
        if not host.is_concrete:
            raise UnsupportedTypeError(f"Array type {host} has unknown extents and no tag")
        dims = "x".join(str(dim) for dim in host.dims)
        return f"{dims}x{host.element.tag}"
    return scalar_type(host).tag


def _check_i8_choice(i8_as: ScalarType) -> None:
    if i8_as not in (INT8, BOOL):
        raise ValueError(f"i8 tags decode as INT8 or BOOL, not {i8_as}")


def _tag_width(tag: str) -> int:
    width = tag[1:]
    if not _DIGITS.fullmatch(width):
        raise UnrecognizedTagError(f"Cannot map IREE type {tag!r} to a host type")
    return int(width)


def decode_type(tag: str, *, i8_as: ScalarType = INT8) -> TypeDescriptor:
    """Descriptor for a type tag.

    `i8` is shared by 8-bit integers and booleans on the wire; it decodes to
    `i8_as`, which defaults to INT8.
    """
    _check_i8_choice(i8_as)
    if not tag:
        raise UnrecognizedTagError("Cannot map empty IREE type tag to a host type")
    head = tag[0]
    if head == "f":
        bits = _tag_width(tag)
        scalar = _FLOATS_BY_WIDTH.get(bits)
        if scalar is None:
            raise InvalidWidthError(f"Invalid number of bits for float: {bits}")
        return scalar
    if head == "i":
        bits = _tag_width(tag)
        if bits == 8:
            return i8_as
        scalar = _INTS_BY_WIDTH.get(bits)
        if scalar is None:
            raise InvalidWidthError(f"Invalid number of bits for integer: {bits}")
        return scalar
    if _DIGITS.match(tag):
        dims: list[int] = []
        rest = tag
        while "x" in rest:
            dim_text, rest = rest.split("x", 1)
            if not _DIGITS.fullmatch(dim_text) or int(dim_text) == 0:
                raise UnrecognizedTagError(f"Invalid dimension {dim_text!r} in IREE type {tag!r}")
            dims.append(int(dim_text))
        if not dims:
            raise UnrecognizedTagError(f"Cannot map IREE type {tag!r} to a host type")
        element = decode_type(rest, i8_as=i8_as)
        return ArrayType(element=element, dims=tuple(dims))
    raise UnrecognizedTagError(f"Cannot map IREE type {tag!r} to a host type")


def parse_scalar(scalar: ScalarType, text: str):
    """Parse one literal as `scalar`; returns a numpy scalar or Int128."""
    literal = text.strip()
    if scalar == BOOL:
        lowered = literal.lower()
        if lowered in _TRUE_LITERALS:
            return np.bool_(True)
        if lowered in _FALSE_LITERALS:
            return np.bool_(False)
        raise ValueParseError(f"Cannot parse {literal!r} as bool")
    if scalar.kind == "f":
        if not _FLOAT_LITERAL.fullmatch(literal):
            raise ValueParseError(f"Cannot parse {literal!r} as {scalar}")
        parsed = float(literal)
        with np.errstate(over="ignore"):
            value = scalar.host_type(parsed)
        if np.isinf(value) and "inf" not in literal.lower():
            raise ValueParseError(f"{literal} is out of range for {scalar}")
        return value

    if not _INT_LITERAL.fullmatch(literal):
        raise ValueParseError(f"Cannot parse {literal!r} as {scalar}")
    parsed = int(literal)
    if scalar == INT128:
        low, high = Int128.MIN, Int128.MAX
    else:
        info = np.iinfo(scalar.dtype)
        low, high = int(info.min), int(info.max)
    if not low <= parsed <= high:
        raise ValueParseError(f"{literal} is out of range for {scalar}")
    return scalar.host_type(parsed)


def decode_value(tag: str, text: str, *, i8_as: ScalarType = INT8):
    """Decode a `<tag>=<text>` pair into a host value.

    Array tags parse every element and return an ndarray shaped by the tag.
    """
    decoded = decode_type(tag, i8_as=i8_as)
    if isinstance(decoded, ScalarType):
        return parse_scalar(decoded, text)

    tokens = [tok for tok in _ARRAY_SEPARATORS.split(text) if tok]
    expected = math.prod(decoded.dims)
    if len(tokens) != expected:
        raise ValueParseError(f"{tag} expects {expected} elements, got {len(tokens)}: {text.strip()!r}")
    values = [parse_scalar(decoded.element, tok) for tok in tokens]
    if decoded.element == INT128:
        out = np.empty(expected, dtype=object)
        out[:] = values
    else:
        out = np.array(values, dtype=decoded.element.dtype)
    return out.reshape(decoded.dims)


def format_scalar(scalar: ScalarType, value: object) -> str:
    if scalar == BOOL:
        return "1" if bool(value) else "0"
    if scalar.kind == "f":
        return str(scalar.host_type(value))
    return str(int(value))


def encode_argument(value: object) -> str:
    """Render a host value as a `--function_input` value.

    Scalars render as their literal text; arrays as `<dims>x<tag>=[...]`
    with one bracketed group per innermost row.
    """
    if isinstance(value, jax.Array):
        value = np.asarray(value)
    described = type_of(value)
    if isinstance(described, ScalarType):
        if isinstance(value, np.ndarray):
            value = value[()]
        return format_scalar(described, value)

    arr = np.asarray(value)
    dims = "x".join(str(dim) for dim in arr.shape)
    row_len = arr.shape[-1]
    flat = [format_scalar(described.element, item) for item in arr.reshape(-1)]
    rows = ("[" + " ".join(flat[start : start + row_len]) + "]" for start in range(0, len(flat), row_len))
    return f"{dims}x{described.element.tag}={''.join(rows)}"
