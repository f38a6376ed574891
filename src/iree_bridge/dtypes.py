"""Host type descriptors for values crossing the IREE command-line boundary."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final, Literal, Union

import jax
import jax.numpy as jnp
import numpy as np

from .errors import UnsupportedTypeError


ScalarKind = Literal["f", "i", "b"]


class Int128(int):
    """Python int tagged as a 128-bit signed integer.

    numpy has no 128-bit integer dtype, so `i128` values travel as this
    subclass to keep their declared width visible to signature checks.
    """

    MIN: Final[int] = -(2**127)
    MAX: Final[int] = 2**127 - 1

    def __new__(cls, value: int = 0) -> "Int128":
        out = super().__new__(cls, value)
        if not cls.MIN <= out <= cls.MAX:
            raise OverflowError(f"{int(out)} does not fit in 128 bits")
        return out

    def __repr__(self) -> str:
        return f"Int128({int(self)})"


@dataclass(frozen=True)
class ScalarType:
    kind: ScalarKind
    bits: int

    @property
    def host_type(self) -> type:
        return _HOST_TYPES[self]

    @property
    def dtype(self) -> np.dtype | None:
        """numpy dtype for this scalar, or None for INT128."""
        if self == INT128:
            return None
        return np.dtype(self.host_type)

    @property
    def tag(self) -> str:
        if self.kind == "f":
            return f"f{self.bits}"
        return f"i{self.bits}"

    def __str__(self) -> str:
        return _NAMES[self]


@dataclass(frozen=True)
class ArrayType:
    """Dense row-major array; `None` dims only appear in declared signatures."""

    element: ScalarType
    dims: tuple[int | None, ...]

    def __post_init__(self) -> None:
        if not self.dims:
            raise ValueError("ArrayType needs at least one dimension")
        for dim in self.dims:
            if dim is not None and (not isinstance(dim, int) or dim <= 0):
                raise ValueError(f"Array dimensions must be positive integers, got {self.dims}")

    @property
    def rank(self) -> int:
        return len(self.dims)

    @property
    def is_concrete(self) -> bool:
        return all(dim is not None for dim in self.dims)

    def __str__(self) -> str:
        dims = "x".join("?" if dim is None else str(dim) for dim in self.dims)
        return f"{dims}x{self.element}"


TypeDescriptor = Union[ScalarType, ArrayType]

FLOAT16: Final = ScalarType("f", 16)
FLOAT32: Final = ScalarType("f", 32)
FLOAT64: Final = ScalarType("f", 64)
BOOL: Final = ScalarType("b", 8)
INT8: Final = ScalarType("i", 8)
INT16: Final = ScalarType("i", 16)
INT32: Final = ScalarType("i", 32)
INT64: Final = ScalarType("i", 64)
INT128: Final = ScalarType("i", 128)

SCALAR_TYPES: Final[tuple[ScalarType, ...]] = (
    FLOAT16,
    FLOAT32,
    FLOAT64,
    BOOL,
    INT8,
    INT16,
    INT32,
    INT64,
    INT128,
)

_HOST_TYPES: Final[dict[ScalarType, type]] = {
    FLOAT16: np.float16,
    FLOAT32: np.float32,
    FLOAT64: np.float64,
    BOOL: np.bool_,
    INT8: np.int8,
    INT16: np.int16,
    INT32: np.int32,
    INT64: np.int64,
    INT128: Int128,
}

_NAMES: Final[dict[ScalarType, str]] = {
    FLOAT16: "f16",
    FLOAT32: "f32",
    FLOAT64: "f64",
    BOOL: "bool",
    INT8: "i8",
    INT16: "i16",
    INT32: "i32",
    INT64: "i64",
    INT128: "i128",
}

_BY_DTYPE: Final[dict[np.dtype, ScalarType]] = {
    np.dtype(host): scalar for scalar, host in _HOST_TYPES.items() if scalar != INT128
}


def array_of(element: object, shape: tuple[int | None, ...] | None = None, *, ndim: int = 1) -> ArrayType:
    """Declare an array type; without `shape`, any extent of rank `ndim` matches."""
    elem = scalar_type(element)
    if shape is None:
        shape = (None,) * ndim
    return ArrayType(element=elem, dims=tuple(shape))


def scalar_type(host: object) -> ScalarType:
    """Normalize a host scalar type (numpy/jax type or dtype, builtin, Int128)."""
    if isinstance(host, ScalarType):
        return host
    if host is Int128:
        return INT128
    # bool is a subclass of int, test it first
    if host is bool:
        return BOOL
    if host is int:
        return INT64
    if host is float:
        return FLOAT64
    if host is None:
        raise UnsupportedTypeError("Cannot map host type None to an IREE type")
    try:
        dtype = jnp.dtype(host)
    except (TypeError, ValueError) as exc:
        raise UnsupportedTypeError(f"Cannot map host type {host!r} to an IREE type") from exc
    scalar = _BY_DTYPE.get(dtype)
    if scalar is None:
        raise UnsupportedTypeError(f"Cannot map host type {host!r} to an IREE type")
    return scalar


def as_descriptor(declared: object) -> TypeDescriptor:
    if isinstance(declared, ArrayType):
        return declared
    return scalar_type(declared)


_INT64_MIN: Final[int] = int(np.iinfo(np.int64).min)
_INT64_MAX: Final[int] = int(np.iinfo(np.int64).max)


def _is_int128_array(arr: np.ndarray) -> bool:
    return arr.dtype == object and arr.size > 0 and all(isinstance(item, Int128) for item in arr.flat)


def type_of(value: object) -> TypeDescriptor:
    """Runtime descriptor of a host value."""
    if isinstance(value, Int128):
        return INT128
    if isinstance(value, (bool, np.bool_)):
        return BOOL
    if isinstance(value, int):
        if not _INT64_MIN <= value <= _INT64_MAX:
            raise UnsupportedTypeError(f"{value} does not fit in i64; wrap it in Int128 for i128")
        return INT64
    if isinstance(value, float):
        return FLOAT64
    if isinstance(value, np.generic):
        return scalar_type(value.dtype)
    if isinstance(value, (np.ndarray, jax.Array)):
        if isinstance(value, np.ndarray) and _is_int128_array(value):
            element = INT128
        else:
            element = scalar_type(value.dtype)
        if value.ndim == 0:
            return element
        if value.size == 0:
            raise UnsupportedTypeError(f"Empty arrays have no IREE encoding (shape {tuple(value.shape)})")
        return ArrayType(element=element, dims=tuple(int(d) for d in value.shape))
    raise UnsupportedTypeError(f"Cannot map value of type {type(value).__name__} to an IREE type: {value!r}")


def types_match(declared: TypeDescriptor, actual: TypeDescriptor) -> bool:
    if isinstance(declared, ScalarType) or isinstance(actual, ScalarType):
        return declared == actual
    if declared.element != actual.element or declared.rank != actual.rank:
        return False
    return all(want is None or want == got for want, got in zip(declared.dims, actual.dims, strict=True))
