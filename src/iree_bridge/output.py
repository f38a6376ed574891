"""Parser for the `result[i]: ...` stream printed by `iree-run-module`."""

from __future__ import annotations

import re

from .codec import decode_value
from .dtypes import INT8, ScalarType
from .errors import MalformedOutputError

BUFFER_VIEW_MARKER = "hal.buffer_view"

_RESULT_LINE = re.compile(r"result\[([0-9]+)\]:\s*(.*)")
_TYPED_VALUE = re.compile(r"([0-9A-Za-z]+)=(.*)")


def _decode_typed(text: str, *, i8_as: ScalarType):
    m = _TYPED_VALUE.fullmatch(text.strip())
    if m is None:
        return None
    tag, value = m.groups()
    return (decode_value(tag, value, i8_as=i8_as),)


def parse_results(text: str, *, i8_as: ScalarType = INT8) -> list[object]:
    """Decode every reported result, in report order.

    A `hal.buffer_view` record spans two lines: the marker, then a
    `<tag>=<value>` line. Lines outside result records are ignored.
    """
    outputs: list[object] = []
    lines = text.splitlines()
    pos = 0
    while pos < len(lines):
        line = lines[pos].strip()
        pos += 1
        m = _RESULT_LINE.match(line)
        if m is None:
            continue
        index, rest = m.groups()
        rest = rest.strip()
        if rest == BUFFER_VIEW_MARKER:
            if pos >= len(lines):
                raise MalformedOutputError(f"result[{index}] buffer view has no value line")
            decoded = _decode_typed(lines[pos], i8_as=i8_as)
            if decoded is None:
                raise MalformedOutputError(f"result[{index}] buffer view is followed by {lines[pos].strip()!r}")
            pos += 1
        else:
            decoded = _decode_typed(rest, i8_as=i8_as)
            if decoded is None:
                raise MalformedOutputError(f"result[{index}] has unexpected payload {rest!r}")
        outputs.append(decoded[0])
    return outputs
