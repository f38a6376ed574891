"""Compile an MLIR file, call one entry point, and print its decoded results."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys

from iree_bridge import ScalarType, compile_and_run, decode_value, encode_argument, encode_type, type_of
from iree_bridge.errors import IREEBridgeError


def _parse_input(raw: str):
    tag, sep, value = raw.partition("=")
    if not sep:
        raise argparse.ArgumentTypeError(f"input must look like <tag>=<value>, got {raw!r}")
    try:
        return decode_value(tag, value)
    except IREEBridgeError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _render(value: object) -> str:
    described = type_of(value)
    if isinstance(described, ScalarType):
        return f"{encode_type(described)}={encode_argument(value)}"
    return encode_argument(value)


def _jsonable(value: object) -> object:
    if hasattr(value, "tolist"):
        return value.tolist()
    return int(value) if isinstance(value, int) else value


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("source", type=Path, help="MLIR input file (.mlir)")
    parser.add_argument("entry", help="entry function name")
    parser.add_argument(
        "--input",
        dest="inputs",
        action="append",
        default=[],
        type=_parse_input,
        help="function input as <tag>=<value>, e.g. f32=1.5 or 4xf32=[1 2 3 4]; repeatable",
    )
    parser.add_argument("--json-out", default=None, help="where to write machine-readable results")
    parser.add_argument("-v", "--verbose", action="store_true", help="log toolchain commands")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    try:
        results = compile_and_run(args.source, args.entry, *args.inputs)
    except IREEBridgeError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    print(f"{args.source.name}::{args.entry}")
    print("-" * (len(args.source.name) + len(args.entry) + 2))
    for idx, value in enumerate(results):
        print(f"result[{idx}]: {_render(value)}")

    if args.json_out:
        path = Path(args.json_out)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "source": str(args.source),
            "entry": args.entry,
            "inputs": [encode_argument(value) for value in args.inputs],
            "results": [_jsonable(value) for value in results],
        }
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
