"""Export the JSON Schema for the WebSocket message contract to a file.

Usage:
    python -m incidentwatch.ws_schema_export [--out PATH]
    python -m incidentwatch.ws_schema_export --out PATH --check

Default output: apps/server/contracts/ws_schema.json.  ``--check`` compares
against an explicit ``--out`` file only.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path


def build_schema() -> dict:
    """Return both directions of the contract as one JSON Schema document."""
    from incidentwatch.constants import PROTOCOL_VERSION
    from incidentwatch.ws_models import CLIENT_MESSAGE_ADAPTER, SERVER_MESSAGE_ADAPTER

    return {
        "protocolVersion": PROTOCOL_VERSION,
        "clientMessage": CLIENT_MESSAGE_ADAPTER.json_schema(by_alias=True),
        "serverMessage": SERVER_MESSAGE_ADAPTER.json_schema(by_alias=True),
    }


def export_schema(out_path: Path | None = None) -> str:
    """Return the JSON Schema string and optionally write it to *out_path*."""
    text = json.dumps(build_schema(), indent=2, sort_keys=True) + "\n"
    if out_path is not None:
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(text)
    return text


def check_schema(out_path: Path) -> bool:
    return out_path.exists() and out_path.read_text() == export_schema()


def main(argv: list[str] | None = None) -> None:
    default_out = Path(__file__).resolve().parents[1] / "contracts" / "ws_schema.json"
    parser = argparse.ArgumentParser(description="Export WS message JSON Schema")
    parser.add_argument("--out", type=Path, default=None, help="Output file path")
    parser.add_argument("--check", action="store_true", help="Fail if committed schema differs")
    args = parser.parse_args(argv)
    if args.out is None:
        if args.check:
            parser.error("--check requires --out PATH")
        args.out = default_out

    if args.check:
        if not args.out.exists():
            print(f"FAIL: {args.out} does not exist. Run without --check first.", file=sys.stderr)
            raise SystemExit(1)
        if not check_schema(args.out):
            print(
                f"FAIL: {args.out} is out of date.\n"
                "Run 'python -m incidentwatch.ws_schema_export' and commit the result.",
                file=sys.stderr,
            )
            raise SystemExit(1)
        print(f"OK: {args.out} is up to date.")
    else:
        export_schema(args.out)
        print(f"Schema written to {args.out}")


if __name__ == "__main__":
    main()
