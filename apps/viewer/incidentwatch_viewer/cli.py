"""Console viewer: connect to the live feed and print a board summary."""

from __future__ import annotations

import argparse
import asyncio
import logging
import time

from websockets.exceptions import WebSocketException

from incidentwatch.constants import DEFAULT_READING_INTERVAL_MS

from .buckets import BUCKETS, group_by_bucket
from .client import IncidentViewerClient
from .state import ViewerState

LOGGER = logging.getLogger(__name__)


def summarize(state: ViewerState) -> str:
    grouped = group_by_bucket(state.incidents)
    columns = " ".join(f"{bucket}={len(grouped[bucket])}" for bucket in BUCKETS)
    line = f"[{state.connection_status}] {columns} interval={state.reading_interval_ms}ms"
    if state.last_error:
        line += f" warning={state.last_error!r}"
    return line


async def run(
    uri: str,
    interval_ms: int,
    duration_s: float | None,
    report_every_s: float,
) -> None:
    last_report_ts = 0.0
    last_line = ""

    def on_change(state: ViewerState) -> None:
        nonlocal last_report_ts, last_line
        line = summarize(state)
        now = time.monotonic()
        if line != last_line and (now - last_report_ts) >= max(0.0, report_every_s):
            last_report_ts = now
            last_line = line
            print(line)

    client = IncidentViewerClient(uri, reading_interval_ms=interval_ms, on_change=on_change)
    deadline = None if duration_s is None else time.monotonic() + duration_s
    attempt = 0
    while deadline is None or time.monotonic() < deadline:
        attempt += 1
        remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
        try:
            await asyncio.wait_for(client.run(), timeout=remaining)
        except TimeoutError:
            break
        except (OSError, WebSocketException) as exc:
            LOGGER.warning("Connect attempt %d to %s failed: %s", attempt, uri, exc)
        await asyncio.sleep(1.0)
    print(summarize(client.state))


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Console viewer for IncidentWatch")
    parser.add_argument("--uri", default="ws://127.0.0.1:8080/ws")
    parser.add_argument(
        "--interval-ms",
        type=int,
        default=DEFAULT_READING_INTERVAL_MS,
        help="Reading interval to propose on connect",
    )
    parser.add_argument(
        "--duration", type=float, default=None, help="Stop after this many seconds"
    )
    parser.add_argument("--report-every", type=float, default=0.0)
    parser.add_argument("--debug", action="store_true")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        asyncio.run(run(args.uri, args.interval_ms, args.duration, args.report_every))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
