"""Command-line runner that polls the dashboard backend and logs each cycle."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .client import FlowSourceClient
from .config import DashboardConfig
from .controller import RefreshController
from .export import export_snapshot
from .listeners import FlowSource
from .sources import StaticFlowSource
from .utils import format_bytes
from .viewmodel import ViewModel

logger = logging.getLogger(__name__)


@dataclass
class RunStats:
    cycles_rendered: int = 0
    cycles_failed: int = 0
    files_written: List[Path] = field(default_factory=list)


class ConsoleRenderer:
    """Render listener that logs a summary line per cycle and exports CSVs."""

    def __init__(self, export_dir: Optional[Path] = None, prefix: str = "flowmap") -> None:
        self.export_dir = export_dir
        self.prefix = prefix
        self.stats = RunStats()
        self.settled = asyncio.Event()

    def on_rendered(self, view_model: ViewModel) -> None:
        self.stats.cycles_rendered += 1
        stats = view_model.stats
        logger.info(
            "Cycle %d: %d flows, %s, forwarded=%d dropped=%d, %d namespaces, %d nodes",
            view_model.sequence,
            stats.total_flows,
            format_bytes(stats.total_bytes),
            stats.forwarded_count,
            stats.dropped_count,
            stats.namespace_count,
            len(view_model.graph.nodes),
        )
        if self.export_dir is not None:
            written = export_snapshot(self.export_dir, self.prefix, view_model.records, view_model.matrix)
            for path in written:
                if path not in self.stats.files_written:
                    self.stats.files_written.append(path)
        self.settled.set()

    def on_error(self, message: str) -> None:
        self.stats.cycles_failed += 1
        logger.error("Failed to load network data: %s", message)
        self.settled.set()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Poll Cilium flow endpoints and summarize the network graph.",
    )
    parser.add_argument(
        "--base-url",
        help="Dashboard backend URL (default: $FLOWMAP_BASE_URL or http://localhost:8080).",
    )
    parser.add_argument(
        "--demo",
        action="store_true",
        help="Use the built-in demonstration data instead of the HTTP backend.",
    )
    parser.add_argument(
        "--namespace",
        help="Only show flows touching this namespace.",
    )
    parser.add_argument(
        "--interval",
        type=float,
        metavar="SECONDS",
        help="Refresh interval in seconds (default: 30).",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single refresh cycle and exit.",
    )
    parser.add_argument(
        "--cycles",
        type=int,
        metavar="N",
        help="Stop after N settled cycles (default: run until interrupted).",
    )
    parser.add_argument("--width", type=float, help="Layout canvas width (default: 800).")
    parser.add_argument("--height", type=float, help="Layout canvas height (default: 600).")
    parser.add_argument(
        "--timeout",
        type=float,
        metavar="SECONDS",
        help="HTTP request timeout in seconds (default: 10).",
    )
    parser.add_argument(
        "--export-dir",
        type=Path,
        help="Append flow and matrix CSV snapshots to this directory.",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="INFO",
        help="Log level for diagnostic output.",
    )
    return parser


async def run(config: DashboardConfig, source: FlowSource, renderer: ConsoleRenderer, *, once: bool, cycles: Optional[int]) -> RunStats:
    controller = RefreshController(source, renderer, config)

    if once:
        await controller.refresh()
        return renderer.stats

    controller.start()
    try:
        while cycles is None or renderer.stats.cycles_rendered + renderer.stats.cycles_failed < cycles:
            await renderer.settled.wait()
            renderer.settled.clear()
    finally:
        controller.stop()
        await controller.drain()
    return renderer.stats


async def _run_with_source(args: argparse.Namespace, config: DashboardConfig, renderer: ConsoleRenderer) -> RunStats:
    if args.demo:
        source = StaticFlowSource(export_endpoint=config.export_endpoint)
        return await run(config, source, renderer, once=args.once, cycles=args.cycles)

    async with FlowSourceClient(config) as client:
        return await run(config, client, renderer, once=args.once, cycles=args.cycles)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level))

    if args.cycles is not None and args.cycles < 1:
        parser.error("--cycles must be at least 1.")

    try:
        config = DashboardConfig.from_env().with_overrides(
            base_url=args.base_url,
            refresh_interval=args.interval,
            width=args.width,
            height=args.height,
            request_timeout=args.timeout,
            initial_namespace=args.namespace,
        )
        config.validate()
    except ValueError as exc:
        parser.error(str(exc))

    renderer = ConsoleRenderer(export_dir=args.export_dir)
    try:
        stats = asyncio.run(_run_with_source(args, config, renderer))
    except KeyboardInterrupt:  # pragma: no cover - interactive use
        logger.info("Interrupted")
        return 0

    for path in stats.files_written:
        logger.info("Wrote %s", path)

    if args.once and stats.cycles_failed:
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
