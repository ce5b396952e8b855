"""Allocation main loop — fetch → allocate → report.

Usage:
    python -m flipalloc --capital 50000000
    python -m flipalloc --capital 50m --input signals.json --json
    python -m flipalloc --capital 50m --watch --interval 300
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import math
import signal

from flipalloc.allocation.orchestrator import AllocationOrchestrator, CapitalValidationError
from flipalloc.config import AllocationConfig, ConfigError
from flipalloc.feeds.source import (
    FileMarketSource,
    MarketDataError,
    MarketDataSource,
    WikiMarketSource,
)
from flipalloc.models.opportunity import OpportunityValidationError
from flipalloc.models.plan import AllocationPlan
from flipalloc.monitoring.report import format_plan_report

logger = logging.getLogger(__name__)

MIN_INTERVAL = 10  # seconds

BANNER = r"""
╔══════════════════════════════════════════════╗
║   flipalloc — GE Capital Allocation Engine    ║
║   Instant Flips · Patient Offers              ║
╚══════════════════════════════════════════════╝
"""

_SUFFIXES = {"k": 1_000, "m": 1_000_000, "b": 1_000_000_000}


def parse_gp(text: str) -> float:
    """'50m' → 50_000_000, '2.5k' → 2_500, '1000' → 1000."""
    raw = text.strip().lower().replace(",", "").replace("_", "")
    multiplier = 1
    if raw and raw[-1] in _SUFFIXES:
        multiplier = _SUFFIXES[raw[-1]]
        raw = raw[:-1]
    try:
        amount = float(raw) * multiplier
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid gp amount: {text!r}") from None
    if not math.isfinite(amount):
        raise argparse.ArgumentTypeError(f"invalid gp amount: {text!r}")
    return amount


# ---------------------------------------------------------------------------
# Core functions
# ---------------------------------------------------------------------------


async def run_cycle(
    orchestrator: AllocationOrchestrator,
    source: MarketDataSource,
    capital: float,
) -> AllocationPlan:
    """단일 사이클: snapshot → allocate → return plan."""
    snapshot = await source.fetch_snapshot()
    logger.info(
        "Snapshot: %d opportunities, conditions=%s",
        len(snapshot.opportunities), snapshot.conditions,
    )
    return orchestrator.allocate_capital(
        capital, snapshot.opportunities, snapshot.conditions,
    )


def render(plan: AllocationPlan, as_json: bool = False, limit: int = 10) -> str:
    if as_json:
        return json.dumps(plan.to_dict(), indent=2)
    return format_plan_report(plan, limit=limit)


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """커맨드라인 인자 파싱."""
    parser = argparse.ArgumentParser(
        prog="flipalloc",
        description="Grand Exchange capital allocation engine",
    )
    parser.add_argument(
        "--capital", type=parse_gp, required=True,
        help="Capital to allocate in gp (suffixes k/m/b allowed)",
    )
    parser.add_argument(
        "--input", type=str, default=None,
        help="JSON file with opportunities and marketConditions (default: live wiki prices)",
    )
    parser.add_argument(
        "--json", action="store_true", default=False,
        help="Print the plan as JSON",
    )
    parser.add_argument(
        "--watch", action="store_true", default=False,
        help="Re-run the allocation every --interval seconds",
    )
    parser.add_argument(
        "--interval", type=int, default=300,
        help=f"Watch interval in seconds (default: 300, min: {MIN_INTERVAL})",
    )
    parser.add_argument(
        "--limit", type=int, default=10,
        help="Trades shown per strategy (default: 10)",
    )
    parser.add_argument(
        "--min-volume", type=float, default=0,
        help="Skip items trading less than this per day (live source only)",
    )
    return parser.parse_args(argv)


def build_source(args: argparse.Namespace) -> MarketDataSource:
    if args.input:
        return FileMarketSource(args.input)
    return WikiMarketSource(min_volume=args.min_volume)


# ---------------------------------------------------------------------------
# Main loop
# ---------------------------------------------------------------------------


async def watch_loop(
    orchestrator: AllocationOrchestrator,
    source: MarketDataSource,
    capital: float,
    interval: int,
    as_json: bool = False,
    limit: int = 10,
) -> None:
    """주기적 할당 루프. SIGINT/SIGTERM으로 종료."""
    print(BANNER)
    print(f"Capital: {capital:,.0f} gp | Interval: {interval}s")
    print("-" * 60)

    stop_event = asyncio.Event()

    def _handle_signal():
        print("\n⚡ Shutting down gracefully...")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _handle_signal)
        except NotImplementedError:
            pass  # Windows

    cycle = 0
    while not stop_event.is_set():
        cycle += 1
        logger.info("=== Cycle %d ===", cycle)
        try:
            plan = await run_cycle(orchestrator, source, capital)
            print(render(plan, as_json=as_json, limit=limit))
        except Exception:
            logger.exception("Error in cycle %d", cycle)

        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval)
        except asyncio.TimeoutError:
            pass  # next cycle

    print("Goodbye!")


def cli_main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    args = parse_args(argv)
    try:
        config = AllocationConfig.from_env()
    except ConfigError as exc:
        raise SystemExit(f"Invalid configuration: {exc}") from exc
    orchestrator = AllocationOrchestrator(config=config)
    source = build_source(args)

    if args.watch:
        asyncio.run(watch_loop(
            orchestrator,
            source,
            args.capital,
            interval=max(args.interval, MIN_INTERVAL),
            as_json=args.json,
            limit=args.limit,
        ))
        return

    try:
        plan = asyncio.run(run_cycle(orchestrator, source, args.capital))
    except (MarketDataError, OpportunityValidationError, CapitalValidationError) as exc:
        raise SystemExit(f"Cannot allocate: {exc}") from exc
    print(render(plan, as_json=args.json, limit=args.limit))


if __name__ == "__main__":
    cli_main()
