"""
Probe every roster domain over HTTP and HTTPS and report the results.

Examples:
    # One round, print the table, export results/latest.csv
    python -m statusboard

    # Keep reading from the cache every 15 seconds, refreshing in the background
    python -m statusboard --watch 15
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from .cache import CacheState, ResultCache
from .coordinator import Coordinator
from .display import format_timestamp, response_headers, snapshot_rows
from .errors import FatalProbeError, RosterError
from .outcomes import Snapshot
from .roster import load_roster
from .settings import ProbeConfig, load_probe_config
from .storage import save_snapshot

logger = logging.getLogger("statusboard")


def print_snapshot(snapshot: Snapshot, state: CacheState) -> None:
    print()
    print(f"Results from {format_timestamp(snapshot)} ({state.value})")
    print("-" * 72)
    for row in snapshot_rows(snapshot):
        print(f"{row['label']:>3}  {row['hostname']:<32} {row['http']:<24} {row['https']}")


async def watch(cache: ResultCache, interval_s: float, export: bool, config: ProbeConfig) -> None:
    last = None
    while True:
        snapshot, state = await cache.get()
        if snapshot is not last:
            print_snapshot(snapshot, state)
            logger.debug("Headers: %s", response_headers(snapshot, state, config.fresh_window_s))
            if export:
                save_snapshot(snapshot, config=config)
            last = snapshot
        await asyncio.sleep(interval_s)


async def run(args: argparse.Namespace) -> int:
    config = load_probe_config(args.config)
    roster = load_roster(args.roster, config=config)
    logger.info("Loaded %d domains", len(roster.domains))

    cache = ResultCache(Coordinator(roster, config).collect, config)

    # The first snapshot is taken before anything is served.
    snapshot, state = await cache.get()
    print_snapshot(snapshot, state)
    if not args.no_export:
        out_path = save_snapshot(snapshot, config=config)
        logger.info("Saved %s", out_path)

    if args.watch is None:
        return 0

    refresher = asyncio.create_task(cache.run_refresher())
    try:
        await asyncio.gather(refresher, watch(cache, args.watch, not args.no_export, config))
    finally:
        cache.close()
        refresher.cancel()
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="statusboard",
        description="Check HTTP and HTTPS behaviour of every roster domain",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML settings file (default: statusboard_config.yaml at the project root)",
    )
    parser.add_argument(
        "--roster",
        type=Path,
        default=None,
        help="Roster YAML file (default: roster_path from the settings)",
    )
    parser.add_argument(
        "--watch",
        type=float,
        metavar="SECONDS",
        default=None,
        help="Keep serving reads from the cache at this interval",
    )
    parser.add_argument(
        "--no-export",
        action="store_true",
        help="Do not write results/latest.csv",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Debug logging",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )

    try:
        return asyncio.run(run(args))
    except RosterError as e:
        logger.error("%s", e)
        return 2
    except FatalProbeError as e:
        # Exit non-zero so a supervisor restarts us.
        logger.critical("%s", e)
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
