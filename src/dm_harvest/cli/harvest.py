import argparse
import sys
from datetime import date
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from dm_harvest.cli.display import display_harvest
from dm_harvest.environments.playwright_env import PlaywrightEnvironment
from dm_harvest.environments.snapshot_env import SnapshotEnvironment
from dm_harvest.harvest.collector import HarvestCollector
from dm_harvest.serialize.write_outputs import DEFAULT_CSV_PATH, DEFAULT_JSON_PATH, write_outputs
from dm_harvest.session.browser_session import browser_session, resolve_own_identity
from dm_harvest.types.errors import FatalSetupError
from dm_harvest.types.harvest_config import (
    DEFAULT_MONTHS_BACK,
    HarvestConfig,
    default_cutoff_date,
)
from dm_harvest.types.harvest_state import HarvestResult
from dm_harvest.types.session_config import SessionConfig
from dm_harvest.utils.logger import logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dm-harvest", description="Harvest your X direct-message conversations"
    )
    parser.add_argument(
        "--cutoff-date",
        type=date.fromisoformat,
        help="Stop at conversations last active before this date (YYYY-MM-DD)",
    )
    parser.add_argument(
        "--months-back",
        type=int,
        help=f"Cutoff this many months before today (default {DEFAULT_MONTHS_BACK})",
    )
    parser.add_argument("--max-items", type=int, help="Maximum number of conversations")
    parser.add_argument("--demo", action="store_true", help="Only process a handful of conversations")
    parser.add_argument("--max-scrolls", type=int, help="Maximum number of reveal attempts")
    parser.add_argument(
        "--no-progress-threshold", type=int, help="Stop after this many passes without new items"
    )
    parser.add_argument("--settle-ms", type=int, help="Pause after each scroll in milliseconds")
    parser.add_argument(
        "--settle-until-stable",
        action="store_true",
        help="Wait until the visible item count stops changing instead of a fixed pause",
    )
    parser.add_argument(
        "--summary-only", action="store_true", help="Skip opening conversations for messages"
    )
    parser.add_argument("--headless", action="store_true", help="Run the browser headless")
    parser.add_argument("--cdp-url", type=str, help="Connect to a running Chrome debug port")
    parser.add_argument("--storage-state", type=Path, help="Saved session file")
    parser.add_argument("--out-json", type=Path, default=Path(DEFAULT_JSON_PATH), help="JSON output")
    parser.add_argument("--out-csv", type=Path, default=Path(DEFAULT_CSV_PATH), help="CSV output")
    parser.add_argument("--replay", type=Path, help="Harvest saved HTML snapshots from a directory")
    parser.add_argument("--self", dest="self_handle", type=str, help="Your own handle")
    parser.add_argument("--debug", action="store_true", help="Write a JSONL debug log")
    return parser


def build_config(args: argparse.Namespace) -> HarvestConfig:
    cutoff = args.cutoff_date
    if cutoff is None and args.months_back is not None:
        cutoff = default_cutoff_date(args.months_back)

    config = HarvestConfig.from_env(
        cutoff_date=cutoff,
        item_count_cap=args.max_items,
        demo_mode=True if args.demo else None,
        max_scroll_iterations=args.max_scrolls,
        no_progress_threshold=args.no_progress_threshold,
        settle_interval_ms=args.settle_ms,
        settle_until_stable=True if args.settle_until_stable else None,
        full_history=False if args.summary_only else None,
        debug=True if args.debug else None,
    )
    if config.cutoff_date is None:
        config.cutoff_date = default_cutoff_date()
    return config


def build_session_config(args: argparse.Namespace) -> SessionConfig:
    values = {
        "headless": args.headless,
        "cdp_url": args.cdp_url,
        "storage_state_path": args.storage_state,
    }
    return SessionConfig(**{key: value for key, value in values.items() if value is not None})


def harvest_replay(config: HarvestConfig, directory: Path, self_handle: Optional[str]) -> HarvestResult:
    env = SnapshotEnvironment.from_directory(directory)
    return HarvestCollector(env, config, self_identity=self_handle).run()


def harvest_live(
    config: HarvestConfig, session_config: SessionConfig, self_handle: Optional[str]
) -> HarvestResult:
    with browser_session(session_config) as page:
        self_identity = self_handle or resolve_own_identity(page)
        if self_identity:
            logger.info(f"Logged in as {self_identity}")
        env = PlaywrightEnvironment(page, config)
        return HarvestCollector(env, config, self_identity=self_identity).run()


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = build_config(args)
    except ValidationError as e:
        logger.error(f"Invalid configuration: {e}")
        return 2

    logger.info(f"Harvesting conversations active since {config.cutoff_date}")
    if config.demo_mode:
        logger.info(f"Demo mode: processing at most {config.demo_limit} conversations")

    try:
        if args.replay:
            result = harvest_replay(config, args.replay, args.self_handle)
        else:
            result = harvest_live(config, build_session_config(args), args.self_handle)
    except FatalSetupError as e:
        logger.error(f"Harvest aborted: {e}")
        return 1

    write_outputs(result, args.out_json, args.out_csv, summary_only=not config.full_history)
    display_harvest(result)
    if config.debug and config.debug_file:
        logger.info(f"Debug log written to {config.debug_file}")
    log_path = logger.get_log_file_path()
    if log_path:
        logger.debug(f"Session log: {log_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
