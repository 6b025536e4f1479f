#!/usr/bin/env python3
"""
Scraper management CLI - run sources and inspect their schedule and history.

Usage: python scraper_cli.py <command> [options]

Commands:
    run <type|all> [--force] [--clear-seed]
                    - Run a source now (news, events, businesses or all)
    status          - Show last run, next scheduled run and countdown per source
    logs [type]     - Show the most recent runs (3 per source)
    config <type> [--interval HOURS] [--enable|--disable]
                    - Show or change a source's schedule settings
    next            - Show the fixed daily/weekly schedule from now
"""

import asyncio
import logging
import os
import sys
from datetime import datetime
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import ValidationError

# Add project root to PYTHONPATH
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from ingest.config import load_settings
from ingest.models import SOURCE_TYPES, RunResult, utcnow
from ingest.scheduling import compute_next_scheduled_run, format_countdown
from ingest.service import IngestService


class Colors:
    """ANSI color codes for terminal output."""
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    RED = "\033[91m"
    BLUE = "\033[94m"
    CYAN = "\033[96m"
    WHITE = "\033[97m"
    BOLD = "\033[1m"
    END = "\033[0m"


def format_timestamp(dt: Optional[datetime]) -> str:
    """Format datetime for display."""
    if not dt:
        return "N/A"
    return dt.strftime("%Y-%m-%d %H:%M:%S UTC")


def format_duration(ms: int) -> str:
    """Format a duration in milliseconds to human readable."""
    seconds = ms / 1000
    if seconds < 60:
        return f"{seconds:.1f}s"
    return f"{seconds / 60:.1f}m"


def status_color(status: str) -> str:
    return {
        "success": Colors.GREEN,
        "idle": Colors.GREEN,
        "skipped": Colors.YELLOW,
        "running": Colors.CYAN,
        "disabled": Colors.YELLOW,
        "error": Colors.RED,
    }.get(status, Colors.WHITE)


def parse_types(arg: str) -> List[str]:
    if arg == "all":
        return list(SOURCE_TYPES)
    if arg not in SOURCE_TYPES:
        raise ValueError(f"Unknown type {arg!r}; expected one of: all, {', '.join(SOURCE_TYPES)}")
    return [arg]


def print_result(result: RunResult) -> None:
    color = status_color(result.status)
    print(f"{Colors.BOLD}{result.type:<11}{Colors.END} {color}{result.status}{Colors.END}  {result.message}")
    if result.cleared_seed is not None:
        print(f"            cleared {result.cleared_seed} seed records")
    for err in result.errors:
        print(f"            {Colors.RED}- {err}{Colors.END}")


async def cmd_run(service: IngestService, args: List[str]) -> None:
    if not args:
        raise ValueError("run needs a type: news, events, businesses or all")
    types = parse_types(args[0])
    force = "--force" in args
    clear_seed = "--clear-seed" in args
    if len(types) > 1 and not clear_seed:
        results = await service.run_all(force=force)
    else:
        results = [await service.run(t, force=force, clear_seed=clear_seed) for t in types]
    for result in results:
        print_result(result)


async def cmd_status(service: IngestService) -> None:
    print(f"{Colors.BOLD}📊 Source Status{Colors.END}")
    print("=" * 60)
    for type_ in SOURCE_TYPES:
        status = await service.status(type_)
        config = await service.configs.get(type_)
        print(f"{Colors.BOLD}{type_}{Colors.END} ({status_color(status.status)}{status.status}{Colors.END})")
        print(f"  Interval:       every {config.interval_hours:g}h")
        print(f"  Last run:       {format_timestamp(status.last_run)}")
        print(f"  Last success:   {format_timestamp(config.last_success)}")
        print(f"  Next scheduled: {format_timestamp(status.next_scheduled)}")
        print(f"  Countdown:      {Colors.CYAN}{status.countdown or 'N/A'}{Colors.END}")


async def cmd_logs(service: IngestService, args: List[str]) -> None:
    types = parse_types(args[0]) if args else list(SOURCE_TYPES)
    for type_ in types:
        print(f"{Colors.BOLD}📋 {type_}{Colors.END}")
        entries = await service.run_log.recent(type_)
        if not entries:
            print("  (no runs yet)")
        for entry in entries:
            color = status_color(entry.status)
            print(
                f"  {format_timestamp(entry.created_at)}  {color}{entry.status:<7}{Colors.END}"
                f" {format_duration(entry.duration):>6}  {entry.items_processed:>4} items  {entry.message}"
            )
            for err in entry.error_messages:
                print(f"      {Colors.RED}- {err}{Colors.END}")


async def cmd_config(service: IngestService, args: List[str]) -> None:
    if not args:
        raise ValueError("config needs a type: news, events or businesses")
    type_ = args[0]
    interval = None
    if "--interval" in args:
        idx = args.index("--interval")
        if idx + 1 >= len(args):
            raise ValueError("--interval needs a number of hours")
        interval = float(args[idx + 1])
    enabled = True if "--enable" in args else False if "--disable" in args else None

    if interval is None and enabled is None:
        config = await service.configs.get(type_)
    else:
        config = await service.configs.update(type_, interval_hours=interval, is_enabled=enabled)
        print(f"{Colors.GREEN}✅ Updated {type_}{Colors.END}")
    print(f"  Interval: every {config.interval_hours:g}h")
    print(f"  Enabled:  {config.is_enabled}")


def cmd_next() -> None:
    now = utcnow()
    print(f"{Colors.BOLD}⏰ Fixed schedule (from {format_timestamp(now)}){Colors.END}")
    for type_ in SOURCE_TYPES:
        target = compute_next_scheduled_run(type_, now, True)
        print(f"  {type_:<11} {format_timestamp(target)}  ({format_countdown(target, now)})")


async def main():
    """Main CLI entry point."""
    if len(sys.argv) < 2:
        print(__doc__)
        return

    command = sys.argv[1].lower()
    args = sys.argv[2:]

    if command == "next":
        cmd_next()
        return

    settings = load_settings()
    try:
        async with IngestService.from_settings(settings) as service:
            if command == "run":
                await cmd_run(service, args)
            elif command == "status":
                await cmd_status(service)
            elif command == "logs":
                await cmd_logs(service, args)
            elif command == "config":
                await cmd_config(service, args)
            else:
                print(f"{Colors.RED}Unknown command: {command}{Colors.END}")
                print(__doc__)
    except (ValueError, ValidationError) as e:
        print(f"{Colors.RED}Error: {e}{Colors.END}")
        sys.exit(2)
    except KeyboardInterrupt:
        print(f"\n{Colors.YELLOW}Interrupted{Colors.END}")


def cli():
    load_dotenv()
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s"
    )
    asyncio.run(main())


if __name__ == "__main__":
    cli()
