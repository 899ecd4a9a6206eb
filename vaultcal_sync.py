#!/usr/bin/env python3
"""
vaultcal-sync - load every configured calendar and print its events.

This is the command line entry point. It builds the event cache from the
configuration, reads the vault, revalidates the remote calendars once and
prints the resulting index per calendar.
"""

import sys
import asyncio
import argparse
from pathlib import Path

from vaultcal.config import Config
from vaultcal.calendar_base import RevalidateStatus
from vaultcal.calendar_factory import default_factory
from vaultcal.event_cache import EventCache
from vaultcal.exceptions import VaultCalError
from vaultcal.network_worker import NetworkWorker
from vaultcal.timezone_utils import set_timezone
from vaultcal.vault import LocalVault


EXAMPLE_CONFIG = """
[General]
vault = "~/Notes"
timezone = "Europe/Berlin"
daily_note_folder = "Daily"

[[Calendar]]
type = "local"
directory = "Events"
color = "#4285f4"

[[Calendar]]
type = "dailynote"
heading = "Schedule"

[[Calendar]]
type = "ical"
url = "webcal://example.com/calendar.ics"
color = "#34a853"

[[Calendar]]
type = "caldav"
name = "Work"
url = "https://nextcloud.example.com/remote.php/dav/calendars/me/work/"
home_url = "https://nextcloud.example.com/remote.php/dav"
username = "me"
password_key = "nextcloud/password"
"""


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="vaultcal - aggregate vault notes, ICS feeds and CalDAV calendars"
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        help="Path to configuration file (default: auto-detect)"
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Refetch remote calendars even if they were fetched recently"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug output"
    )
    return parser.parse_args()


def describe(event) -> str:
    """One line summary of an EventRecord."""
    timing = event.timing
    if event.is_recurring:
        when = f"from {timing.start_recur}"
        if timing.end_recur:
            when += f" until {timing.end_recur}"
        when += f" ({timing.rrule})" if timing.rrule else ""
    else:
        when = str(timing.date)
        if timing.end_date:
            when += f" - {timing.end_date}"
    if event.all_day:
        when += " all day"
    elif event.start_time:
        when += f" {event.start_time:%H:%M}"
        if event.end_time:
            when += f"-{event.end_time:%H:%M}"
    return f"{event.title} [{when}]"


async def run(config: Config, force: bool, debug: bool) -> int:
    worker = NetworkWorker()
    try:
        cache = EventCache(
            default_factory(LocalVault(config.vault), worker, config),
            revalidate_interval=config.revalidate_interval,
        )
        cache.reset(config.calendars)
        await cache.populate()
        results = await cache.revalidate_remote_calendars(force=force)
    finally:
        worker.shutdown(wait=False)

    failed = 0
    for calendar_id, status in results.items():
        print(f"{calendar_id}: {status.value}", file=sys.stderr)
        if status in (RevalidateStatus.FAILED, RevalidateStatus.NOT_FOUND):
            failed += 1

    for calendar_id, entries in cache.get_all_events().items():
        calendar = cache.get_calendar(calendar_id)
        print(f"== {calendar.name} ({calendar.kind.value}, {len(entries)} events)")
        for entry in entries:
            line = f"  {describe(entry.event)}"
            if debug:
                line += f"  <{entry.event_id}>"
            print(line)
    return 1 if failed else 0


def main():
    """Main entry point."""
    args = parse_args()

    # Load configuration
    try:
        config = Config.load(args.config)
    except FileNotFoundError as e:
        print(f"Error: {e}")
        print("\nPlease create a configuration file at:")
        print(f"  - {Config.get_default_config_path()}")
        print("\nExample configuration:")
        print(EXAMPLE_CONFIG)
        sys.exit(1)
    except VaultCalError as e:
        print(f"Error loading configuration: {e}")
        sys.exit(1)

    if args.debug:
        print(f"Loaded configuration from: {args.config or Config.get_default_config_path()}")
        print(f"  Vault: {config.vault}")
        print(f"  Calendars: {len(config.calendars)}")

    set_timezone(config.timezone)
    sys.exit(asyncio.run(run(config, args.force, args.debug)))


if __name__ == "__main__":
    main()
