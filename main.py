"""
SF pool schedules pipeline.

    python main.py discover    find the schedule PDF for every pool
    python main.py fetch       download new or changed PDFs
    python main.py process     extract, reconcile, write all_schedules.json + changelog
    python main.py build       all three, then notify
    python main.py notify {update,no-changes,error,alerts} [message]
    python main.py alerts [--notify]
    python main.py analyze

Environment flags: FORCE_EXTRACT=1, FORCE_DOWNLOAD=1, ALLOW_LARGE_CHANGES=1,
FAIL_ON_SEVERITY=major,wholesale.
"""

import argparse
import logging
import sys
import traceback

import constants
from aggregate import load_static_metadata
from analyze_program_names import run_analysis
from changelog import has_changes, load_latest_changelog
from download_pdfs import run_fetch
from errors import DiscoveryError, PipelineError
from notify import notify_error, notify_new_alerts, notify_no_changes, notify_schedule_update
from process_schedules import ScheduleProcessor
from schedule_cache import load_json
from scrape_alerts import run_alerts
from scrape_pool_info import run_discovery

EXIT_DISCOVERY_FAILED = 1
EXIT_LARGE_CHANGE = 2


def page_overrides():
    """Facility page URL -> pool id, from the curated pools.json."""
    return {entry["pageUrl"]: pool_id
            for pool_id, entry in load_static_metadata().items() if entry.get("pageUrl")}


def severity_exit_code(entry, fail_on=None, allow_large_changes=None):
    fail_on = constants.FAIL_ON_SEVERITY if fail_on is None else fail_on
    if allow_large_changes is None:
        allow_large_changes = constants.ALLOW_LARGE_CHANGES
    if allow_large_changes:
        return 0
    if entry["changeSeverity"] in fail_on:
        print(f"\n❌ Change severity is {entry['changeSeverity']}; set ALLOW_LARGE_CHANGES=1 to accept it")
        return EXIT_LARGE_CHANGE
    return 0


def cmd_discover(args):
    try:
        run_discovery(page_overrides=page_overrides())
    except DiscoveryError as e:
        print(f"\n❌ Discovery failed: {e}")
        return EXIT_DISCOVERY_FAILED
    return 0


def cmd_fetch(args):
    run_fetch()
    return 0


def cmd_process(args):
    result = ScheduleProcessor().run()
    return severity_exit_code(result.changelog)


def cmd_build(args):
    try:
        run_discovery(page_overrides=page_overrides())
    except DiscoveryError as e:
        print(f"\n❌ Discovery failed: {e}")
        notify_error("\n".join([str(e)] + e.errors))
        return EXIT_DISCOVERY_FAILED

    run_fetch()
    result = ScheduleProcessor().run()

    if has_changes(result.changelog):
        notify_schedule_update(result.changelog)
    else:
        notify_no_changes()
    return severity_exit_code(result.changelog)


def cmd_notify(args):
    if args.type == "update":
        ok = notify_schedule_update(load_latest_changelog())
    elif args.type == "no-changes":
        ok = notify_no_changes()
    elif args.type == "error":
        ok = notify_error(" ".join(args.message) or "An error occurred during schedule update.")
    else:
        alerts = load_json(constants.ALERTS_FILE, None)
        if not alerts:
            print("No alerts file found")
            return 0
        ok = notify_new_alerts(alerts["siteWideAlerts"], alerts["poolAlerts"])
    return 0 if ok else 1


def cmd_alerts(args):
    run_alerts(notify=args.notify)
    return 0


def cmd_analyze(args):
    run_analysis()
    return 0


def build_parser():
    parser = argparse.ArgumentParser(description="Aggregate SF pool schedule PDFs into all_schedules.json")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("discover", help="Find each pool's schedule PDF").set_defaults(func=cmd_discover)
    subparsers.add_parser("fetch", help="Download new or changed PDFs").set_defaults(func=cmd_fetch)
    subparsers.add_parser("process", help="Extract and write all_schedules.json").set_defaults(func=cmd_process)
    subparsers.add_parser("build", help="discover + fetch + process, then notify").set_defaults(func=cmd_build)

    notify_parser = subparsers.add_parser("notify", help="Send a Pushover notification")
    notify_parser.add_argument("type", choices=["update", "no-changes", "error", "alerts"])
    notify_parser.add_argument("message", nargs="*")
    notify_parser.set_defaults(func=cmd_notify)

    alerts_parser = subparsers.add_parser("alerts", help="Scrape pool alerts")
    alerts_parser.add_argument("--notify", action="store_true", help="Notify about new alerts")
    alerts_parser.set_defaults(func=cmd_alerts)

    subparsers.add_parser("analyze", help="Report mapped and unmapped program names").set_defaults(func=cmd_analyze)
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(levelname)s: %(message)s',
    )
    try:
        return args.func(args)
    except PipelineError as e:
        print(f"Error: {e}")
        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
