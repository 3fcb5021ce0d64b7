#!/usr/bin/env python3
# run_collector.py
# Command line trigger for the football news pipeline
# ===================================================

"""
Simple runner for collection, retention and the scheduler.

Usage:
    python run_collector.py                                  # collect from every active source
    python run_collector.py --dry-run                        # collect without saving
    python run_collector.py --sources bbc_sport,sky_sports   # specific sources
    python run_collector.py --category transfer              # keep transfer news only
    python run_collector.py --sweep                          # retention sweep only
    python run_collector.py --schedule                       # start timers and block
"""

import argparse
import os
import sys
import time
import uuid
from datetime import datetime
from pathlib import Path

project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from config.sources import ALL_SOURCES, SOURCE_TIERS, get_sources_by_tier  # noqa: E402

LOG_LEVEL_ENV = "FUTNEWS__LOGGING__LEVEL"


def print_banner():
    print("=" * 70)
    print("⚽ FOOTBALL NEWS PIPELINE")
    print("=" * 70)
    print(f"📅 Date: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"🎯 Configured sources: {len(ALL_SOURCES)}")
    print("=" * 70)


def print_sources_list():
    print("\n📚 AVAILABLE SOURCES:")
    print("-" * 50)
    for tier in SOURCE_TIERS:
        sources = list(get_sources_by_tier(tier).items())
        if not sources:
            continue
        print(f"\n🏷️  {tier.upper()}:")
        for source_id, config in sources:
            state = "" if config.get("active", True) else " (inactive)"
            print(f"  • {source_id:<20} - {config['name']:<30}{state}")


def parse_source_ids(raw):
    if not raw:
        return None
    ids = []
    for chunk in raw:
        ids.extend(part.strip() for part in chunk.split(",") if part.strip())
    return ids or None


def print_results_summary(summary, is_dry_run):
    print("\n📊 RUN SUMMARY:")
    print("-" * 40)
    print(f"⏱️  Duration: {summary['duration_ms'] / 1000:.1f} s")
    print(f"🌐 Sources: {summary['sources_succeeded']} ok, {summary['sources_failed']} failed")
    print(f"📰 Articles fetched: {summary['fetched']}")
    print(f"🧩 Unique after dedup: {summary['unique_after_dedup']}")
    if is_dry_run:
        print("🧪 (Dry run - nothing saved)")
    else:
        print(f"💾 Saved: {summary['saved']}")


def run_collection(system, args, run_logger):
    source_ids = parse_source_ids(args.sources)
    if source_ids:
        unknown = [sid for sid in source_ids if sid not in ALL_SOURCES]
        if unknown:
            print(f"⚠️  Unknown sources ignored: {', '.join(unknown)}")
        source_ids = [sid for sid in source_ids if sid in ALL_SOURCES]
        if not source_ids:
            print("❌ No valid sources selected")
            return False
        print(f"🎯 Collecting {len(source_ids)} sources: {', '.join(source_ids)}")
    else:
        print("🌐 Collecting every active source")

    if args.dry_run:
        print("🧪 DRY RUN - nothing will be saved")

    trace_id = str(uuid.uuid4())
    run_start = time.perf_counter()
    summary = system.run_collection_cycle(
        source_ids,
        category=args.category,
        trigger="manual",
        dry_run=args.dry_run,
        trace_id=trace_id,
    )
    if not args.quiet:
        print_results_summary(summary, args.dry_run)

    run_logger.info(
        {
            "event": "cli.collection.completed",
            "trace_id": trace_id,
            "source_id": "cli",
            "latency": time.perf_counter() - run_start,
            "details": summary,
        }
    )
    return True


def run_schedule(system):
    scheduler = system.start_scheduler()
    print(f"⏱️  Scheduler running: {', '.join(scheduler.active_keys())} (Ctrl+C to stop)")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        print("\n🛑 Stopping scheduler")
    finally:
        system.stop_scheduler()
    return True


def main():
    parser = argparse.ArgumentParser(
        description="Football news pipeline - collection trigger",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run_collector.py                                 # full collection
  python run_collector.py --dry-run                       # collect without saving
  python run_collector.py --sources bbc_sport sky_sports  # specific sources
  python run_collector.py --category injury               # one category only
  python run_collector.py --list-sources                  # show the registry
        """,
    )
    parser.add_argument(
        "--sources", nargs="+", help="Source ids to collect (space or comma separated)"
    )
    parser.add_argument(
        "--category",
        choices=["general", "transfer", "injury", "match", "analysis"],
        help="Keep only articles tagged with this category",
    )
    parser.add_argument("--dry-run", action="store_true", help="Collect without saving")
    parser.add_argument("--sweep", action="store_true", help="Run the retention sweep and exit")
    parser.add_argument(
        "--schedule", action="store_true", help="Start the interval scheduler and block"
    )
    parser.add_argument(
        "--list-sources", action="store_true", help="Show the source registry and exit"
    )
    parser.add_argument("--quiet", action="store_true", help="Less console output")
    parser.add_argument(
        "--log-level",
        choices=["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"],
        help="Override the configured log level",
    )
    args = parser.parse_args()

    if args.list_sources:
        print_sources_list()
        sys.exit(0)

    # Must be set before the configuration is first loaded.
    if args.log_level:
        os.environ[LOG_LEVEL_ENV] = args.log_level
    elif args.quiet:
        os.environ.setdefault(LOG_LEVEL_ENV, "WARNING")

    from main import create_system
    from src import setup_logging

    if not args.quiet:
        print_banner()

    try:
        system = create_system()
        if not system.initialize():
            print("❌ System initialization failed")
            sys.exit(1)
        run_logger = setup_logging().create_module_logger("cli.run")

        if args.sweep:
            deleted = system.run_retention_sweep()
            print(f"🧹 Retention removed {deleted} articles")
            success = True
        elif args.schedule:
            success = run_schedule(system)
        else:
            success = run_collection(system, args, run_logger)
    except KeyboardInterrupt:
        print("\n⚠️  Interrupted")
        success = False
    except Exception as e:
        print(f"\n❌ Run failed: {e}")
        success = False

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
