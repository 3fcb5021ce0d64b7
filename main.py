# main.py
# Entry point of the football news pipeline
# =========================================

"""
Coordinates one collection run end to end:

    registry -> fetch (concurrent) -> normalize -> clean/tag -> trust
    -> optional category filter -> dedup -> persist

and exposes the read path (personalized ranking) and the scheduler on the
same object, so the CLI, the HTTP API and the scheduled jobs all share one
set of components.
"""

import argparse
import sys
import time
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from config import (
    ALL_SOURCES,
    COLLECTION_CONFIG,
    ENVIRONMENT,
    SCHEDULER_CONFIG,
    TRUST_CONFIG,
    get_active_sources,
    validate_config,
    validate_sources,
)
from config.version import __version__
from futnews.config_schema import ARTICLE_CATEGORIES
from src import (
    CollectionScheduler,
    FeedFetcher,
    PersonalizedRanker,
    RetentionSweeper,
    RunSummary,
    TrustScorer,
    ViewerPreferences,
    deduplicate,
    get_database_manager,
    setup_logging,
    tag_article,
)
from src.utils.datetime_utils import utc_now
from src.utils.observability import get_observability

COLLECTION_JOB_KEY = "collection"
RETENTION_JOB_KEY = "retention"


class FootballNewsSystem:
    """Owns the pipeline components and runs collection cycles."""

    def __init__(self, db_manager=None, fetcher: Optional[FeedFetcher] = None):
        self.system_id = str(uuid.uuid4())[:8]
        self.start_time = utc_now()

        self.db_manager = db_manager
        self.fetcher = fetcher
        self.trust_scorer: Optional[TrustScorer] = None
        self.retention: Optional[RetentionSweeper] = None
        self.ranker: Optional[PersonalizedRanker] = None
        self.scheduler: Optional[CollectionScheduler] = None
        self.observability = get_observability()
        self.logger = None
        self.system_logger = None

        self.is_initialized = False
        self.current_session: Optional[str] = None

    def initialize(self) -> bool:
        """
        Validate configuration and wire the components.

        Returns:
            True when the system is ready, False when a step failed (the
            failure is logged with context).
        """
        trace_id = str(uuid.uuid4())
        start = time.perf_counter()
        try:
            self.logger = setup_logging()
            self.system_logger = self.logger.create_module_logger("system")
            self.system_logger.info(
                {
                    "event": "system.initialize.start",
                    "trace_id": trace_id,
                    "source_id": "system",
                    "details": {"system_id": self.system_id},
                }
            )

            validate_config()
            source_count = validate_sources()

            self.db_manager = self.db_manager or get_database_manager()
            self.db_manager.initialize_sources(ALL_SOURCES, TRUST_CONFIG["tier_base_scores"])
            if not self.db_manager.ping():
                raise RuntimeError("database is not reachable")

            self.fetcher = self.fetcher or FeedFetcher(logger_factory=self.logger)
            self.trust_scorer = TrustScorer()
            self.retention = RetentionSweeper(self.db_manager)
            self.ranker = PersonalizedRanker(self.db_manager)
            self.observability.initialize(environment=ENVIRONMENT)
            self.is_initialized = True

            self.logger.log_system_startup(
                version=__version__,
                config_summary={
                    "sources_configured": source_count,
                    "database_type": self.db_manager.config["type"],
                    "collection_interval_minutes": SCHEDULER_CONFIG[
                        "collection_interval_minutes"
                    ],
                    "max_concurrent_requests": COLLECTION_CONFIG["max_concurrent_requests"],
                },
            )
            self.system_logger.info(
                {
                    "event": "system.initialize.completed",
                    "trace_id": trace_id,
                    "source_id": "system",
                    "latency": time.perf_counter() - start,
                }
            )
            return True
        except Exception as e:
            if self.logger:
                self.logger.log_error_with_context(
                    e, {"system_id": self.system_id, "phase": "initialize", "trace_id": trace_id}
                )
            return False

    # =====================================
    # WRITE PATH
    # =====================================

    def run_collection_cycle(
        self,
        source_ids: Optional[List[str]] = None,
        category: Optional[str] = None,
        trigger: str = "manual",
        dry_run: bool = False,
        trace_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Run one collection and return its summary.

        Args:
            source_ids: restrict the run to these registry ids
            category: keep only articles tagged with this category
            trigger: ``manual``, ``scheduled`` or ``api``; stored in the run log
            dry_run: fetch, tag and dedup without writing anything

        Returns:
            ``fetched``, ``unique_after_dedup``, ``saved``,
            ``sources_succeeded``, ``sources_failed`` and ``duration_ms``.

        Raises:
            RuntimeError: the system was not initialized.
            ValueError: ``category`` is not a known category.
            sqlalchemy.exc.SQLAlchemyError: storage failed; rows already
                written by this run stay.
        """
        if not self.is_initialized:
            raise RuntimeError("System not initialized. Call initialize() first.")
        if category is not None and category not in ARTICLE_CATEGORIES:
            raise ValueError(f"Unknown category '{category}'")

        trace_id = trace_id or str(uuid.uuid4())
        started_at = utc_now()
        now = now or started_at
        session_id = f"{self.system_id}-{started_at.strftime('%Y%m%d-%H%M%S')}"
        self.current_session = session_id
        session_logger = self.logger.create_module_logger(f"session.{session_id}")
        cycle_start = time.perf_counter()

        session_logger.info(
            {
                "event": "pipeline.run.start",
                "trace_id": trace_id,
                "session_id": session_id,
                "source_id": "system",
                "details": {
                    "trigger": trigger,
                    "dry_run": dry_run,
                    "sources": source_ids or "all",
                    "category": category or "all",
                },
            }
        )

        try:
            obs = self.observability
            deleted_expired = 0
            if COLLECTION_CONFIG.get("sweep_before_collect") and not dry_run:
                with obs.instrument_stage("retention"):
                    deleted_expired = self.retention.sweep(now)

            sources = get_active_sources(source_ids)
            with obs.instrument_stage("fetch", sources=len(sources)):
                fetch_result = self.fetcher.fetch_all(
                    sources, now=now, session_id=session_id, trace_id=trace_id
                )
            raw_articles = fetch_result["articles"]
            source_results = fetch_result["source_results"]

            with obs.instrument_stage("tag", articles=len(raw_articles)):
                tagged = [
                    self._build_candidate(raw, sources[raw["source_id"]], now)
                    for raw in raw_articles
                ]
                if category:
                    tagged = [article for article in tagged if article["category"] == category]

            with obs.instrument_stage("dedup", articles=len(tagged)):
                unique = deduplicate(tagged, now=now)
            largest = max((article["duplicate_count"] + 1 for article in unique), default=0)
            self.logger.log_dedup_summary(len(tagged), len(unique), largest)
            obs.record_dedup_result(len(tagged), len(unique))

            saved = 0
            if not dry_run:
                with obs.instrument_stage("persist", articles=len(unique)):
                    save_result = self.db_manager.save_articles(unique)
                saved = save_result["saved"]
                for source_id, stats in source_results.items():
                    stats["articles_saved"] = save_result["saved_by_source"].get(source_id, 0)
                    self.db_manager.update_source_stats(source_id, stats)

            for source_id, stats in source_results.items():
                self.logger.log_source_result(stats)
                obs.record_ingestion_result(source_id, stats)

            summary = RunSummary(
                fetched=len(raw_articles),
                unique_after_dedup=len(unique),
                saved=saved,
                sources_succeeded=fetch_result["stats"]["sources_succeeded"],
                sources_failed=fetch_result["stats"]["sources_failed"],
                duration_ms=int((time.perf_counter() - cycle_start) * 1000),
            ).model_dump()
            obs.record_run(trigger, summary["duration_ms"] / 1000)

            if not dry_run:
                errors = [
                    f"{source_id}: {stats['error_message']}"
                    for source_id, stats in source_results.items()
                    if not stats["success"]
                ]
                self.db_manager.record_collection_log(
                    summary, started_at, trigger=trigger, deleted_expired=deleted_expired, errors=errors
                )

            self.logger.log_run_summary(summary)
            session_logger.info(
                {
                    "event": "pipeline.run.complete",
                    "trace_id": trace_id,
                    "session_id": session_id,
                    "source_id": "system",
                    "latency": time.perf_counter() - cycle_start,
                    "details": summary,
                }
            )
            return summary

        except Exception as e:
            session_logger.error(
                {
                    "event": "pipeline.run.error",
                    "trace_id": trace_id,
                    "session_id": session_id,
                    "source_id": "system",
                    "latency": time.perf_counter() - cycle_start,
                    "details": {"error": str(e)},
                }
            )
            self.logger.log_error_with_context(
                e, {"session_id": session_id, "system_id": self.system_id, "trace_id": trace_id}
            )
            raise

    def _build_candidate(
        self, raw: Dict[str, Any], source: Dict[str, Any], now: datetime
    ) -> Dict[str, Any]:
        article = tag_article(raw)
        article["source_name"] = source["name"]
        article["source_tier"] = source["tier"]
        article["trust_score"] = self.trust_scorer.score(
            source,
            f"{article['title']} {article['summary']}",
            published_at=article["published_at"],
            article_url=article["url"] or "",
            now=now,
        )
        return article

    def run_retention_sweep(self, now: Optional[datetime] = None) -> int:
        if not self.is_initialized:
            raise RuntimeError("System not initialized. Call initialize() first.")
        return self.retention.sweep(now)

    # =====================================
    # READ PATH
    # =====================================

    def list_articles(
        self,
        filters: Optional[Dict[str, Any]] = None,
        prefs: Optional[ViewerPreferences] = None,
        pagination: Optional[Dict[str, Any]] = None,
        language: Optional[str] = None,
    ) -> Dict[str, Any]:
        if not self.is_initialized:
            raise RuntimeError("System not initialized. Call initialize() first.")
        return self.ranker.list_articles(filters, prefs, pagination, language)

    def get_system_statistics(self) -> Dict[str, Any]:
        if not self.is_initialized:
            raise RuntimeError("System not initialized. Call initialize() first.")
        return {
            "system_info": {
                "system_id": self.system_id,
                "version": __version__,
                "start_time": self.start_time.isoformat(),
                "uptime_seconds": (utc_now() - self.start_time).total_seconds(),
            },
            "database_health": self.db_manager.get_health_status(),
            "recent_runs": self.db_manager.get_recent_collection_logs(5),
            "scheduled_jobs": self.scheduler.active_keys() if self.scheduler else [],
        }

    # =====================================
    # SCHEDULING
    # =====================================

    def start_scheduler(self) -> CollectionScheduler:
        """
        Start the collection, retention and per-category timers.

        Calling it again replaces the existing timers.
        """
        if not self.is_initialized:
            raise RuntimeError("System not initialized. Call initialize() first.")
        self.scheduler = self.scheduler or CollectionScheduler()
        self.scheduler.start(
            COLLECTION_JOB_KEY,
            SCHEDULER_CONFIG["collection_interval_minutes"] * 60,
            self.run_collection_cycle,
            trigger="scheduled",
        )
        self.scheduler.start(
            RETENTION_JOB_KEY,
            SCHEDULER_CONFIG["retention_interval_minutes"] * 60,
            self.run_retention_sweep,
        )
        for category, minutes in SCHEDULER_CONFIG.get("category_intervals", {}).items():
            self.scheduler.start(
                f"{COLLECTION_JOB_KEY}:{category}",
                minutes * 60,
                self.run_collection_cycle,
                category=category,
                trigger="scheduled",
            )
        return self.scheduler

    def stop_scheduler(self) -> None:
        if self.scheduler:
            self.scheduler.shutdown()
            self.scheduler = None


def create_system(db_manager=None, fetcher: Optional[FeedFetcher] = None) -> FootballNewsSystem:
    return FootballNewsSystem(db_manager=db_manager, fetcher=fetcher)


def create_api_app(system: Optional[FootballNewsSystem] = None):
    """FastAPI app bound to an initialized system (``uvicorn main:create_api_app --factory``)."""
    from src.serving import create_app

    system = system or create_system()
    if not system.is_initialized and not system.initialize():
        raise RuntimeError("System initialization failed")
    return create_app(
        system.db_manager, collect=system.run_collection_cycle, ranker=system.ranker
    )


def run_quick_collection(
    source_ids: Optional[List[str]] = None, dry_run: bool = False
) -> Dict[str, Any]:
    """One-shot convenience wrapper: initialize, collect, return the summary."""
    system = create_system()
    if not system.initialize():
        raise RuntimeError("System initialization failed")
    return system.run_collection_cycle(source_ids, dry_run=dry_run)


def main():
    parser = argparse.ArgumentParser(description="Football news pipeline")
    parser.add_argument("--sources", nargs="+", help="Registry ids to collect")
    parser.add_argument("--dry-run", action="store_true", help="Collect without saving")
    parser.add_argument("--stats", action="store_true", help="Show system statistics")
    args = parser.parse_args()

    try:
        system = create_system()
        if not system.initialize():
            print("❌ Initialization failed")
            sys.exit(1)

        if args.stats:
            stats = system.get_system_statistics()
            health = stats["database_health"]
            print("\n📊 SYSTEM STATISTICS:")
            print(f"  • System ID: {stats['system_info']['system_id']}")
            print(f"  • Total articles: {health['total_articles']}")
            print(f"  • Active sources: {health['active_sources']}")
            print(f"  • Last collection: {health['last_collection_at'] or 'never'}")
        else:
            summary = system.run_collection_cycle(args.sources, dry_run=args.dry_run)
            print("\n📈 RUN SUMMARY:")
            for key, value in summary.items():
                print(f"  • {key}: {value}")

    except KeyboardInterrupt:
        print("\n⚠️  Interrupted")
        sys.exit(1)
    except Exception as e:
        print(f"\n❌ Run failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
