# src/storage/database.py
# Persistence gateway for the football news pipeline
# ==================================================

"""
All SQL lives here. The rest of the system talks to ``DatabaseManager`` in
terms of plain dicts and the contracts in ``src.contracts``.

Writes are idempotent by URL (and guid): a second run over the same feeds
finds every key already stored and inserts nothing. When two runs race, the
unique index on ``articles.url`` rejects the loser's row and that rejection
is counted as a conflict, not an error.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Set, Tuple

from pydantic import ValidationError
from sqlalchemy import create_engine, func, or_, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from config.settings import DATABASE_CONFIG
from src.contracts import ArticleFilters, CanonicalArticleModel
from src.utils.datetime_utils import utc_now

from .models import (
    Article,
    ArticleView,
    CollectionLog,
    Source,
    ViewerPreference,
    create_all_tables,
)

logger = logging.getLogger(__name__)

IN_CLAUSE_CHUNK = 500


def _chunks(items: Sequence[Any], size: int = IN_CLAUSE_CHUNK) -> Iterator[Sequence[Any]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class DatabaseManager:
    """
    Storage collaborator used by the pipeline, the ranker and the API.

    ``database_config`` uses the keys of ``DATABASE_CONFIG``: ``type`` is
    ``sqlite`` (with ``path``) or ``postgresql`` (with host/port/user/...).
    """

    def __init__(self, database_config: Optional[Dict[str, Any]] = None):
        self.config = database_config or DATABASE_CONFIG
        self.engine = None
        self.SessionLocal = None
        self._setup_database()

    def _setup_database(self):
        try:
            if self.config["type"] == "sqlite":
                db_path = Path(self.config["path"])
                db_path.parent.mkdir(parents=True, exist_ok=True)
                self.engine = create_engine(
                    f"sqlite:///{db_path}",
                    echo=False,
                    connect_args={"check_same_thread": False, "timeout": 20},
                    pool_pre_ping=True,
                )
            elif self.config["type"] == "postgresql":
                database_url = (
                    f"postgresql://{self.config['user']}:{self.config['password']}"
                    f"@{self.config['host']}:{self.config['port']}/{self.config['name']}"
                )
                self.engine = create_engine(
                    database_url,
                    echo=False,
                    pool_size=self.config.get("pool_size", 5),
                    max_overflow=self.config.get("max_overflow", 10),
                    pool_timeout=self.config.get("pool_timeout", 30),
                    pool_recycle=self.config.get("pool_recycle", 1800),
                    pool_pre_ping=True,
                    connect_args={"connect_timeout": self.config.get("connect_timeout", 10)},
                )
            else:
                raise ValueError(f"Unsupported database type: {self.config['type']}")

            self.SessionLocal = sessionmaker(
                autocommit=False,
                autoflush=False,
                bind=self.engine,
                expire_on_commit=False,
            )
            create_all_tables(self.engine)
            logger.info(f"✅ Database ready: {self.config['type']}")

        except Exception as e:
            logger.error(f"❌ Database setup failed: {e}")
            raise

    @contextmanager
    def get_session(self) -> Iterator[Session]:
        """
        Transaction scope: commit on success, roll back and re-raise on error.

        Unique-constraint violations are re-raised without an error log; the
        caller decides whether they are expected.
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except IntegrityError:
            session.rollback()
            raise
        except Exception as e:
            session.rollback()
            logger.error(f"Database operation failed: {e}")
            raise
        finally:
            session.close()

    def ping(self) -> bool:
        """True when a trivial query succeeds; connection errors are logged, not raised."""
        try:
            with self.engine.connect() as connection:
                connection.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.warning(f"Database ping failed: {e}")
            return False
        return True

    # =====================================
    # ARTICLES
    # =====================================

    def find_existing_keys(
        self, urls: Iterable[str], guids: Iterable[str] = ()
    ) -> Tuple[Set[str], Set[str]]:
        """Stored URLs and guids among the given ones."""
        url_list = sorted({url for url in urls if url})
        guid_list = sorted({guid for guid in guids if guid})
        found_urls: Set[str] = set()
        found_guids: Set[str] = set()
        with self.get_session() as session:
            for chunk in _chunks(url_list):
                rows = session.query(Article.url).filter(Article.url.in_(chunk)).all()
                found_urls.update(row[0] for row in rows)
            for chunk in _chunks(guid_list):
                rows = session.query(Article.guid).filter(Article.guid.in_(chunk)).all()
                found_guids.update(row[0] for row in rows)
        return found_urls, found_guids

    def save_articles(self, articles: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Insert the articles whose URL and guid are not stored yet.

        Returns counters: ``saved``, ``skipped_existing``, ``conflicts``
        (rows rejected by the unique index during a concurrent run),
        ``invalid`` and ``saved_by_source``.
        """
        result: Dict[str, Any] = {
            "saved": 0,
            "skipped_existing": 0,
            "conflicts": 0,
            "invalid": 0,
            "saved_by_source": {},
        }
        if not articles:
            return result

        payloads: List[Dict[str, Any]] = []
        seen_urls: Set[str] = set()
        for article in articles:
            try:
                payload = CanonicalArticleModel.model_validate(article).model_dump_for_storage()
            except ValidationError as exc:
                result["invalid"] += 1
                logger.warning(f"Rejected article {article.get('url')!r}: {exc.error_count()} errors")
                continue
            if payload["url"] in seen_urls:
                result["skipped_existing"] += 1
                continue
            seen_urls.add(payload["url"])
            payloads.append(payload)

        existing_urls, existing_guids = self.find_existing_keys(
            [payload["url"] for payload in payloads],
            [payload["guid"] for payload in payloads if payload.get("guid")],
        )
        fresh = []
        for payload in payloads:
            if payload["url"] in existing_urls or (
                payload.get("guid") and payload["guid"] in existing_guids
            ):
                result["skipped_existing"] += 1
            else:
                fresh.append(payload)

        if not fresh:
            return result

        try:
            with self.get_session() as session:
                session.add_all(Article(**payload) for payload in fresh)
            inserted = fresh
        except IntegrityError:
            # Another run inserted some of these URLs between the check and
            # the commit; retry row by row so the rest still land.
            logger.info("Batch insert hit a unique constraint; retrying row by row")
            inserted = []
            for payload in fresh:
                try:
                    with self.get_session() as session:
                        session.add(Article(**payload))
                    inserted.append(payload)
                except IntegrityError:
                    result["conflicts"] += 1

        result["saved"] = len(inserted)
        for payload in inserted:
            by_source = result["saved_by_source"]
            by_source[payload["source_id"]] = by_source.get(payload["source_id"], 0) + 1
        logger.info(
            f"💾 Saved {result['saved']} articles "
            f"({result['skipped_existing']} already stored, {result['conflicts']} conflicts)"
        )
        return result

    def count_articles(self) -> int:
        with self.get_session() as session:
            return session.query(func.count(Article.id)).scalar() or 0

    def get_article(self, article_id: int) -> Optional[Dict[str, Any]]:
        with self.get_session() as session:
            article = session.get(Article, article_id)
            return article.to_dict() if article else None

    def get_article_by_url(self, url: str) -> Optional[Dict[str, Any]]:
        with self.get_session() as session:
            article = session.query(Article).filter_by(url=url).first()
            return article.to_dict() if article else None

    def query_candidates(
        self,
        filters: ArticleFilters,
        limit: int,
        blocked_sources: Iterable[str] = (),
    ) -> List[Dict[str, Any]]:
        """
        Most recent articles matching the hard filters, newest first.

        Team filtering runs over the JSON column in Python, so rows are
        streamed until ``limit`` matches are collected.
        """
        excluded = sorted(set(filters.excluded_sources) | set(blocked_sources))
        with self.get_session() as session:
            query = session.query(Article)
            if filters.category:
                query = query.filter(Article.category == filters.category)
            if filters.from_date:
                query = query.filter(Article.published_at >= filters.from_date)
            if filters.to_date:
                query = query.filter(Article.published_at <= filters.to_date)
            if filters.search:
                pattern = f"%{_escape_like(filters.search)}%"
                query = query.filter(
                    or_(
                        Article.title.ilike(pattern, escape="\\"),
                        Article.summary.ilike(pattern, escape="\\"),
                    )
                )
            if excluded:
                query = query.filter(
                    Article.source_id.notin_(excluded), Article.source_name.notin_(excluded)
                )
            query = query.order_by(Article.published_at.desc(), Article.id.desc())

            if not filters.team_ids:
                return [row.to_dict() for row in query.limit(limit).all()]

            wanted = set(filters.team_ids)
            candidates: List[Dict[str, Any]] = []
            for row in query.yield_per(limit):
                if wanted & set(row.team_ids or []):
                    candidates.append(row.to_dict())
                    if len(candidates) >= limit:
                        break
            return candidates

    def set_featured(self, article_id: int, featured: bool = True) -> bool:
        with self.get_session() as session:
            article = session.get(Article, article_id)
            if article is None:
                return False
            article.is_featured = featured
            return True

    def save_translation(self, article_id: int, language: str, title: str, summary: str) -> bool:
        """Merge one language into ``translations``; the translation collaborator's entry point."""
        with self.get_session() as session:
            article = session.get(Article, article_id)
            if article is None:
                return False
            translations = dict(article.translations or {})
            translations[language.lower()] = {"title": title, "summary": summary}
            article.translations = translations
            return True

    # =====================================
    # VIEWS AND PREFERENCES
    # =====================================

    def record_article_views(self, viewer_id: str, article_ids: Sequence[int]) -> int:
        """
        Add view history rows; ``view_count`` grows once per new viewer.

        Returns the number of new (article, viewer) pairs.
        """
        recorded = 0
        for article_id in article_ids:
            try:
                with self.get_session() as session:
                    existing = (
                        session.query(ArticleView)
                        .filter_by(article_id=article_id, viewer_id=viewer_id)
                        .first()
                    )
                    if existing:
                        existing.viewed_at = utc_now()
                        continue
                    session.add(ArticleView(article_id=article_id, viewer_id=viewer_id))
                    session.query(Article).filter(Article.id == article_id).update(
                        {Article.view_count: Article.view_count + 1},
                        synchronize_session=False,
                    )
                recorded += 1
            except IntegrityError:
                logger.debug(f"View of article {article_id} by {viewer_id} already recorded")
        return recorded

    def get_viewer_preferences(self, viewer_id: str) -> Optional[Dict[str, Any]]:
        with self.get_session() as session:
            prefs = session.get(ViewerPreference, viewer_id)
            return prefs.to_dict() if prefs else None

    def save_viewer_preferences(self, viewer_id: str, preferences: Dict[str, Any]) -> None:
        fields = {
            "preferred_team_ids",
            "preferred_player_ids",
            "preferred_league_ids",
            "preferred_categories",
            "blocked_sources",
            "language",
        }
        with self.get_session() as session:
            prefs = session.get(ViewerPreference, viewer_id)
            if prefs is None:
                prefs = ViewerPreference(viewer_id=viewer_id)
                session.add(prefs)
            for key, value in preferences.items():
                if key in fields:
                    setattr(prefs, key, value)

    # =====================================
    # SOURCES
    # =====================================

    def initialize_sources(self, sources_config: Dict[str, Dict[str, Any]], tier_scores: Dict[str, float]) -> None:
        """Upsert registry entries; base trust falls back to the tier table."""
        with self.get_session() as session:
            for source_id, source_config in sources_config.items():
                base_trust = source_config.get("base_trust_score")
                if base_trust is None:
                    base_trust = tier_scores.get(source_config["tier"], 50.0)
                source = session.get(Source, source_id)
                if source is None:
                    source = Source(id=source_id)
                    session.add(source)
                source.name = source_config["name"]
                source.url = source_config["url"]
                source.tier = source_config["tier"]
                source.base_trust_score = float(base_trust)
                source.focus = source_config.get("focus", "general")
                source.is_active = source_config.get("active", True)
        logger.info(f"✅ {len(sources_config)} sources initialized")

    def get_sources(self, active_only: bool = True) -> List[Dict[str, Any]]:
        with self.get_session() as session:
            query = session.query(Source)
            if active_only:
                query = query.filter(Source.is_active.is_(True))
            return [source.to_dict() for source in query.order_by(Source.id).all()]

    def update_source_stats(self, source_id: str, stats: Dict[str, Any]) -> None:
        with self.get_session() as session:
            source = session.get(Source, source_id)
            if source is None:
                return
            now = utc_now()
            source.last_fetched_at = now
            source.total_fetches = (source.total_fetches or 0) + 1
            if stats.get("success"):
                source.last_successful_fetch = now
                source.consecutive_failures = 0
                source.error_message = None
                source.total_articles_found = (source.total_articles_found or 0) + int(
                    stats.get("articles_found", 0)
                )
            else:
                source.failed_fetches = (source.failed_fetches or 0) + 1
                source.consecutive_failures = (source.consecutive_failures or 0) + 1
                source.error_message = stats.get("error_message")

    # =====================================
    # COLLECTION LOGS AND RETENTION
    # =====================================

    def record_collection_log(
        self,
        summary: Dict[str, Any],
        started_at: datetime,
        trigger: str = "manual",
        deleted_expired: int = 0,
        errors: Optional[List[str]] = None,
    ) -> int:
        with self.get_session() as session:
            log = CollectionLog(
                trigger=trigger,
                started_at=started_at,
                fetched=summary.get("fetched", 0),
                unique_after_dedup=summary.get("unique_after_dedup", 0),
                saved=summary.get("saved", 0),
                sources_succeeded=summary.get("sources_succeeded", 0),
                sources_failed=summary.get("sources_failed", 0),
                deleted_expired=deleted_expired,
                duration_ms=summary.get("duration_ms", 0),
                errors=errors or [],
            )
            session.add(log)
            session.flush()
            return log.id

    def get_recent_collection_logs(self, limit: int = 10) -> List[Dict[str, Any]]:
        with self.get_session() as session:
            logs = (
                session.query(CollectionLog)
                .order_by(CollectionLog.started_at.desc(), CollectionLog.id.desc())
                .limit(limit)
                .all()
            )
            return [log.to_dict() for log in logs]

    def delete_expired_articles(self, cutoff: datetime) -> int:
        """Delete non-featured articles published before ``cutoff``."""
        with self.get_session() as session:
            expired_ids = [
                row[0]
                for row in session.query(Article.id)
                .filter(Article.published_at < cutoff, Article.is_featured.is_(False))
                .all()
            ]
            for chunk in _chunks(expired_ids):
                session.query(ArticleView).filter(ArticleView.article_id.in_(chunk)).delete(
                    synchronize_session=False
                )
                session.query(Article).filter(Article.id.in_(chunk)).delete(
                    synchronize_session=False
                )
        return len(expired_ids)

    def get_health_status(self) -> Dict[str, Any]:
        with self.get_session() as session:
            total_articles = session.query(func.count(Article.id)).scalar()
            recent_articles = (
                session.query(func.count(Article.id))
                .filter(Article.created_at >= utc_now() - timedelta(days=1))
                .scalar()
            )
            active_sources = (
                session.query(func.count(Source.id)).filter(Source.is_active.is_(True)).scalar()
            )
            failed_sources = (
                session.query(func.count(Source.id))
                .filter(Source.consecutive_failures > 3)
                .scalar()
            )
            last_run = (
                session.query(CollectionLog.started_at)
                .order_by(CollectionLog.started_at.desc())
                .limit(1)
                .scalar()
            )

        return {
            "total_articles": total_articles,
            "articles_last_24h": recent_articles,
            "active_sources": active_sources,
            "failed_sources": failed_sources,
            "last_collection_at": last_run.isoformat() if last_run else None,
            "database_type": self.config["type"],
            "status": "healthy" if failed_sources == 0 else "warning",
        }


_db_manager = None


def get_database_manager() -> DatabaseManager:
    """Process-wide DatabaseManager built from DATABASE_CONFIG."""
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager
