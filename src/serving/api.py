"""HTTP API surface for ranked articles, on-demand collection and health."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from fastapi import BackgroundTasks, Depends, FastAPI, Header, HTTPException, Query, Response
from prometheus_client import CONTENT_TYPE_LATEST
from pydantic import ValidationError

from config.settings import NEWS_CONFIG
from config.version import __version__
from src.contracts import CollectRequest, ViewerPreferences, empty_result
from src.ranking import PersonalizedRanker
from src.storage.database import DatabaseManager, get_database_manager
from src.utils.observability import get_observability

logger = logging.getLogger(__name__)

CollectFn = Callable[..., Dict[str, Any]]

_PREFERENCE_PARAMS = {
    "preferred_teams": "preferred_team_ids",
    "preferred_players": "preferred_player_ids",
    "preferred_leagues": "preferred_league_ids",
    "preferred_categories": "preferred_categories",
}


def _record_views(manager: DatabaseManager, viewer_id: str, article_ids: List[int]) -> None:
    try:
        manager.record_article_views(viewer_id, article_ids)
    except Exception as exc:
        logger.warning(f"Could not record views for viewer {viewer_id}: {exc}")


def resolve_preferences(
    manager: DatabaseManager, viewer_id: Optional[str], overrides: Dict[str, Any]
) -> ViewerPreferences:
    """Stored preferences for ``viewer_id`` with explicit request values on top."""
    stored: Dict[str, Any] = {}
    if viewer_id:
        stored = manager.get_viewer_preferences(viewer_id) or {}
    merged = {**stored, **{key: value for key, value in overrides.items() if value is not None}}
    merged["viewer_id"] = viewer_id
    return ViewerPreferences.model_validate(merged)


def create_app(
    database_manager: Optional[DatabaseManager] = None,
    collect: Optional[CollectFn] = None,
    ranker: Optional[PersonalizedRanker] = None,
) -> FastAPI:
    """
    Create a configured FastAPI application.

    ``collect`` runs one collection (``source_ids``, ``category``,
    ``trigger`` keyword arguments) and returns its summary; without it
    ``POST /v1/collect`` answers 503.
    """

    db_manager = database_manager or get_database_manager()
    article_ranker = ranker or PersonalizedRanker(db_manager)
    default_language = NEWS_CONFIG["default_language"]
    app = FastAPI(title="Football News API", version=__version__)

    def get_db() -> DatabaseManager:
        return db_manager

    @app.get("/healthz")
    def health_probe() -> Dict[str, Any]:
        return {"status": "ok", "version": __version__}

    @app.get("/readyz")
    def readiness_probe(manager: DatabaseManager = Depends(get_db)) -> Dict[str, Any]:
        if not manager.ping():
            raise HTTPException(status_code=503, detail="database unavailable")
        return {"status": "ready"}

    @app.get("/metrics")
    def metrics() -> Response:
        return Response(
            content=get_observability().export_prometheus(), media_type=CONTENT_TYPE_LATEST
        )

    @app.get("/v1/articles")
    def list_articles(
        background_tasks: BackgroundTasks,
        category: Optional[str] = Query(None),
        from_date: Optional[str] = Query(None),
        to_date: Optional[str] = Query(None),
        search: Optional[str] = Query(None),
        team_ids: Optional[str] = Query(None),
        sources: Optional[str] = Query(None, description="Comma separated sources to exclude"),
        language: Optional[str] = Query(None),
        limit: Optional[str] = Query(None),
        offset: Optional[str] = Query(None),
        preferred_teams: Optional[str] = Query(None),
        preferred_players: Optional[str] = Query(None),
        preferred_leagues: Optional[str] = Query(None),
        preferred_categories: Optional[str] = Query(None),
        x_viewer_id: Optional[str] = Header(None),
        manager: DatabaseManager = Depends(get_db),
    ) -> Dict[str, Any]:
        # Parameters arrive as raw strings; bad values yield an empty page, never a 4xx.
        raw_prefs = {
            "preferred_teams": preferred_teams,
            "preferred_players": preferred_players,
            "preferred_leagues": preferred_leagues,
            "preferred_categories": preferred_categories,
        }
        try:
            prefs = resolve_preferences(
                manager,
                x_viewer_id,
                {_PREFERENCE_PARAMS[key]: value for key, value in raw_prefs.items()},
            )
        except ValidationError as exc:
            logger.info(f"Rejected viewer preferences: {exc.error_count()} invalid values")
            return {**empty_result(), "language": (language or default_language).lower()}

        resolved_language = (language or prefs.language or default_language).lower()
        filters = {
            "category": category,
            "from_date": from_date,
            "to_date": to_date,
            "search": search,
            "team_ids": team_ids,
            "excluded_sources": sources,
        }
        pagination = {
            key: value for key, value in (("limit", limit), ("offset", offset)) if value is not None
        }
        result = article_ranker.list_articles(
            {key: value for key, value in filters.items() if value is not None},
            prefs,
            pagination,
            language=resolved_language,
        )

        if x_viewer_id and result["articles"]:
            background_tasks.add_task(
                _record_views, manager, x_viewer_id, article_ranker.view_tracking_ids(result)
            )
        return {**result, "language": resolved_language}

    @app.post("/v1/collect")
    def trigger_collection(request: Optional[CollectRequest] = None) -> Dict[str, Any]:
        if collect is None:
            raise HTTPException(status_code=503, detail="collection is not configured")
        request = request or CollectRequest()
        try:
            return collect(source_ids=request.sources, category=request.category, trigger="api")
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc

    return app


__all__ = ["create_app", "resolve_preferences"]
