from __future__ import annotations

from datetime import timedelta

from conftest import FIXED_NOW, make_article
from src.storage import RetentionSweeper
from src.storage.database import DatabaseManager


def test_sweep_deletes_old_articles_but_keeps_featured(db_manager: DatabaseManager) -> None:
    db_manager.save_articles(
        [
            make_article(url="https://example.com/old", published_at=FIXED_NOW - timedelta(days=7)),
            make_article(
                url="https://example.com/old-featured",
                published_at=FIXED_NOW - timedelta(days=30),
                is_featured=True,
            ),
            make_article(url="https://example.com/fresh", published_at=FIXED_NOW - timedelta(days=1)),
        ]
    )
    old_id = db_manager.get_article_by_url("https://example.com/old")["id"]
    db_manager.record_article_views("viewer-1", [old_id])

    sweeper = RetentionSweeper(db_manager, {"retention_days": 6})
    assert sweeper.sweep(FIXED_NOW) == 1

    assert db_manager.get_article_by_url("https://example.com/old") is None
    assert db_manager.get_article_by_url("https://example.com/old-featured") is not None
    assert db_manager.get_article_by_url("https://example.com/fresh") is not None
    assert sweeper.sweep(FIXED_NOW) == 0


def test_cutoff_boundary_is_exclusive(db_manager: DatabaseManager) -> None:
    sweeper = RetentionSweeper(db_manager, {"retention_days": 6})
    assert sweeper.cutoff(FIXED_NOW) == FIXED_NOW - timedelta(days=6)

    db_manager.save_articles(
        [make_article(url="https://example.com/edge", published_at=FIXED_NOW - timedelta(days=6))]
    )
    assert sweeper.sweep(FIXED_NOW) == 0
    assert sweeper.sweep(FIXED_NOW + timedelta(seconds=1)) == 1


def test_featuring_an_article_exempts_it(db_manager: DatabaseManager) -> None:
    db_manager.save_articles(
        [make_article(url="https://example.com/pinned", published_at=FIXED_NOW - timedelta(days=9))]
    )
    article_id = db_manager.get_article_by_url("https://example.com/pinned")["id"]
    db_manager.set_featured(article_id)

    assert RetentionSweeper(db_manager, {"retention_days": 6}).sweep(FIXED_NOW) == 0
