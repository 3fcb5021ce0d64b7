# src/storage/retention.py
# Retention sweeper
# =================

"""Deletes aged articles; featured articles are kept regardless of age."""

from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from config.settings import RETENTION_CONFIG
from src.utils.datetime_utils import ensure_utc, utc_now
from src.utils.logger import get_logger


class RetentionSweeper:
    def __init__(self, db_manager, config: Optional[Dict[str, Any]] = None):
        self.db_manager = db_manager
        self.config = dict(config or RETENTION_CONFIG)
        self.retention = timedelta(days=float(self.config["retention_days"]))
        self.logger = get_logger().create_module_logger("retention")

    def cutoff(self, now: Optional[datetime] = None) -> datetime:
        return (ensure_utc(now) or utc_now()) - self.retention

    def sweep(self, now: Optional[datetime] = None) -> int:
        """Delete non-featured articles published before the cutoff; returns the count."""
        cutoff = self.cutoff(now)
        deleted = self.db_manager.delete_expired_articles(cutoff)
        if deleted:
            self.logger.info(f"🧹 Retention removed {deleted} articles published before {cutoff:%Y-%m-%d %H:%M}")
        else:
            self.logger.debug("Retention sweep found nothing to delete")
        return deleted
