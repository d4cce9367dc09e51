"""Hourly housekeeping: statistics retention and featured-game expiry."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy.orm import Session

from ..core.cache import cache_registry
from ..core.config import CLEANUP_INTERVAL_SECONDS, STATISTICS_RETENTION_DAYS
from ..db import SessionLocal
from ..models import Game, Statistics

logger = logging.getLogger(__name__)


def purge_old_statistics(db: Session, now: Optional[datetime] = None) -> int:
    cutoff = (now or datetime.utcnow()).date() - timedelta(days=STATISTICS_RETENTION_DAYS)
    deleted = (
        db.query(Statistics)
        .filter(Statistics.date < cutoff)
        .delete(synchronize_session=False)
    )
    db.commit()
    return int(deleted or 0)


def expire_features(db: Session, now: Optional[datetime] = None) -> int:
    now = now or datetime.utcnow()
    cleared = (
        db.query(Game)
        .filter(Game.feature_expires_at.isnot(None), Game.feature_expires_at <= now)
        .update(
            {Game.featured_game: None, Game.feature_expires_at: None},
            synchronize_session=False,
        )
    )
    db.commit()
    return int(cleared or 0)


def run_cleanup(
    session_factory: Callable[[], Session] = SessionLocal,
    now: Optional[datetime] = None,
) -> dict[str, Optional[int]]:
    """Run each sweep in its own session; a failing sweep is logged and skipped."""
    results: dict[str, Optional[int]] = {}
    for name, sweep in (("statistics", purge_old_statistics), ("features", expire_features)):
        db = session_factory()
        try:
            results[name] = sweep(db, now)
        except Exception:
            db.rollback()
            logger.exception("Cleanup sweep %s failed", name)
            results[name] = None
        finally:
            db.close()
    results["rate_limit_windows"] = cache_registry.rate_limiter.prune()
    logger.info(
        "Cleanup finished: %s old statistics rows, %s expired features",
        results["statistics"],
        results["features"],
    )
    return results


def start_scheduler(interval_seconds: int = CLEANUP_INTERVAL_SECONDS) -> BackgroundScheduler:
    scheduler = BackgroundScheduler(timezone="UTC")
    scheduler.add_job(
        run_cleanup,
        "interval",
        seconds=interval_seconds,
        id="playlight-cleanup",
        next_run_time=datetime.utcnow(),
        coalesce=True,
        max_instances=1,
    )
    scheduler.start()
    return scheduler
