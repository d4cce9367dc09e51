from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.errors import GameNotFound
from ..db import transaction
from ..models import Game, Statistics

logger = logging.getLogger(__name__)

COUNTERS = ("clicks", "playlight_opens", "referrals")
PLATFORM_TOTALS_DAYS = 30


def stats_day(now: Optional[datetime] = None) -> date:
    """The UTC calendar day an event at ``now`` is booked under."""
    return (now or datetime.utcnow()).date()


def _bump_counter(db: Session, game_id: int, day: date, counter: str) -> int:
    column = getattr(Statistics, counter)
    return (
        db.query(Statistics)
        .filter(Statistics.game_id == game_id, Statistics.date == day)
        .update({column: column + 1}, synchronize_session=False)
    )


def increment_counter(db: Session, game_id: int, day: date, counter: str) -> None:
    """Add one to ``counter`` on the (game, day) row, creating it if needed.

    Does not commit. A concurrent insert of the same row loses the unique
    constraint race and falls back to the in-place update.
    """
    if counter not in COUNTERS:
        raise ValueError(f"Unknown statistics counter: {counter}")
    if _bump_counter(db, game_id, day, counter):
        return
    values = {name: 0 for name in COUNTERS}
    values[counter] = 1
    try:
        with db.begin_nested():
            db.add(Statistics(game_id=game_id, date=day, **values))
    except IntegrityError:
        logger.debug("Statistics row for game %s on %s appeared concurrently", game_id, day)
        _bump_counter(db, game_id, day, counter)


def _game_id_by_domain(db: Session, domain: str) -> Optional[int]:
    return db.query(Game.id).filter(Game.domain == domain).scalar()


def record_open(db: Session, domain: str, now: Optional[datetime] = None) -> int:
    game_id = _game_id_by_domain(db, domain)
    if game_id is None:
        raise GameNotFound("Could not find game for this domain.")
    with transaction(db):
        increment_counter(db, game_id, stats_day(now), "playlight_opens")
    return game_id


def record_click(
    db: Session,
    game_id: int,
    source_domain: str,
    now: Optional[datetime] = None,
) -> tuple[int, int]:
    """Book a click on ``game_id`` and a referral for the game at ``source_domain``.

    Both rows are written in the same transaction.
    """
    source_id = _game_id_by_domain(db, source_domain)
    target_exists = db.query(Game.id).filter(Game.id == game_id).scalar() is not None
    if source_id is None or not target_exists:
        raise GameNotFound("Invalid game reference.")
    day = stats_day(now)
    with transaction(db):
        increment_counter(db, game_id, day, "clicks")
        increment_counter(db, source_id, day, "referrals")
    return game_id, source_id


def get_statistics(
    db: Session,
    game_id: int,
    days: int = 7,
    now: Optional[datetime] = None,
) -> list[Statistics]:
    """Daily rows from ``days`` days ago up to today, newest first."""
    since = stats_day(now) - timedelta(days=max(0, int(days)))
    return (
        db.query(Statistics)
        .filter(Statistics.game_id == game_id, Statistics.date >= since)
        .order_by(Statistics.date.desc())
        .all()
    )


def platform_totals(db: Session, now: Optional[datetime] = None) -> dict[str, Any]:
    since = stats_day(now) - timedelta(days=PLATFORM_TOTALS_DAYS)
    clicks, opens, referrals = (
        db.query(
            func.coalesce(func.sum(Statistics.clicks), 0),
            func.coalesce(func.sum(Statistics.playlight_opens), 0),
            func.coalesce(func.sum(Statistics.referrals), 0),
        )
        .filter(Statistics.date >= since)
        .one()
    )
    likes, games = db.query(
        func.coalesce(func.sum(Game.likes), 0),
        func.count(Game.id),
    ).one()
    return {
        "since": since.isoformat(),
        "clicks": int(clicks or 0),
        "playlight_opens": int(opens or 0),
        "referrals": int(referrals or 0),
        "likes": int(likes or 0),
        "games": int(games or 0),
    }
