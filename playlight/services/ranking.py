"""Popularity ranking for the platform suggestion feed.

Every candidate game is scored in Python from lifetime statistic sums, then
the list is sorted and sliced into pages. Scores are never stored.

The whole filtered candidate set is loaded per request. That is fine for a
catalog of a few thousand games; beyond that the score has to move into the
database (materialized totals plus ORDER BY/LIMIT) instead.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..core.config import SUGGESTIONS_PAGE_SIZE
from ..models import Game, Statistics

CLICK_WEIGHT = 2
REFERRAL_WEIGHT = 1
OPEN_WEIGHT = 0.1
LIKE_WEIGHT = 10
NOVELTY_WINDOW_DAYS = 30
NOVELTY_POINTS_PER_DAY = 200


@dataclass
class RankedGame:
    game: Game
    clicks: int
    playlight_opens: int
    referrals: int
    ranking_score: int

    def to_dict(self) -> dict[str, Any]:
        game = self.game
        return {
            "id": game.id,
            "name": game.name,
            "description": game.description,
            "logo_url": game.logo_url,
            "cover_image_url": game.cover_image_url,
            "cover_video_url": game.cover_video_url,
            "domain": game.domain,
            "category": game.category,
            "likes": int(game.likes or 0),
            "created_at": game.created_at,
            "ranking_score": self.ranking_score,
        }


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def days_since(created_at: Optional[datetime], now: datetime) -> int:
    if created_at is None:
        return NOVELTY_WINDOW_DAYS
    # Clamp so a future-dated row cannot earn more than the full bonus.
    return max(0, (now.date() - created_at.date()).days)


def novelty_bonus(created_at: Optional[datetime], now: datetime) -> int:
    age = days_since(created_at, now)
    if age >= NOVELTY_WINDOW_DAYS:
        return 0
    return (NOVELTY_WINDOW_DAYS - age) * NOVELTY_POINTS_PER_DAY


def compute_ranking_score(
    *,
    clicks: int,
    referrals: int,
    playlight_opens: int,
    likes: int,
    created_at: Optional[datetime],
    boost_factor: Optional[float],
    now: datetime,
) -> int:
    base = (
        clicks * CLICK_WEIGHT
        + referrals * REFERRAL_WEIGHT
        + _round_half_up(playlight_opens * OPEN_WEIGHT)
        + max(0, likes) * LIKE_WEIGHT
        + novelty_bonus(created_at, now)
    )
    boost = 1.0 if boost_factor is None else float(boost_factor)
    return _round_half_up(base * boost)


def _sort_key(item: RankedGame) -> tuple:
    created = item.game.created_at or datetime.min
    return (item.ranking_score, created, item.game.id)


def rank_games(
    db: Session,
    *,
    category: Optional[str] = None,
    exclude_category: Optional[str] = None,
    exclude_domain: Optional[str] = None,
    now: Optional[datetime] = None,
) -> list[RankedGame]:
    """Score all matching games in a single query, best first.

    Ties fall back to the newest game, then the highest id.
    """
    now = now or datetime.utcnow()
    totals = (
        db.query(
            Statistics.game_id.label("game_id"),
            func.coalesce(func.sum(Statistics.clicks), 0).label("clicks"),
            func.coalesce(func.sum(Statistics.playlight_opens), 0).label("playlight_opens"),
            func.coalesce(func.sum(Statistics.referrals), 0).label("referrals"),
        )
        .group_by(Statistics.game_id)
        .subquery()
    )
    query = db.query(
        Game,
        totals.c.clicks,
        totals.c.playlight_opens,
        totals.c.referrals,
    ).outerjoin(totals, totals.c.game_id == Game.id)
    if category:
        query = query.filter(Game.category == category)
    if exclude_category:
        query = query.filter(Game.category != exclude_category)
    if exclude_domain:
        query = query.filter(Game.domain != exclude_domain)

    ranked: list[RankedGame] = []
    for game, clicks, opens, referrals in query.all():
        clicks = int(clicks or 0)
        opens = int(opens or 0)
        referrals = int(referrals or 0)
        ranked.append(
            RankedGame(
                game=game,
                clicks=clicks,
                playlight_opens=opens,
                referrals=referrals,
                ranking_score=compute_ranking_score(
                    clicks=clicks,
                    referrals=referrals,
                    playlight_opens=opens,
                    likes=int(game.likes or 0),
                    created_at=game.created_at,
                    boost_factor=game.boost_factor,
                    now=now,
                ),
            )
        )
    ranked.sort(key=_sort_key, reverse=True)
    return ranked


def suggest_games(
    db: Session,
    *,
    category: Optional[str] = None,
    exclude_domain: Optional[str] = None,
    page: int = 1,
    page_size: int = SUGGESTIONS_PAGE_SIZE,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    """One page of ranked games plus pagination info.

    With a category, pages run through that category first and continue
    with the other categories, so a short last page is filled up instead of
    ending early. Page counts describe the category alone.
    """
    page = max(1, int(page))
    offset = (page - 1) * page_size
    ranked = rank_games(db, category=category, exclude_domain=exclude_domain, now=now)
    total = len(ranked)
    window = ranked[offset : offset + page_size]

    if category and len(window) < page_size:
        others = rank_games(
            db,
            exclude_category=category,
            exclude_domain=exclude_domain,
            now=now,
        )
        start = max(0, offset - total)
        window = window + others[start : start + page_size - len(window)]

    return {
        "games": [item.to_dict() for item in window],
        "pagination": {
            "currentPage": page,
            "totalPages": math.ceil(total / page_size) if page_size else 0,
            "totalGames": total,
        },
    }
