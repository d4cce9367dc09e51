from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Optional

import bleach
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..core.config import GAMES_PAGE_SIZE
from ..core.errors import GameNotFound
from ..db import transaction
from ..models import Game, Like, Statistics, User

logger = logging.getLogger(__name__)


def clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return bleach.clean(value, tags=[], attributes={}, strip=True).strip()


def list_categories(db: Session) -> list[str]:
    rows = db.query(Game.category).group_by(Game.category).order_by(Game.category).all()
    return [row[0] for row in rows if row[0]]


def _featured_summary(game: Game, now: datetime) -> Optional[dict[str, Any]]:
    if not game.featured_game:
        return None
    if game.feature_expires_at and game.feature_expires_at <= now:
        return None
    featured = game.featured
    if featured is None:
        return None
    return {
        "id": featured.id,
        "name": featured.name,
        "domain": featured.domain,
        "logo_url": featured.logo_url,
        "cover_image_url": featured.cover_image_url,
    }


def game_by_domain(db: Session, domain: str, now: Optional[datetime] = None) -> dict[str, Any]:
    game = db.query(Game).filter(Game.domain == domain).first()
    if not game:
        raise GameNotFound("Game not found for this domain.")
    return {
        "id": game.id,
        "name": game.name,
        "category": game.category,
        "description": game.description,
        "logo_url": game.logo_url,
        "likes": int(game.likes or 0),
        "featured_game": _featured_summary(game, now or datetime.utcnow()),
    }


def search_games(
    db: Session,
    user: User,
    *,
    page: int = 1,
    search: Optional[str] = None,
    category: Optional[str] = None,
    page_size: int = GAMES_PAGE_SIZE,
) -> list[Game]:
    query = db.query(Game)
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(
                Game.name.ilike(pattern),
                Game.description.ilike(pattern),
                Game.domain.ilike(pattern),
            )
        )
    if category:
        query = query.filter(Game.category == category)
    if not user.is_admin:
        query = query.filter(Game.owner_id == user.id)
    offset = (max(1, int(page)) - 1) * page_size
    return (
        query.order_by(Game.created_at.desc(), Game.id.desc())
        .offset(offset)
        .limit(page_size)
        .all()
    )


def domain_taken(db: Session, domain: str, exclude_game_id: Optional[int] = None) -> bool:
    query = db.query(Game.id).filter(Game.domain == domain)
    if exclude_game_id is not None:
        query = query.filter(Game.id != exclude_game_id)
    return query.first() is not None


def set_feature(
    db: Session,
    game: Game,
    featured_game_id: Optional[int],
    days: Optional[int],
    now: Optional[datetime] = None,
) -> None:
    """Point ``game`` at another game until ``days`` from now; 0 or None clears it."""
    if not featured_game_id:
        game.featured_game = None
        game.feature_expires_at = None
        return
    if featured_game_id == game.id:
        raise ValueError("A game cannot feature itself.")
    if db.query(Game.id).filter(Game.id == featured_game_id).scalar() is None:
        raise GameNotFound("Featured game not found.")
    game.featured_game = featured_game_id
    if days:
        game.feature_expires_at = (now or datetime.utcnow()) + timedelta(days=days)
    else:
        game.feature_expires_at = None


def _purge_games(db: Session, game_ids: list[int]) -> None:
    if not game_ids:
        return
    db.query(Like).filter(Like.game_id.in_(game_ids)).delete(synchronize_session=False)
    db.query(Statistics).filter(Statistics.game_id.in_(game_ids)).delete(synchronize_session=False)
    db.query(Game).filter(Game.featured_game.in_(game_ids)).update(
        {Game.featured_game: None, Game.feature_expires_at: None},
        synchronize_session=False,
    )
    db.query(Game).filter(Game.id.in_(game_ids)).delete(synchronize_session=False)


def delete_game(db: Session, game: Game) -> None:
    game_id = game.id
    with transaction(db):
        _purge_games(db, [game_id])
    logger.info("Deleted game %s with its statistics and likes", game_id)


def delete_user_account(db: Session, user: User) -> int:
    """Delete ``user`` and every game they own; returns the number of games removed."""
    user_id = user.id
    game_ids = [row[0] for row in db.query(Game.id).filter(Game.owner_id == user_id).all()]
    with transaction(db):
        _purge_games(db, game_ids)
        db.query(User).filter(User.id == user_id).delete(synchronize_session=False)
    logger.info("Deleted user %s and %d owned games", user_id, len(game_ids))
    return len(game_ids)
