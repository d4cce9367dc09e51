from __future__ import annotations

import logging

from sqlalchemy import case
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.errors import GameNotFound, LikeConflict, LikeMissing
from ..db import transaction
from ..models import Game, Like

logger = logging.getLogger(__name__)


def _require_game(db: Session, game_id: int) -> Game:
    game = db.query(Game).filter(Game.id == game_id).first()
    if not game:
        raise GameNotFound()
    return game


def _current_likes(db: Session, game_id: int) -> int:
    return int(db.query(Game.likes).filter(Game.id == game_id).scalar() or 0)


def has_liked(db: Session, game_id: int, client_ip: str) -> bool:
    return (
        db.query(Like.id)
        .filter(Like.game_id == game_id, Like.client_ip == client_ip)
        .first()
        is not None
    )


def like_game(db: Session, game_id: int, client_ip: str) -> int:
    """Insert the (game, client) like and bump ``Game.likes``; returns the new count."""
    _require_game(db, game_id)
    if has_liked(db, game_id, client_ip):
        raise LikeConflict()
    try:
        with transaction(db):
            db.add(Like(game_id=game_id, client_ip=client_ip))
            db.flush()
            db.query(Game).filter(Game.id == game_id).update(
                {Game.likes: Game.likes + 1}, synchronize_session=False
            )
    except IntegrityError as exc:
        logger.info("Duplicate like for game %s from %s: %s", game_id, client_ip, exc.orig)
        raise LikeConflict() from exc
    return _current_likes(db, game_id)


def unlike_game(db: Session, game_id: int, client_ip: str) -> int:
    """Remove the (game, client) like and decrement ``Game.likes``, never below zero."""
    _require_game(db, game_id)
    with transaction(db):
        removed = (
            db.query(Like)
            .filter(Like.game_id == game_id, Like.client_ip == client_ip)
            .delete(synchronize_session=False)
        )
        if not removed:
            raise LikeMissing()
        db.query(Game).filter(Game.id == game_id).update(
            {Game.likes: case((Game.likes > 0, Game.likes - 1), else_=0)},
            synchronize_session=False,
        )
    return _current_likes(db, game_id)
