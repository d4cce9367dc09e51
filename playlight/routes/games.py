import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.config import DESCRIPTION_MAX_LENGTH
from ..core.security import verify_password
from ..db import get_db
from ..models import Game, User
from ..schemas import (
    GameCreateIn,
    GameDeleteIn,
    GameListOut,
    GameUpdateIn,
    StatisticsDayOut,
    StatisticsRequestIn,
)
from ..services.catalog import (
    clean_text,
    delete_game,
    domain_taken,
    search_games,
    set_feature,
)
from ..services.statistics import get_statistics
from .deps import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter()

_ADMIN_ONLY_FIELDS = ("boost_factor", "featured_game", "feature_days")


def _owned_game(db: Session, game_id: int, user: User) -> Game:
    game = db.query(Game).filter(Game.id == game_id).first()
    if not game:
        raise HTTPException(status_code=404, detail="Game not found")
    if not user.is_admin and game.owner_id != user.id:
        raise HTTPException(status_code=403, detail="Unauthorized")
    return game


def _normalize_domain(value: str) -> str:
    return value.strip().lower()


@router.get("/{id}", response_model=GameListOut)
def list_games(
    page: int = Query(1, ge=1),
    search: Optional[str] = Query(None, max_length=100),
    category: Optional[str] = Query(None, max_length=50),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    games = search_games(db, current_user, page=page, search=search, category=category)
    return {"games": games}


@router.post("", status_code=201)
@router.post("/", status_code=201, include_in_schema=False)
def create_game(
    payload: GameCreateIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    name = clean_text(payload.name)
    category = clean_text(payload.category)
    description = clean_text(payload.description)
    domain = _normalize_domain(payload.domain)
    if not name or not category or not description or not domain:
        raise HTTPException(status_code=400, detail="Missing required fields")
    if len(description) > DESCRIPTION_MAX_LENGTH:
        raise HTTPException(status_code=400, detail="Description too long")
    if domain_taken(db, domain):
        raise HTTPException(status_code=409, detail="Domain already registered")

    game = Game(
        name=name,
        owner_id=current_user.id,
        category=category,
        description=description,
        domain=domain,
        logo_url=payload.logo_url,
        cover_image_url=payload.cover_image_url,
        cover_video_url=payload.cover_video_url,
    )
    db.add(game)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Domain already registered")
    db.refresh(game)
    logger.info("User %s created game %s (%s)", current_user.id, game.id, game.domain)
    return {"message": "Game created successfully", "id": game.id}


@router.put("/{id}")
def update_game(
    id: int,
    payload: GameUpdateIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    game = _owned_game(db, id, current_user)
    provided = payload.model_fields_set
    if not current_user.is_admin and any(field in provided for field in _ADMIN_ONLY_FIELDS):
        raise HTTPException(status_code=403, detail="Admin access required.")

    for field in ("name", "category"):
        if field in provided:
            value = clean_text(getattr(payload, field))
            if not value:
                raise HTTPException(status_code=400, detail=f"{field} cannot be empty")
            setattr(game, field, value)
    if "description" in provided:
        description = clean_text(payload.description)
        if not description:
            raise HTTPException(status_code=400, detail="description cannot be empty")
        if len(description) > DESCRIPTION_MAX_LENGTH:
            raise HTTPException(status_code=400, detail="Description too long")
        game.description = description
    if "domain" in provided and payload.domain is not None:
        domain = _normalize_domain(payload.domain)
        if not domain:
            raise HTTPException(status_code=400, detail="domain cannot be empty")
        if domain_taken(db, domain, exclude_game_id=game.id):
            raise HTTPException(status_code=409, detail="Domain already registered")
        game.domain = domain
    for field in ("logo_url", "cover_image_url", "cover_video_url"):
        if field in provided:
            setattr(game, field, getattr(payload, field))
    if "boost_factor" in provided and payload.boost_factor is not None:
        game.boost_factor = payload.boost_factor
    if "featured_game" in provided or "feature_days" in provided:
        try:
            set_feature(
                db,
                game,
                payload.featured_game if "featured_game" in provided else game.featured_game,
                payload.feature_days,
            )
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc))

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Domain already registered")
    return {"message": "Game updated successfully"}


@router.delete("/{id}")
def remove_game(
    id: int,
    payload: GameDeleteIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    game = _owned_game(db, id, current_user)
    if not verify_password(payload.password, current_user.password):
        raise HTTPException(status_code=403, detail="Invalid password")
    delete_game(db, game)
    return {"message": "Game deleted successfully"}


@router.put("/{id}/statistics", response_model=List[StatisticsDayOut])
def game_statistics(
    id: int,
    payload: StatisticsRequestIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    _owned_game(db, id, current_user)
    return get_statistics(db, id, days=payload.days)
