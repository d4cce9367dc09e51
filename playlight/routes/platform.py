from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..core.cache import cache_registry
from ..db import get_db
from ..models import Game
from ..schemas import ClickEventIn, OpenEventIn
from ..services.catalog import game_by_domain, list_categories
from ..services.likes import has_liked, like_game, unlike_game
from ..services.ranking import suggest_games
from ..services.statistics import platform_totals, record_click, record_open
from .deps import get_client_ip

router = APIRouter()


@router.get("/suggestions")
@router.get("/suggestions/{category}")
def suggestions(
    category: Optional[str] = None,
    page: int = Query(1, ge=1),
    exclude: Optional[str] = Query(None, max_length=255),
    db: Session = Depends(get_db),
):
    return suggest_games(db, category=category or None, exclude_domain=exclude, page=page)


@router.get("/game-by-domain/{domain}")
def get_game_by_domain(domain: str, db: Session = Depends(get_db)):
    return game_by_domain(db, domain)


@router.get("/categories")
def categories(db: Session = Depends(get_db)):
    return cache_registry.categories.get_or_compute(lambda: list_categories(db))


@router.get("/total-statistics")
def total_statistics(db: Session = Depends(get_db)):
    return cache_registry.platform_totals.get_or_compute(lambda: platform_totals(db))


@router.post("/event/open")
def open_event(payload: OpenEventIn, db: Session = Depends(get_db)):
    domain = payload.domain.strip()
    if not domain:
        raise HTTPException(status_code=400, detail="Domain is required.")
    record_open(db, domain)
    return {"success": True}


@router.post("/event/click")
def click_event(payload: ClickEventIn, db: Session = Depends(get_db)):
    source_domain = payload.source_domain.strip()
    if not source_domain:
        raise HTTPException(status_code=400, detail="Game ID and source domain are required.")
    record_click(db, payload.game_id, source_domain)
    return {"success": True}


@router.get("/likes/{game_id}")
def like_status(
    game_id: int,
    db: Session = Depends(get_db),
    ip: str = Depends(get_client_ip),
):
    likes = db.query(Game.likes).filter(Game.id == game_id).scalar()
    if likes is None:
        raise HTTPException(status_code=404, detail="Game not found.")
    return {"likes": int(likes), "liked": has_liked(db, game_id, ip)}


@router.post("/rating/{game_id}/{action}")
def rate_game(
    game_id: int,
    action: Literal["like", "unlike"],
    db: Session = Depends(get_db),
    ip: str = Depends(get_client_ip),
):
    if action == "like":
        likes = like_game(db, game_id, ip)
    else:
        likes = unlike_game(db, game_id, ip)
    return {"success": True, "likes": likes}
