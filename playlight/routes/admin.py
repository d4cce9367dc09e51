from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..db import get_db
from ..models import User, WhitelistEntry
from ..schemas import WhitelistEntryOut, WhitelistIn
from .deps import require_admin

router = APIRouter()


@router.post("/whitelist", status_code=201)
def add_to_whitelist(
    payload: WhitelistIn,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    email = payload.email.strip().lower()
    if "@" not in email:
        raise HTTPException(status_code=400, detail="Valid email is required.")
    if db.query(WhitelistEntry.id).filter(WhitelistEntry.email == email).first():
        raise HTTPException(status_code=409, detail="Email already in whitelist.")
    db.add(WhitelistEntry(email=email))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Email already in whitelist.")
    return {"message": "Email added to whitelist."}


@router.delete("/whitelist/{email}")
def remove_from_whitelist(
    email: str,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    removed = (
        db.query(WhitelistEntry)
        .filter(WhitelistEntry.email == email.strip().lower())
        .delete(synchronize_session=False)
    )
    db.commit()
    return {"message": "Email removed from whitelist.", "removed": int(removed or 0)}


@router.put("/all-whitelist", response_model=List[WhitelistEntryOut])
def list_whitelist(db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    return db.query(WhitelistEntry).order_by(WhitelistEntry.created_at, WhitelistEntry.id).all()
