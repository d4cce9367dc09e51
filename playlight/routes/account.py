import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.errors import MailDeliveryError
from ..core.security import (
    InvalidToken,
    create_reset_token,
    create_session_token,
    decode_reset_token,
    hash_password,
    verify_password,
)
from ..db import get_db
from ..models import User, WhitelistEntry
from ..schemas import (
    AccountDeleteIn,
    LoginIn,
    LoginOut,
    RegisterIn,
    ResetPasswordIn,
    ResetRequestIn,
    UserOut,
)
from ..services.catalog import delete_user_account
from ..services.mailer import send_password_reset
from .deps import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter()

MIN_PASSWORD_LENGTH = 8


@router.get("/user/{id}", response_model=UserOut)
def get_user(current_user: User = Depends(get_current_user)):
    return current_user


@router.post("/register", status_code=201)
def register(payload: RegisterIn, db: Session = Depends(get_db)):
    user_name = payload.user_name.strip()
    email = payload.email.strip().lower()
    if not user_name or not email or not payload.password:
        raise HTTPException(status_code=400, detail="Username, email, and password are required.")
    if len(user_name) < 4 or len(email) < 5:
        raise HTTPException(status_code=400, detail="Username or email are too short.")
    if len(user_name) > 50 or len(email) > 100:
        raise HTTPException(status_code=400, detail="Username or email are too long.")

    whitelisted = db.query(WhitelistEntry.id).filter(WhitelistEntry.email == email).first()
    if not whitelisted:
        raise HTTPException(
            status_code=403,
            detail="Email not in whitelist. Registration is by invitation only.",
        )
    if db.query(User.id).filter(User.email == email).first():
        raise HTTPException(status_code=409, detail="Email is already in use.")
    if len(payload.password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Password must be at least {MIN_PASSWORD_LENGTH} characters.",
        )

    db.add(User(user_name=user_name, email=email, password=hash_password(payload.password)))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Email is already in use.")
    return {"message": "Registration successful."}


@router.post("/login", response_model=LoginOut)
def login(payload: LoginIn, db: Session = Depends(get_db)):
    email = payload.email.strip().lower()
    user = db.query(User).filter(User.email == email).first()
    if not user or not verify_password(payload.password, user.password):
        raise HTTPException(status_code=400, detail="Invalid credentials.")
    return LoginOut(
        message="Login successful",
        bearer_token=create_session_token(user.id, user.email),
        id=user.id,
        user_name=user.user_name,
    )


@router.delete("/delete")
def delete_account(payload: AccountDeleteIn, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.id == payload.id).first()
    if not user:
        raise HTTPException(status_code=400, detail="Invalid credentials. User not found.")
    if not verify_password(payload.password, user.password):
        raise HTTPException(status_code=400, detail="Invalid credentials.")
    delete_user_account(db, user)
    return {"message": "Account deleted successfully."}


@router.post("/reset-password-request")
def reset_password_request(payload: ResetRequestIn, db: Session = Depends(get_db)):
    email = payload.email.strip().lower()
    if not email:
        raise HTTPException(status_code=400, detail="Email is required.")
    user = db.query(User).filter(User.email == email).first()
    if not user:
        raise HTTPException(status_code=404, detail="No account with that email found.")
    token = create_reset_token(user.id, user.email)
    try:
        send_password_reset(user.email, token)
    except MailDeliveryError:
        logger.exception("Password reset email to %s failed", user.email)
        raise HTTPException(
            status_code=500, detail="An error occurred during password reset request."
        )
    return {"message": "Password reset email sent."}


@router.post("/reset-password")
def reset_password(payload: ResetPasswordIn, db: Session = Depends(get_db)):
    if not payload.token or not payload.new_password:
        raise HTTPException(status_code=400, detail="Token and new password are required.")
    try:
        claims = decode_reset_token(payload.token)
    except InvalidToken:
        raise HTTPException(status_code=400, detail="Invalid or expired reset token.")
    if len(payload.new_password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Password must be at least {MIN_PASSWORD_LENGTH} characters.",
        )
    user = db.query(User).filter(User.id == claims.get("id")).first()
    if not user:
        raise HTTPException(status_code=400, detail="Invalid or expired reset token.")
    user.password = hash_password(payload.new_password)
    db.commit()
    return {"message": "Password reset successfully."}
