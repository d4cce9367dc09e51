from __future__ import annotations

import json
import logging
from typing import Any, Optional

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ..core.security import InvalidToken, decode_session_token
from ..db import get_db
from ..middleware.rate_limit import client_ip
from ..models import User

logger = logging.getLogger(__name__)


def get_client_ip(request: Request) -> str:
    return client_ip(request)


def _bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("authorization", "")
    if header.startswith("Bearer "):
        token = header[len("Bearer "):].strip()
        return token or None
    return None


async def _requested_user_id(request: Request) -> Any:
    """The user id the request claims to act as: body ``id`` first, then path ``id``."""
    content_type = request.headers.get("content-type", "")
    body_id = None
    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except (ValueError, UnicodeDecodeError):
            body = None
        if isinstance(body, dict):
            body_id = body.get("id")
    elif content_type.startswith(("multipart/form-data", "application/x-www-form-urlencoded")):
        form = await request.form()
        body_id = form.get("id")
    if body_id not in (None, ""):
        return body_id
    return request.path_params.get("id")


async def authenticate_token_with_id(request: Request) -> int:
    """Verify the bearer token and that it belongs to the requested user id."""
    token = _bearer_token(request)
    if not token:
        raise HTTPException(
            status_code=401,
            detail="No authentication token in request. Try signing out and in again.",
        )
    try:
        claims = decode_session_token(token)
    except InvalidToken:
        raise HTTPException(
            status_code=403, detail="An error occurred decoding the Authentication token."
        )
    token_user_id = claims.get("userId")
    if token_user_id is None:
        raise HTTPException(status_code=403, detail="Access token lacks user id.")

    requested = await _requested_user_id(request)
    if str(token_user_id) != str(requested):
        logger.warning(
            "Token user %s does not match requested user %s", token_user_id, requested
        )
        raise HTTPException(
            status_code=403,
            detail="User ID from access token does not match requested user id.",
        )
    return int(token_user_id)


def get_current_user(
    user_id: int = Depends(authenticate_token_with_id),
    db: Session = Depends(get_db),
) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=403, detail="User no longer exists.")
    return user


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    # Loaded from the database on every call so revoking admin takes effect at once.
    if not current_user.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required.")
    return current_user
