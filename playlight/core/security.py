from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import bcrypt
from jose import JWTError, jwt

from .config import (
    BCRYPT_ROUNDS,
    JWT_ALGORITHM,
    JWT_RESET_SECRET,
    JWT_SECRET,
    RESET_TOKEN_TTL_SECONDS,
    SESSION_TOKEN_TTL_SECONDS,
)

logger = logging.getLogger(__name__)


class InvalidToken(Exception):
    pass


def hash_password(plain_password: str) -> str:
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(plain_password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: Optional[str], password_hash: Optional[str]) -> bool:
    if not plain_password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


def _encode(claims: dict[str, Any], secret: str, ttl_seconds: int, now: Optional[datetime]) -> str:
    issued_at = now or datetime.now(timezone.utc)
    payload = dict(claims)
    payload["iat"] = int(issued_at.timestamp())
    payload["exp"] = int((issued_at + timedelta(seconds=ttl_seconds)).timestamp())
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def _decode(token: str, secret: str) -> dict[str, Any]:
    try:
        return jwt.decode(token, secret, algorithms=[JWT_ALGORITHM])
    except JWTError as exc:
        raise InvalidToken(str(exc)) from exc


def create_session_token(user_id: int, email: str, now: Optional[datetime] = None) -> str:
    return _encode({"sub": email, "userId": user_id}, JWT_SECRET, SESSION_TOKEN_TTL_SECONDS, now)


def decode_session_token(token: str) -> dict[str, Any]:
    return _decode(token, JWT_SECRET)


# Reset tokens carry no nonce and stay valid until "exp" even after a reset.
def create_reset_token(user_id: int, email: str, now: Optional[datetime] = None) -> str:
    return _encode({"email": email, "id": user_id}, JWT_RESET_SECRET, RESET_TOKEN_TTL_SECONDS, now)


def decode_reset_token(token: str) -> dict[str, Any]:
    return _decode(token, JWT_RESET_SECRET)
