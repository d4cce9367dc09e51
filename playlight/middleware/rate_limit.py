import math
from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from ..core.cache import (
    HEAVY,
    LOGIN,
    OPEN,
    REGISTER,
    STANDARD,
    SUPER_HEAVY,
    LimitProfile,
    cache_registry,
)
from ..core.config import RATE_LIMIT_ENABLED, TRUST_PROXY_HEADERS

_UNLIMITED_PATHS = ("/health", "/docs", "/openapi.json", "/redoc")


def client_ip(request: Request) -> str:
    if TRUST_PROXY_HEADERS:
        forwarded = request.headers.get("x-forwarded-for", "")
        first = forwarded.split(",")[0].strip()
        if first:
            return first
        real_ip = request.headers.get("x-real-ip", "").strip()
        if real_ip:
            return real_ip
    return request.client.host if request.client else "unknown"


def resolve_profile(method: str, path: str) -> Optional[LimitProfile]:
    if path.startswith(_UNLIMITED_PATHS):
        return None
    if method == "POST":
        if path.startswith("/account/login"):
            return LOGIN
        if path.startswith("/account/register"):
            return REGISTER
        if path.startswith("/platform/event/open"):
            return OPEN
        if path.startswith("/platform/event/click"):
            return HEAVY
        if path.rstrip("/") == "/game" or path.startswith("/uploads/"):
            return HEAVY
        if path.startswith("/contact/"):
            return SUPER_HEAVY
    return STANDARD


class RateLimitMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        # Skip rate limiting for preflight OPTIONS requests
        if not RATE_LIMIT_ENABLED or request.method == "OPTIONS":
            return await call_next(request)

        profile = resolve_profile(request.method, request.url.path)
        if profile is None:
            return await call_next(request)

        allowed, retry_after = cache_registry.rate_limiter.hit(profile, client_ip(request))
        if not allowed:
            response = JSONResponse(
                status_code=429,
                content={"detail": profile.message},
            )
            response.headers["Retry-After"] = str(max(1, math.ceil(retry_after)))
            return response

        return await call_next(request)
