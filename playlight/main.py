import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .core.config import CLEANUP_ENABLED, CORS_ORIGIN, LOG_LEVEL, PORT, PUBLIC_CORS_PREFIXES
from .core.errors import PlaylightError
from .db import Base, engine
from .middleware import PathAwareCORSMiddleware, RateLimitMiddleware
from .middleware.cors import origin_allowed
from .migrations import ensure_schema
from .routes import account, admin, contact, games, platform, uploads
from .services.cleanup import start_scheduler

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Playlight API", version="1.0.0")
app.state.scheduler = None


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()) if item != "body")
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "; ".join(parts) or "Invalid request."


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"detail": _validation_message(exc)})


@app.exception_handler(PlaylightError)
async def domain_exception_handler(request: Request, exc: PlaylightError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc, exc_info=exc)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    response = JSONResponse(status_code=500, content={"detail": "Internal server error."})
    # This handler runs outside the CORS middleware.
    origin = request.headers.get("origin", "")
    if origin_allowed(origin, request.url.path, CORS_ORIGIN, PUBLIC_CORS_PREFIXES):
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Vary"] = "Origin"
    return response


# Middleware runs in reverse order of addition: CORS wraps rate limiting,
# so 429 responses still carry CORS headers.
app.add_middleware(RateLimitMiddleware)
app.add_middleware(
    PathAwareCORSMiddleware,
    origins=CORS_ORIGIN,
    public_prefixes=PUBLIC_CORS_PREFIXES,
)


@app.on_event("startup")
def on_startup() -> None:
    Base.metadata.create_all(bind=engine)
    ensure_schema()
    if CLEANUP_ENABLED:
        app.state.scheduler = start_scheduler()
        logger.info("Cleanup scheduler started")


@app.on_event("shutdown")
def on_shutdown() -> None:
    scheduler = app.state.scheduler
    if scheduler is not None:
        scheduler.shutdown(wait=False)
        app.state.scheduler = None


@app.get("/health")
def health_check():
    return {"message": "Server is healthy."}


app.include_router(account.router, prefix="/account", tags=["account"])
app.include_router(admin.router, prefix="/admin", tags=["admin"])
app.include_router(games.router, prefix="/game", tags=["game"])
app.include_router(platform.router, prefix="/platform", tags=["platform"])
app.include_router(contact.router, prefix="/contact", tags=["contact"])
app.include_router(uploads.router, prefix="/uploads", tags=["uploads"])


def run() -> None:
    uvicorn.run("playlight.main:app", host="0.0.0.0", port=PORT)


if __name__ == "__main__":
    run()
