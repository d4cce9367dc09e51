import os
from pathlib import Path


def _load_env_file(path: Path) -> None:
    if not path.exists():
        return
    try:
        for line in path.read_text(encoding="utf-8").splitlines():
            stripped = line.strip()
            if not stripped or stripped.startswith("#") or "=" not in stripped:
                continue
            key, value = stripped.split("=", 1)
            key = key.strip()
            if not key or key in os.environ:
                continue
            cleaned = value.strip().strip('"').strip("'")
            os.environ[key] = cleaned
    except OSError:
        return


def _load_env() -> None:
    current = Path(__file__).resolve()
    for candidate in (current.parents[2] / ".env", Path.cwd() / ".env"):
        _load_env_file(candidate)


_load_env()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _split_env_list(value: str) -> list[str]:
    items: list[str] = []
    for raw in (value or "").split(","):
        cleaned = raw.strip()
        if cleaned and cleaned not in items:
            items.append(cleaned)
    return items


def _default_database_url() -> str:
    backend_root = Path(__file__).resolve().parents[2]
    return f"sqlite:///{(backend_root / 'playlight.db').as_posix()}"


DATABASE_URL = os.getenv("DATABASE_URL", _default_database_url())
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "10"))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "0"))
DB_POOL_RECYCLE = int(os.getenv("DB_POOL_RECYCLE", "3600"))

JWT_SECRET = os.getenv("JWT_SECRET", "change-me-in-prod")
JWT_RESET_SECRET = os.getenv("JWT_RESET_SECRET", "change-me-too-in-prod")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
SESSION_TOKEN_TTL_SECONDS = int(os.getenv("SESSION_TOKEN_TTL_SECONDS", str(12 * 60 * 60)))
RESET_TOKEN_TTL_SECONDS = int(os.getenv("RESET_TOKEN_TTL_SECONDS", str(60 * 60)))
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "10"))

_DEFAULT_CORS_ORIGIN = "http://localhost:5173,http://127.0.0.1:5173"
CORS_ORIGIN = _split_env_list(os.getenv("CORS_ORIGIN", _DEFAULT_CORS_ORIGIN))
PUBLIC_CORS_PREFIXES = tuple(_split_env_list(os.getenv("PUBLIC_CORS_PREFIXES", "/platform/")))

SITE_DOMAIN = os.getenv("SITE_DOMAIN", "http://localhost:5173").rstrip("/")

EMAIL_HOST = os.getenv("EMAIL_HOST", "")
EMAIL_PORT = int(os.getenv("EMAIL_PORT", "587"))
EMAIL_USER = os.getenv("EMAIL_USER", "")
EMAIL_PASSWORD = os.getenv("EMAIL_PASSWORD", "")
EMAIL_TIMEOUT_SECONDS = int(os.getenv("EMAIL_TIMEOUT_SECONDS", "15"))
NOTIFICATION_EMAIL = os.getenv("NOTIFICATION_EMAIL", "")

UPLOADTHING_TOKEN = os.getenv("UPLOADTHING_TOKEN", "")
UPLOADTHING_API_URL = os.getenv("UPLOADTHING_API_URL", "https://api.uploadthing.com")
UPLOAD_REQUEST_TIMEOUT_SECONDS = int(os.getenv("UPLOAD_REQUEST_TIMEOUT_SECONDS", "30"))
FFPROBE_PATH = os.getenv("FFPROBE_PATH", "ffprobe")

CAPTCHA_SECRET_KEY = os.getenv("CAPTCHA_SECRET_KEY", "")
CAPTCHA_VERIFY_URL = os.getenv(
    "CAPTCHA_VERIFY_URL", "https://challenges.cloudflare.com/turnstile/v0/siteverify"
)
CAPTCHA_TIMEOUT_SECONDS = int(os.getenv("CAPTCHA_TIMEOUT_SECONDS", "10"))

CATEGORIES_CACHE_TTL_SECONDS = float(os.getenv("CATEGORIES_CACHE_TTL_SECONDS", "10"))
TOTALS_CACHE_TTL_SECONDS = float(os.getenv("TOTALS_CACHE_TTL_SECONDS", "300"))
SUGGESTIONS_PAGE_SIZE = int(os.getenv("SUGGESTIONS_PAGE_SIZE", "15"))
GAMES_PAGE_SIZE = int(os.getenv("GAMES_PAGE_SIZE", "50"))
DESCRIPTION_MAX_LENGTH = int(os.getenv("DESCRIPTION_MAX_LENGTH", "500"))

STATISTICS_RETENTION_DAYS = int(os.getenv("STATISTICS_RETENTION_DAYS", "183"))
CLEANUP_INTERVAL_SECONDS = int(os.getenv("CLEANUP_INTERVAL_SECONDS", "3600"))
CLEANUP_ENABLED = _env_flag("CLEANUP_ENABLED", "true")

RATE_LIMIT_ENABLED = _env_flag("RATE_LIMIT_ENABLED", "true")
TRUST_PROXY_HEADERS = _env_flag("TRUST_PROXY_HEADERS", "false")

PORT = int(os.getenv("PORT", "3000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"
