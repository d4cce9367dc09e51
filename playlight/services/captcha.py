from __future__ import annotations

import logging
import uuid
from typing import Optional

import requests

from ..core.config import CAPTCHA_SECRET_KEY, CAPTCHA_TIMEOUT_SECONDS, CAPTCHA_VERIFY_URL
from ..core.errors import CaptchaError

logger = logging.getLogger(__name__)


def captcha_enabled() -> bool:
    return bool(CAPTCHA_SECRET_KEY)


def verify_turnstile(token: str, remote_ip: Optional[str]) -> tuple[bool, list[str]]:
    """Ask Cloudflare Turnstile whether ``token`` is valid for this client."""
    body = {
        "secret": CAPTCHA_SECRET_KEY,
        "response": token,
        "remoteip": remote_ip,
        "idempotency_key": str(uuid.uuid4()),
    }
    try:
        resp = requests.post(CAPTCHA_VERIFY_URL, json=body, timeout=CAPTCHA_TIMEOUT_SECONDS)
        resp.raise_for_status()
        data = resp.json()
    except (requests.RequestException, ValueError) as exc:
        raise CaptchaError() from exc
    success = bool(data.get("success"))
    codes = list(data.get("error-codes") or [])
    if not success:
        logger.info("Captcha rejected for %s: %s", remote_ip, codes)
    return success, codes
