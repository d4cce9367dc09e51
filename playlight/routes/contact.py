import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from ..core.errors import CaptchaError, MailDeliveryError
from ..schemas import ContactIn
from ..services.captcha import captcha_enabled, verify_turnstile
from ..services.catalog import clean_text
from ..services.mailer import send_contact_notification
from .deps import get_client_ip

logger = logging.getLogger(__name__)

router = APIRouter()


def validate_captcha(request: Request, ip: str = Depends(get_client_ip)) -> None:
    if not captcha_enabled():
        return
    token = request.headers.get("cf-turnstile-response", "").strip()
    if not token:
        raise HTTPException(status_code=400, detail="Turnstile token missing.")
    try:
        success, codes = verify_turnstile(token, ip)
    except CaptchaError:
        logger.exception("Turnstile verification request failed")
        raise HTTPException(status_code=500, detail="Error validating Captcha (Turnstile) token.")
    if not success:
        raise HTTPException(status_code=403, detail="Captcha validation failed.")


@router.post("/submit", dependencies=[Depends(validate_captcha)])
def submit_contact_form(payload: ContactIn):
    website = clean_text(payload.website)
    message = clean_text(payload.message)
    if not website or not message:
        raise HTTPException(
            status_code=400, detail="Email, website, and message are required fields."
        )
    if any(ch in website for ch in "\r\n"):
        raise HTTPException(status_code=400, detail="Website must be a single line.")
    try:
        send_contact_notification(str(payload.email), website, message)
    except MailDeliveryError:
        logger.exception("Contact form email from %s failed", payload.email)
        raise HTTPException(status_code=500, detail="Failed to submit form. Please try again later.")
    return {"message": "Form submitted successfully!"}
