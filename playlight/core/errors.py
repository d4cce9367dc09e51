class PlaylightError(Exception):
    """Base class for domain failures that routes translate to HTTP codes."""

    status_code = 500
    detail = "Internal server error."

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.detail)
        if detail:
            self.detail = detail


class GameNotFound(PlaylightError):
    status_code = 404
    detail = "Game not found."


class LikeConflict(PlaylightError):
    status_code = 409
    detail = "This game has already been liked from this address."


class LikeMissing(PlaylightError):
    status_code = 400
    detail = "This game has not been liked from this address."


class UploadValidationError(PlaylightError):
    status_code = 400
    detail = "Upload validation failed."


class UploadProviderError(PlaylightError):
    detail = "The upload provider rejected the request."


class MailDeliveryError(PlaylightError):
    detail = "Failed to send email."


class CaptchaError(PlaylightError):
    detail = "Error validating captcha token."
