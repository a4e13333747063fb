"""Error taxonomy shared by the gateway, the batch screener and the API."""

from typing import Optional


class ScreeningError(Exception):
    """Base error carrying the HTTP status it maps to."""

    status_code = 500
    default_message = "Internal error"
    fatal = False

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidRequest(ScreeningError):
    status_code = 400
    default_message = "Invalid request"


class Unauthorized(ScreeningError):
    status_code = 401
    default_message = "Unauthorized"


class UpstreamPaymentRequired(ScreeningError):
    status_code = 402
    default_message = "Payment required. Please add credits to continue."


class Forbidden(ScreeningError):
    status_code = 403
    default_message = "You do not have access to this job"


class NotFound(ScreeningError):
    status_code = 404
    default_message = "Job not found"


class UpstreamRateLimited(ScreeningError):
    status_code = 429
    default_message = "Rate limit exceeded. Please try again later."


class UpstreamError(ScreeningError):
    default_message = "AI service request failed"


class ResponseParseError(ScreeningError):
    default_message = "Failed to parse AI analysis response"


class ConfigurationError(ScreeningError):
    # Missing server configuration; retrying cannot help.
    default_message = "AI service is not configured"
    fatal = True


class PersistenceError(ScreeningError):
    default_message = "Failed to save candidate"
