class AppError(Exception):
    """Base class for all voicebot errors."""

    status_code = 500
    code = "internal_error"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class InvalidRequestError(AppError):
    """Request could not be understood (400)."""

    status_code = 400
    code = "invalid_request"


class AuthenticationError(AppError):
    """Webhook call is missing the expected secret token (401)."""

    status_code = 401
    code = "unauthorized"


class RequestTooLargeError(AppError):
    """Webhook body exceeds the configured limit (413)."""

    status_code = 413
    code = "request_too_large"


class ConfigurationError(AppError):
    """Credentials or settings are missing or invalid (500)."""

    status_code = 500
    code = "configuration_error"


class ExternalServiceError(AppError):
    """Telegram or a provider failed or returned an invalid response (502)."""

    status_code = 502
    code = "external_service_error"
