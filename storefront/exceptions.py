"""Domain errors and their JSON rendering."""
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class StorefrontError(Exception):
    """Base error. `code` is stable and safe for clients to branch on."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, code: Optional[str] = None, status_code: Optional[int] = None):
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class AlreadyExistsError(StorefrontError):
    """Identity is already registered."""

    status_code = 409
    code = "ALREADY_EXISTS"


class InvalidOrExpiredError(StorefrontError):
    """OTP mismatch, reuse or timeout. The three cases are not distinguished."""

    status_code = 400
    code = "INVALID_OR_EXPIRED"

    def __init__(self, message: str = "Invalid or expired otp"):
        super().__init__(message)


class ValidationError(StorefrontError):
    status_code = 400
    code = "VALIDATION_ERROR"


class ConflictError(StorefrontError):
    status_code = 409
    code = "CONFLICT"


class DeliveryError(StorefrontError):
    """Email/SMS channel failed. The pending code stays valid."""

    status_code = 503
    code = "DELIVERY_FAILED"


class ConfigurationError(StorefrontError):
    code = "CONFIGURATION_ERROR"


class OnboardingError(StorefrontError):
    """Unexpected failure inside the onboarding transaction (already rolled back)."""

    code = "ONBOARDING_FAILED"


class AuthenticationError(StorefrontError):
    status_code = 401
    code = "AUTHENTICATION_FAILED"


class SubscriptionError(StorefrontError):
    """Raised by the subscription gate dependencies; status and code come from the gate decision."""

    status_code = 403
    code = "SUBSCRIPTION_REQUIRED"


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StorefrontError)
    async def storefront_error_handler(request: Request, exc: StorefrontError):
        if exc.status_code >= 500:
            logger.error("[%s] %s %s: %s", exc.code, request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": exc.message, "code": exc.code},
        )
