"""Map service exceptions to JSON error responses."""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from localauth.modules.auth.exceptions import (
    AlreadyExistsError,
    AuthError,
    InconsistentIDsError,
    IncorrectCredentialsError,
    InvalidAddressError,
    InvalidIDError,
    InvalidNameError,
    InvalidPasswordError,
    NotFoundError,
    NotImplementedFeatureError,
)
from localauth.modules.nonce.exceptions import InvalidTokenError

logger = structlog.get_logger()

# Most specific first; the first isinstance match wins
STATUS_CODES: list[tuple[type[Exception], int]] = [
    (InvalidIDError, 400),
    (InvalidAddressError, 422),
    (InvalidPasswordError, 422),
    (InvalidNameError, 422),
    (AlreadyExistsError, 409),
    (NotFoundError, 404),
    (IncorrectCredentialsError, 401),
    (InconsistentIDsError, 409),
    (NotImplementedFeatureError, 501),
    (InvalidTokenError, 400),
]


def status_for(exc: Exception) -> int:
    """Return the HTTP status for a service exception (500 if unmapped)."""
    for exc_type, status_code in STATUS_CODES:
        if isinstance(exc, exc_type):
            return status_code
    return 500


async def service_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render a service exception as ``{"error": ..., "message": ...}``."""
    status_code = status_for(exc)
    logger.info(
        "request_rejected",
        path=request.url.path,
        status_code=status_code,
        error_type=type(exc).__name__,
    )
    return JSONResponse(
        status_code=status_code,
        content={"error": type(exc).__name__, "message": str(exc)},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the JSON handlers for auth and token errors."""
    app.add_exception_handler(AuthError, service_error_handler)
    app.add_exception_handler(InvalidTokenError, service_error_handler)
