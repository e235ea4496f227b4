"""Health check endpoints."""

from typing import Annotated, Literal

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from localauth.config import Settings, get_settings

logger = structlog.get_logger()
router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: Literal["healthy", "unhealthy"]
    version: str
    token_backend: str
    email_transport: str


@router.get("", response_model=HealthResponse)
async def health_check(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
) -> HealthResponse:
    """Report whether the service can reach its user database.

    The email transport is reported but not probed.

    Raises:
        HTTPException: 503 if the database is not connected or not answering.
    """
    state = request.app.state
    try:
        await state.database.fetch_one("SELECT COUNT(*) FROM users")
    except Exception as e:
        logger.error("health_check_failed", error=str(e), error_type=type(e).__name__)
        raise HTTPException(
            status_code=503,
            detail=f"Service unhealthy: {type(e).__name__}",
        ) from e

    transport = getattr(state, "email_transport", None)
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        token_backend=settings.token_backend,
        email_transport=getattr(transport, "TRANSPORT_NAME", "none"),
    )
