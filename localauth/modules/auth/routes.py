"""Authentication API routes.

Service errors are translated to HTTP responses by the handlers in
``localauth.api.errors``.
"""

from dataclasses import replace
from typing import Annotated
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status

from localauth.modules.auth.exceptions import IncorrectCredentialsError
from localauth.modules.auth.models import User
from localauth.modules.auth.schemas import (
    LoginRequest,
    PasswordResetComplete,
    PasswordResetRequest,
    UserCreate,
    UserResponse,
    UserUpdate,
)
from localauth.modules.auth.service import AuthService
from localauth.web.dependencies import require_superuser

logger = structlog.get_logger()

router = APIRouter(prefix="/api/auth", tags=["authentication"])


def get_auth_service(request: Request) -> AuthService:
    """Get the auth service configured at startup."""
    service: AuthService | None = getattr(request.app.state, "auth_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Authentication service not configured",
        )
    return service


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
SuperuserDep = Annotated[User, Depends(require_superuser)]


@router.post(
    "/users",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new local account",
)
async def register(data: UserCreate, auth_service: AuthServiceDep) -> UserResponse:
    """Register a new user."""
    user = await auth_service.register_local(
        data.email,
        data.password,
        data.first_name,
        data.last_name,
    )
    return UserResponse.from_user(user)


@router.get("/users/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: UUID, auth_service: AuthServiceDep, _admin: SuperuserDep
) -> UserResponse:
    """Get a user by id, including deleted users. Superusers only."""
    return UserResponse.from_user(await auth_service.get_by_id(user_id))


@router.put("/users/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: UUID,
    data: UserUpdate,
    auth_service: AuthServiceDep,
    _admin: SuperuserDep,
) -> UserResponse:
    """Update a user's details. Superusers only."""
    current = await auth_service.get_by_id(user_id)
    user = await auth_service.update(
        replace(
            current,
            email=data.email,
            first_name=data.first_name,
            last_name=data.last_name,
            is_active=data.is_active,
            avatar_url=data.avatar_url,
        ),
        new_password=data.password,
    )
    return UserResponse.from_user(user)


@router.delete("/users/{user_id}", response_model=UserResponse)
async def delete_user(
    user_id: UUID, auth_service: AuthServiceDep, _admin: SuperuserDep
) -> UserResponse:
    """Soft-delete a user and return the tombstoned record. Superusers only."""
    return UserResponse.from_user(await auth_service.delete(user_id))


@router.post("/authenticate", response_model=UserResponse)
async def authenticate(data: LoginRequest, auth_service: AuthServiceDep) -> UserResponse:
    """Check credentials and return the matching user."""
    return UserResponse.from_user(
        await auth_service.authenticate(data.email, data.password)
    )


@router.post("/password-reset", status_code=status.HTTP_202_ACCEPTED)
async def begin_password_reset(
    data: PasswordResetRequest, auth_service: AuthServiceDep
) -> dict[str, str]:
    """Email a password reset token.

    The response is the same whether or not the address has an account.
    """
    try:
        await auth_service.begin_password_reset(data.email)
    except IncorrectCredentialsError as e:
        logger.info("password_reset_not_started", error_type=type(e).__name__)
    return {"status": "sent"}


@router.post("/password-reset/complete", response_model=UserResponse)
async def complete_password_reset(
    data: PasswordResetComplete, auth_service: AuthServiceDep
) -> UserResponse:
    """Set a new password using a reset token."""
    user = await auth_service.complete_password_reset(
        data.token, data.email, data.password
    )
    return UserResponse.from_user(user)
