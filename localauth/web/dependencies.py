"""Web dependencies for authentication and CSRF protection."""

from typing import Annotated
from urllib.parse import quote

from fastapi import Depends, Form, Header, Request
from fastapi.responses import RedirectResponse
from starlette.exceptions import HTTPException

from localauth.modules.auth.models import User
from localauth.web.session import csrf_token_matches, get_auth_context

LOGIN_URL = "/auth/login/"


class AuthenticationRequired(HTTPException):
    """Exception raised when authentication is required.

    This triggers a redirect to the login page.
    """

    def __init__(self) -> None:
        super().__init__(status_code=303, detail="Authentication required")


class CSRFValidationError(HTTPException):
    """Raised when a form post carries a missing or wrong CSRF token."""

    def __init__(self) -> None:
        super().__init__(status_code=403, detail="CSRF token missing or invalid")


def get_current_user(request: Request) -> User:
    """Get the user resolved for this request; anonymous if not logged in."""
    return get_auth_context(request).user


def require_auth(
    user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Dependency that requires a logged-in, active user.

    Raises:
        AuthenticationRequired: If the request is anonymous.
    """
    if not user.is_authenticated:
        raise AuthenticationRequired()
    return user


def require_superuser(
    user: Annotated[User, Depends(require_auth)],
) -> User:
    """Dependency that requires a superuser.

    Raises:
        HTTPException: 403 if the user is not a superuser.
    """
    if not user.is_superuser:
        raise HTTPException(status_code=403, detail="Superuser access required")
    return user


async def verify_csrf(
    request: Request,
    csrf_token: Annotated[str | None, Form()] = None,
    x_csrf_token: Annotated[str | None, Header()] = None,
) -> None:
    """Check the CSRF token from the form field or the X-CSRF-Token header.

    Raises:
        CSRFValidationError: If neither matches the session's token.
    """
    if not csrf_token_matches(request, csrf_token or x_csrf_token):
        raise CSRFValidationError()


# Exception handler for AuthenticationRequired
async def auth_exception_handler(
    request: Request, _exc: AuthenticationRequired
) -> RedirectResponse:
    """Handle AuthenticationRequired by redirecting to login.

    The next parameter preserves the original URL for post-login redirect.
    """
    login_url = f"{LOGIN_URL}?next={quote(request.url.path)}"
    return RedirectResponse(url=login_url, status_code=303)
