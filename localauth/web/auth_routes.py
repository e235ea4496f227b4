"""Web authentication routes: login, logout, registration and password reset.

Form posts are CSRF-checked. Service errors are reported to the user as
flash messages followed by a redirect; nothing here renders an error page.
"""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Form, Request, Response
from fastapi.responses import HTMLResponse, RedirectResponse

from localauth.modules.auth.exceptions import (
    AlreadyExistsError,
    IncorrectCredentialsError,
    InvalidAddressError,
    InvalidNameError,
    InvalidPasswordError,
    InvalidTokenError,
)
from localauth.modules.auth.models import User
from localauth.modules.auth.routes import AuthServiceDep
from localauth.modules.auth.schemas import UserResponse
from localauth.web.dependencies import require_auth, verify_csrf
from localauth.web.session import (
    AuthContext,
    flash,
    get_auth_context,
    login_user,
    logout_user,
)
from localauth.web.templates import templates

logger = structlog.get_logger()

router = APIRouter(prefix="/auth")

INCORRECT_CREDENTIALS_MESSAGE = "Error: Username and/or Password was incorrect!"
LOGGED_OUT_MESSAGE = "You have been logged out."
RESET_SENT_MESSAGE = (
    "If an account exists for that address, a password reset link has been sent."
)
RESET_INVALID_MESSAGE = "Error: That password reset link is invalid or has expired."
RESET_DONE_MESSAGE = "Your password has been reset. Please log in."
ACCOUNT_EXISTS_MESSAGE = "Error: An account with that email address already exists."


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=303)


def _safe_next(next_url: str | None) -> str:
    """Only follow same-site relative redirects."""
    if next_url and next_url.startswith("/") and not next_url.startswith("//"):
        return next_url
    return "/"


def _page_context(request: Request) -> AuthContext:
    ctx = get_auth_context(request)
    ctx.data["login_url"] = request.app.url_path_for("login")
    ctx.data["register_url"] = request.app.url_path_for("register")
    ctx.data["forgot_password_url"] = request.app.url_path_for("forgot_password")
    return ctx


def _render(
    request: Request, name: str, ctx: AuthContext, **extra: object
) -> Response:
    return templates.TemplateResponse(
        request=request,
        name=name,
        context={"auth": ctx, "app_name": request.app.title, **extra},
    )


@router.get("/login/", response_class=HTMLResponse, name="login")
async def login_page(request: Request, next: str | None = None) -> Response:
    """Render the login page, or redirect home if already logged in."""
    ctx = _page_context(request)
    if ctx.is_authenticated:
        return _redirect(_safe_next(next))
    return _render(request, "auth/login.html", ctx, next=next)


@router.post("/login/", dependencies=[Depends(verify_csrf)])
async def login_submit(
    request: Request,
    auth_service: AuthServiceDep,
    email: Annotated[str, Form()],
    password: Annotated[str, Form()],
    next: Annotated[str | None, Form()] = None,
) -> Response:
    """Handle login form submission."""
    try:
        user = await auth_service.authenticate(email, password)
    except (IncorrectCredentialsError, InvalidAddressError, InvalidPasswordError) as e:
        logger.warning("login_failed", error_type=type(e).__name__)
        flash(request, INCORRECT_CREDENTIALS_MESSAGE, "error")
        return _redirect(request.app.url_path_for("login"))

    login_user(request, user)
    return _redirect(_safe_next(next))


@router.get("/logout/", name="logout")
async def logout(request: Request) -> Response:
    """Log out and return to the login page."""
    logout_user(request)
    flash(request, LOGGED_OUT_MESSAGE)
    return _redirect(request.app.url_path_for("login"))


@router.get("/register/", response_class=HTMLResponse, name="register")
async def register_page(request: Request) -> Response:
    """Render the registration page, or redirect home if already logged in."""
    ctx = _page_context(request)
    if ctx.is_authenticated:
        return _redirect("/")
    return _render(request, "auth/register.html", ctx)


@router.post("/register/", dependencies=[Depends(verify_csrf)])
async def register_submit(
    request: Request,
    auth_service: AuthServiceDep,
    email: Annotated[str, Form()],
    password: Annotated[str, Form()],
    first_name: Annotated[str, Form()],
    last_name: Annotated[str, Form()],
) -> Response:
    """Create a local account and log it in."""
    try:
        user = await auth_service.register_local(email, password, first_name, last_name)
    except AlreadyExistsError:
        flash(request, ACCOUNT_EXISTS_MESSAGE, "error")
        return _redirect(request.app.url_path_for("register"))
    except (InvalidAddressError, InvalidPasswordError, InvalidNameError) as e:
        flash(request, f"Error: {e}", "error")
        return _redirect(request.app.url_path_for("register"))

    login_user(request, user)
    flash(request, f"Welcome, {user.first_name}!", "info")
    return _redirect("/")


@router.get(
    "/forgot-password/", response_class=HTMLResponse, name="forgot_password"
)
async def forgot_password_page(request: Request) -> Response:
    """Render the password reset request form."""
    return _render(request, "auth/forgot_password.html", _page_context(request))


@router.post("/forgot-password/", dependencies=[Depends(verify_csrf)])
async def forgot_password_submit(
    request: Request,
    auth_service: AuthServiceDep,
    email: Annotated[str, Form()],
) -> Response:
    """Start a password reset.

    The same message is shown whether or not the address has an account.
    """
    try:
        await auth_service.begin_password_reset(email)
    except (IncorrectCredentialsError, InvalidAddressError) as e:
        logger.info("password_reset_not_started", error_type=type(e).__name__)

    flash(request, RESET_SENT_MESSAGE, "info")
    return _redirect(request.app.url_path_for("login"))


@router.get(
    "/forgot-password/{token}", response_class=HTMLResponse, name="reset_password"
)
async def reset_password_page(request: Request, token: str) -> Response:
    """Render the new-password form for a reset token."""
    ctx = _page_context(request)
    ctx.data["reset_url"] = request.app.url_path_for("reset_password", token=token)
    return _render(request, "auth/reset_password.html", ctx)


@router.post("/forgot-password/{token}", dependencies=[Depends(verify_csrf)])
async def reset_password_submit(
    request: Request,
    auth_service: AuthServiceDep,
    token: str,
    email: Annotated[str, Form()],
    password: Annotated[str, Form()],
) -> Response:
    """Complete a password reset."""
    try:
        await auth_service.complete_password_reset(token, email, password)
    except InvalidPasswordError as e:
        flash(request, f"Error: {e}", "error")
        return _redirect(request.app.url_path_for("reset_password", token=token))
    except (InvalidTokenError, IncorrectCredentialsError, InvalidAddressError):
        flash(request, RESET_INVALID_MESSAGE, "error")
        return _redirect(request.app.url_path_for("forgot_password"))

    flash(request, RESET_DONE_MESSAGE, "info")
    return _redirect(request.app.url_path_for("login"))


@router.get("/me", response_model=UserResponse)
async def me(user: Annotated[User, Depends(require_auth)]) -> UserResponse:
    """Return the logged-in user."""
    return UserResponse.from_user(user)
