"""Per-request authentication context built from the session.

``AuthContextMiddleware`` runs inside Starlette's ``SessionMiddleware``. For
every request it reads the identity reference that login and logout store in
the session, collects queued flash messages, makes sure a CSRF token exists,
and publishes the result as ``request.state.auth``. Because the session is
written back when the response starts, anything a handler changes (logging a
user in or out, queuing a flash) is persisted with that response. When a
handler fails before responding, the middleware answers with a plain 500 so
the session is still written back. Flashes drained for that request are
queued again for the next one.
"""

import secrets
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol
from uuid import UUID

import structlog
from starlette.requests import HTTPConnection
from starlette.responses import PlainTextResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from localauth.modules.auth.models import User

logger = structlog.get_logger()

# Session attribute holding the logged-in user snapshot
SESSION_USER_KEY = "auth.user"

_FLASHES_KEY = "auth.flashes"
_CSRF_KEY = "auth.csrf_token"

# Keys in request.state
STATE_CONTEXT_KEY = "auth"
STATE_SERIALIZER_KEY = "auth_serializer"

FLASH_CATEGORIES = ("message", "info", "warn", "error")


class SessionSerializer(Protocol):
    """Converts users to and from the JSON-safe value kept in the session."""

    def dumps(self, user: User) -> dict[str, Any]: ...

    def loads(self, data: Any) -> User: ...


class UserSessionSerializer:
    """Default session serializer for ``User``.

    The password hash is left out: the session cookie is signed, not
    encrypted.
    """

    def dumps(self, user: User) -> dict[str, Any]:
        if user.id is None:
            raise ValueError("cannot store an unsaved user in the session")
        return {
            "id": str(user.id),
            "email": user.email,
            "first_name": user.first_name,
            "last_name": user.last_name,
            "is_active": user.is_active,
            "is_superuser": user.is_superuser,
            "is_deleted": user.is_deleted,
            "created_at": _dump_datetime(user.created_at),
            "updated_at": _dump_datetime(user.updated_at),
            "deleted_at": _dump_datetime(user.deleted_at),
            "avatar_url": user.avatar_url,
        }

    def loads(self, data: Any) -> User:
        """Rebuild a user.

        Raises:
            KeyError, TypeError, ValueError: If ``data`` has the wrong shape.
        """
        if not isinstance(data, dict):
            raise TypeError(f"expected a dict, got {type(data).__name__}")
        return User(
            id=UUID(data["id"]),
            email=str(data["email"]),
            password_hash="",
            first_name=str(data["first_name"]),
            last_name=str(data["last_name"]),
            is_active=bool(data["is_active"]),
            is_superuser=bool(data["is_superuser"]),
            is_deleted=bool(data["is_deleted"]),
            created_at=_load_datetime(data.get("created_at")),
            updated_at=_load_datetime(data.get("updated_at")),
            deleted_at=_load_datetime(data.get("deleted_at")),
            avatar_url=str(data.get("avatar_url") or ""),
        )


def _dump_datetime(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _load_datetime(value: Any) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


@dataclass
class AuthContext:
    """Identity and page state for the current request."""

    user: User
    csrf_token: str
    flashes: list[str] = field(default_factory=list)
    flashes_info: list[str] = field(default_factory=list)
    flashes_warn: list[str] = field(default_factory=list)
    flashes_error: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def is_authenticated(self) -> bool:
        return self.user.is_authenticated


class AuthContextMiddleware:
    """ASGI middleware that attaches an ``AuthContext`` to each request.

    Never fails a request because of session content: a missing or
    malformed identity reference yields the anonymous user.
    """

    def __init__(self, app: ASGIApp, serializer: SessionSerializer | None = None) -> None:
        self.app = app
        self.serializer = serializer or UserSessionSerializer()

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        if "session" not in scope:
            raise RuntimeError(
                "AuthContextMiddleware must be installed inside SessionMiddleware"
            )

        session = scope["session"]
        queued = session.get(_FLASHES_KEY)
        state = scope.setdefault("state", {})
        state[STATE_SERIALIZER_KEY] = self.serializer
        state[STATE_CONTEXT_KEY] = self.build_context(session)

        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception:
            # Answer through SessionMiddleware so the session still gets saved
            if not response_started:
                if isinstance(queued, list):
                    session[_FLASHES_KEY] = queued + session.get(_FLASHES_KEY, [])
                response = PlainTextResponse("Internal Server Error", status_code=500)
                await response(scope, receive, send)
            raise

    def build_context(self, session: dict[str, Any]) -> AuthContext:
        """Resolve the user, drain flashes and ensure a CSRF token."""
        context = AuthContext(
            user=self._resolve_user(session),
            csrf_token=_ensure_csrf_token(session),
        )

        buckets = {
            "message": context.flashes,
            "info": context.flashes_info,
            "warn": context.flashes_warn,
            "error": context.flashes_error,
        }
        queued = session.pop(_FLASHES_KEY, None)
        if isinstance(queued, list):
            for entry in queued:
                if (
                    isinstance(entry, list)
                    and len(entry) == 2
                    and entry[0] in buckets
                    and isinstance(entry[1], str)
                ):
                    buckets[entry[0]].append(entry[1])

        return context

    def _resolve_user(self, session: dict[str, Any]) -> User:
        raw = session.get(SESSION_USER_KEY)
        if raw is None:
            return User.anonymous()

        try:
            return self.serializer.loads(raw)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("session_user_malformed", error_type=type(e).__name__)
            session.pop(SESSION_USER_KEY, None)
            return User.anonymous()


def _ensure_csrf_token(session: dict[str, Any]) -> str:
    token = session.get(_CSRF_KEY)
    if not isinstance(token, str) or not token:
        token = secrets.token_urlsafe(32)
        session[_CSRF_KEY] = token
    return token


def get_auth_context(conn: HTTPConnection) -> AuthContext:
    """Return the context for this request.

    Falls back to an anonymous context when the middleware is not
    installed, so callers never have to handle its absence.
    """
    context = conn.scope.get("state", {}).get(STATE_CONTEXT_KEY)
    if isinstance(context, AuthContext):
        return context
    return AuthContext(user=User.anonymous(), csrf_token="")


def _serializer(conn: HTTPConnection) -> SessionSerializer:
    serializer = conn.scope.get("state", {}).get(STATE_SERIALIZER_KEY)
    return serializer or UserSessionSerializer()


def login_user(conn: HTTPConnection, user: User) -> None:
    """Store ``user`` as the session's identity and rotate the CSRF token."""
    conn.session[SESSION_USER_KEY] = _serializer(conn).dumps(user)
    conn.session.pop(_CSRF_KEY, None)

    context = get_auth_context(conn)
    context.user = user
    context.csrf_token = _ensure_csrf_token(conn.session)

    logger.info("session_login", user_id=str(user.id))


def logout_user(conn: HTTPConnection) -> None:
    """Clear the session's identity."""
    snapshot = conn.session.pop(SESSION_USER_KEY, None)
    get_auth_context(conn).user = User.anonymous()

    if isinstance(snapshot, dict):
        logger.info("session_logout", user_id=snapshot.get("id"))


def flash(conn: HTTPConnection, message: str, category: str = "message") -> None:
    """Queue a one-shot message for the next request that reads the context."""
    if category not in FLASH_CATEGORIES:
        raise ValueError(f"unknown flash category: {category}")
    queued = conn.session.get(_FLASHES_KEY)
    if not isinstance(queued, list):
        queued = []
    queued.append([category, message])
    conn.session[_FLASHES_KEY] = queued


def csrf_token_matches(conn: HTTPConnection, presented: str | None) -> bool:
    """Compare a presented token with the session's in constant time."""
    expected = conn.session.get(_CSRF_KEY)
    if not presented or not isinstance(expected, str):
        return False
    return secrets.compare_digest(presented, expected)
