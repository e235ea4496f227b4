"""Tests for web dependencies."""

from datetime import UTC, datetime
from typing import Annotated
from uuid import uuid4

import pytest
from fastapi import Depends, FastAPI, Request
from fastapi.testclient import TestClient
from starlette.middleware.sessions import SessionMiddleware

from localauth.modules.auth.models import User
from localauth.web.dependencies import (
    AuthenticationRequired,
    auth_exception_handler,
    require_auth,
    require_superuser,
    verify_csrf,
)
from localauth.web.session import AuthContextMiddleware, get_auth_context, login_user


def make_user(*, is_superuser: bool = False) -> User:
    now = datetime.now(UTC)
    return User(
        id=uuid4(),
        email="jane@example.com",
        password_hash="hashed",
        first_name="Jane",
        last_name="Doe",
        is_active=True,
        is_superuser=is_superuser,
        created_at=now,
        updated_at=now,
    )


@pytest.fixture
def client() -> TestClient:
    app = FastAPI()

    @app.get("/login-as/{role}")
    async def login_as(request: Request, role: str) -> dict[str, str]:
        login_user(request, make_user(is_superuser=role == "admin"))
        return {"csrf_token": get_auth_context(request).csrf_token}

    @app.get("/token")
    async def token(request: Request) -> dict[str, str]:
        return {"csrf_token": get_auth_context(request).csrf_token}

    @app.get("/private")
    async def private(user: Annotated[User, Depends(require_auth)]) -> dict[str, str]:
        return {"email": user.email}

    @app.get("/admin")
    async def admin(
        user: Annotated[User, Depends(require_superuser)],
    ) -> dict[str, str]:
        return {"email": user.email}

    @app.post("/form", dependencies=[Depends(verify_csrf)])
    async def form() -> dict[str, bool]:
        return {"ok": True}

    app.add_exception_handler(
        AuthenticationRequired,
        auth_exception_handler,  # type: ignore[arg-type]
    )
    app.add_middleware(AuthContextMiddleware)
    app.add_middleware(SessionMiddleware, secret_key="test-session-secret")
    return TestClient(app)


class TestRequireAuth:
    """Tests for require_auth."""

    def test_anonymous_redirects_to_login(self, client: TestClient) -> None:
        """Should redirect with the original path as next."""
        response = client.get("/private", follow_redirects=False)

        assert response.status_code == 303
        assert response.headers["location"] == "/auth/login/?next=/private"

    def test_logged_in(self, client: TestClient) -> None:
        """Should pass the user through."""
        client.get("/login-as/user")

        response = client.get("/private")
        assert response.status_code == 200
        assert response.json() == {"email": "jane@example.com"}


class TestRequireSuperuser:
    """Tests for require_superuser."""

    def test_regular_user_forbidden(self, client: TestClient) -> None:
        """Should return 403 for a non-superuser."""
        client.get("/login-as/user")
        assert client.get("/admin").status_code == 403

    def test_superuser_allowed(self, client: TestClient) -> None:
        """Should allow a superuser."""
        client.get("/login-as/admin")
        assert client.get("/admin").status_code == 200


class TestVerifyCsrf:
    """Tests for verify_csrf."""

    def test_missing_token(self, client: TestClient) -> None:
        """Should reject a post without a token."""
        client.get("/token")
        assert client.post("/form", data={}).status_code == 403

    def test_wrong_token(self, client: TestClient) -> None:
        """Should reject a post with a wrong token."""
        client.get("/token")
        assert client.post("/form", data={"csrf_token": "nope"}).status_code == 403

    def test_form_field(self, client: TestClient) -> None:
        """Should accept the session's token in the form."""
        token = client.get("/token").json()["csrf_token"]
        assert client.post("/form", data={"csrf_token": token}).status_code == 200

    def test_header(self, client: TestClient) -> None:
        """Should accept the session's token in the header."""
        token = client.get("/token").json()["csrf_token"]
        response = client.post("/form", headers={"X-CSRF-Token": token})
        assert response.status_code == 200
