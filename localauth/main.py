"""FastAPI application entry point."""

import asyncio
import contextlib
from collections.abc import AsyncGenerator

import structlog
from fastapi import FastAPI
from starlette.middleware.sessions import SessionMiddleware

from localauth.api.errors import register_exception_handlers
from localauth.api.health import router as health_router
from localauth.config import Settings, get_settings
from localauth.infrastructure.database import init_database
from localauth.infrastructure.email import (
    EmailTransport,
    LoggingTransport,
    MailgunTransport,
)
from localauth.infrastructure.observability import (
    configure_logging,
    init_observability,
    shutdown_observability,
)
from localauth.modules.auth.notifications import (
    EmailTemplateConfig,
    EmailTemplates,
    NotificationDispatcher,
)
from localauth.modules.auth.repository import UserRepository
from localauth.modules.auth.routes import router as auth_api_router
from localauth.modules.auth.service import PASSWORD_RESET_TTL, AuthService
from localauth.modules.nonce import (
    InMemoryTokenStore,
    SQLiteTokenStore,
    TokenService,
    TokenStore,
)
from localauth.web.auth_routes import router as auth_web_router
from localauth.web.dependencies import AuthenticationRequired, auth_exception_handler
from localauth.web.routes import router as web_router
from localauth.web.session import AuthContextMiddleware

logger = structlog.get_logger()


def build_email_transport(settings: Settings) -> EmailTransport:
    """Use Mailgun when credentials are configured, else log messages."""
    if settings.mailgun_api_key is None or not settings.mailgun_domain:
        logger.warning("email_transport_logging_only", reason="mailgun not configured")
        return LoggingTransport()

    return MailgunTransport(
        domain=settings.mailgun_domain,
        api_key=settings.mailgun_api_key.get_secret_value(),
        base_url=settings.mailgun_base_url,
        timeout_seconds=settings.email_timeout_seconds,
        circuit_breaker_fail_max=settings.circuit_breaker_fail_max,
        circuit_breaker_timeout=settings.circuit_breaker_timeout,
    )


def build_email_templates(settings: Settings) -> EmailTemplates:
    """Notification metadata from settings, keeping the default bodies."""
    defaults = EmailTemplates()

    def configured(base: EmailTemplateConfig, subject: str) -> EmailTemplateConfig:
        # The plain-text reset link points at the configured page too
        plain_text = base.plain_text.replace(
            defaults.reset_url_base, settings.password_reset_url_base
        )
        return EmailTemplateConfig(
            from_address=settings.email_from,
            subject=subject,
            plain_text=plain_text,
            template_id=base.template_id,
        )

    return EmailTemplates(
        welcome=configured(defaults.welcome, settings.welcome_email_subject),
        password_reset=configured(
            defaults.password_reset, settings.password_reset_email_subject
        ),
        password_reset_confirm=configured(
            defaults.password_reset_confirm,
            settings.password_reset_confirm_email_subject,
        ),
        app_name=settings.app_name,
        reset_url_base=settings.password_reset_url_base,
    )


async def purge_tokens_periodically(tokens: TokenService, interval: float) -> None:
    """Delete spent and expired tokens until cancelled."""
    while True:
        await asyncio.sleep(interval)
        try:
            await tokens.purge_expired()
        except Exception as e:
            logger.error(
                "token_purge_failed", error=str(e), error_type=type(e).__name__
            )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application.

    Args:
        settings: Settings to use; defaults to ``get_settings()``.
    """
    settings = settings or get_settings()
    configure_logging(json_logs=settings.log_json)

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
        """Application lifespan handler for startup/shutdown."""
        database = await init_database(settings.database_path)
        app.state.database = database

        store: TokenStore
        if settings.token_backend == "memory":
            store = InMemoryTokenStore()
        else:
            store = SQLiteTokenStore(database)
        tokens = TokenService(store)

        transport = build_email_transport(settings)
        app.state.email_transport = transport
        notifier = NotificationDispatcher(transport, build_email_templates(settings))

        app.state.auth_service = AuthService(UserRepository(database), tokens, notifier)
        logger.info(
            "auth_service_initialized",
            token_backend=settings.token_backend,
            reset_ttl=str(PASSWORD_RESET_TTL),
        )

        purge_task = asyncio.create_task(
            purge_tokens_periodically(tokens, settings.token_purge_interval_seconds)
        )

        yield

        purge_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await purge_task

        if isinstance(transport, MailgunTransport):
            await transport.aclose()
        await database.disconnect()

        if settings.otel_enabled:
            shutdown_observability()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )
    app.dependency_overrides[get_settings] = lambda: settings

    if settings.otel_enabled:
        init_observability(
            settings.app_name,
            settings.app_version,
            otlp_endpoint=settings.otel_endpoint,
            console_export=settings.otel_console_export,
            sample_rate=settings.otel_sample_rate,
            app=app,
        )

    # Order matters: the session middleware must wrap the auth context
    app.add_middleware(AuthContextMiddleware)
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret_key.get_secret_value(),
        session_cookie=settings.session_cookie_name,
        max_age=settings.session_max_age_seconds,
        https_only=settings.session_https_only,
    )

    # Error responses
    register_exception_handlers(app)
    app.add_exception_handler(
        AuthenticationRequired,
        auth_exception_handler,  # type: ignore[arg-type]
    )

    # Register routers
    app.include_router(health_router, prefix="/health", tags=["health"])
    app.include_router(auth_api_router)
    app.include_router(auth_web_router, tags=["auth-web"])
    app.include_router(web_router, tags=["web"])

    return app


app = create_app()
