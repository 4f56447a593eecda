"""
FastAPI dependencies - Dependency injection factories.

This module builds the registry and its adapters from settings and
provides Depends() factories for injecting them into routes. The
registry holds live state, so one instance is created at startup and
shared through app.state.
"""

from datetime import timedelta

from fastapi import Request
from psycopg_pool import ConnectionPool

from src.adapters.repository.memory import InMemoryVerificationStore
from src.adapters.repository.postgres import PostgresVerificationStore
from src.adapters.smtp.console import ConsoleNotifier
from src.adapters.smtp.oauth import RefreshTokenSource
from src.adapters.smtp.smtp import OAuth2Login, PasswordLogin, SmtpCredentials, SmtpNotifier
from src.adapters.templates.renderer import JinjaMessageRenderer
from src.config.settings import Settings
from src.domain.ports import Notifier, VerificationStore
from src.domain.verification import VerificationCodeRegistry


def build_store(settings: Settings, pool: ConnectionPool | None = None) -> VerificationStore:
    """Create the store selected by settings.store_backend."""
    if settings.store_backend == "postgres":
        if pool is None:
            raise ValueError("PostgreSQL store requires a connection pool")
        return PostgresVerificationStore(pool)
    return InMemoryVerificationStore()


def build_smtp_credentials(settings: Settings) -> SmtpCredentials:
    """Pick the SMTP credential strategy selected by settings.smtp_auth."""
    if settings.smtp_auth == "oauth2":
        token_source = RefreshTokenSource(
            client_id=settings.oauth_client_id,
            client_secret=settings.oauth_client_secret,
            refresh_token=settings.oauth_refresh_token,
            token_url=settings.oauth_token_url,
            timeout=settings.smtp_timeout_seconds,
        )
        return OAuth2Login(settings.smtp_username, token_source)
    # password and app_password differ only in where the secret comes from
    return PasswordLogin(settings.smtp_username, settings.smtp_password)


def build_notifier(settings: Settings) -> Notifier:
    """Create the notifier selected by settings.notifier."""
    if settings.notifier == "smtp":
        return SmtpNotifier(
            host=settings.smtp_host,
            port=settings.smtp_port,
            sender=settings.smtp_from or settings.smtp_username,
            credentials=build_smtp_credentials(settings),
            timeout=settings.smtp_timeout_seconds,
        )
    return ConsoleNotifier()


def build_registry(
    settings: Settings, store: VerificationStore, notifier: Notifier
) -> VerificationCodeRegistry:
    """
    Create the verification registry with injected dependencies.

    Wires together the store, notifier and message renderer for the
    domain registry.
    """
    return VerificationCodeRegistry(
        store=store,
        notifier=notifier,
        renderer=JinjaMessageRenderer(settings.app_name),
        code_ttl=timedelta(seconds=settings.code_ttl_seconds),
        resend_cooldown=timedelta(seconds=settings.resend_cooldown_seconds),
        max_attempts=settings.max_attempts,
    )


def get_registry(request: Request) -> VerificationCodeRegistry:
    """
    Get the shared registry from app state.

    The registry is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.registry
