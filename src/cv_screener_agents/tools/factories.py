"""Factory functions for creating tool instances from settings."""

from __future__ import annotations

from typing import TYPE_CHECKING

from cv_screener_core.interfaces.auth import TokenVerifier

if TYPE_CHECKING:
    from cv_screener_agents.tools.email_sender import EmailSender
    from cv_screener_core.config.settings import Settings


def create_token_verifier(settings: Settings) -> TokenVerifier:
    """Create the bearer-token verifier for the configured auth provider."""
    from cv_screener_agents.tools.auth_client import SupabaseAuthClient

    return SupabaseAuthClient(
        base_url=settings.auth_url,
        api_key=settings.auth_api_key.get_secret_value() if settings.auth_api_key else "",
        timeout=settings.auth_timeout_seconds,
    )


def create_email_sender(settings: Settings) -> EmailSender:
    """Create an e-mail sender for the configured provider."""
    from cv_screener_agents.tools.email_sender import EmailSender

    return EmailSender(
        provider=settings.email_provider,
        from_email=settings.email_from,
        smtp_host=settings.smtp_host,
        smtp_port=settings.smtp_port,
        smtp_user=settings.smtp_user,
        smtp_password=settings.smtp_password.get_secret_value() if settings.smtp_password else "",
        sendgrid_api_key=(
            settings.sendgrid_api_key.get_secret_value() if settings.sendgrid_api_key else ""
        ),
    )
