"""Report e-mail delivery via SendGrid or SMTP."""

from __future__ import annotations

import asyncio
import mimetypes
from email.message import EmailMessage
from pathlib import Path

import structlog

from cv_screener_core.exceptions import EmailDeliveryError

logger = structlog.get_logger()


def _guess_mime(path: Path) -> tuple[str, str]:
    """Return (maintype, subtype) for an attachment."""
    guessed, _ = mimetypes.guess_type(path.name)
    maintype, _, subtype = (guessed or "application/octet-stream").partition("/")
    return maintype, subtype


class EmailSender:
    """Send e-mails via SMTP or SendGrid."""

    def __init__(
        self,
        provider: str = "smtp",
        from_email: str = "noreply@cv-screener.local",
        smtp_host: str = "localhost",
        smtp_port: int = 587,
        smtp_user: str = "",
        smtp_password: str = "",
        sendgrid_api_key: str = "",
    ) -> None:
        """Initialize with email provider configuration."""
        self._provider = provider
        self._from_email = from_email
        self._smtp_host = smtp_host
        self._smtp_port = smtp_port
        self._smtp_user = smtp_user
        self._smtp_password = smtp_password
        self._sendgrid_api_key = sendgrid_api_key

    async def send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: str,
        attachments: list[Path] | None = None,
    ) -> bool:
        """Send an e-mail with optional file attachments."""
        files = [p for p in (attachments or []) if p.exists()]
        try:
            if self._provider == "sendgrid":
                return await self._send_sendgrid(to_email, subject, html_body, text_body, files)
            return await self._send_smtp(to_email, subject, html_body, text_body, files)
        except EmailDeliveryError:
            raise
        except Exception as e:
            logger.error("email_send_failed", to=to_email, error=str(e))
            raise EmailDeliveryError(str(e)) from e

    async def _send_smtp(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: str,
        attachments: list[Path],
    ) -> bool:
        """Send via SMTP using aiosmtplib."""
        import aiosmtplib

        msg = await asyncio.to_thread(
            self._build_message, to_email, subject, html_body, text_body, attachments
        )
        await aiosmtplib.send(
            msg,
            hostname=self._smtp_host,
            port=self._smtp_port,
            username=self._smtp_user or None,
            password=self._smtp_password or None,
            start_tls=True,
        )
        logger.info("email_sent_smtp", to=to_email, attachments=len(attachments))
        return True

    def _build_message(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: str,
        attachments: list[Path],
    ) -> EmailMessage:
        """Build the MIME message (sync, runs in thread)."""
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self._from_email
        msg["To"] = to_email
        msg.set_content(text_body)
        msg.add_alternative(html_body, subtype="html")

        for path in attachments:
            maintype, subtype = _guess_mime(path)
            msg.add_attachment(
                path.read_bytes(),
                maintype=maintype,
                subtype=subtype,
                filename=path.name,
            )
        return msg

    async def _send_sendgrid(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: str,
        attachments: list[Path],
    ) -> bool:
        """Send via SendGrid API."""

        def _send() -> bool:
            import base64

            from sendgrid import SendGridAPIClient
            from sendgrid.helpers.mail import (
                Attachment,
                Content,
                Email,
                Mail,
                To,
            )

            message = Mail(
                from_email=Email(self._from_email),
                to_emails=To(to_email),
                subject=subject,
            )
            message.content = [
                Content("text/plain", text_body),
                Content("text/html", html_body),
            ]

            for path in attachments:
                maintype, subtype = _guess_mime(path)
                attachment = Attachment()
                attachment.file_content = base64.b64encode(path.read_bytes()).decode()
                attachment.file_name = path.name
                attachment.file_type = f"{maintype}/{subtype}"
                message.add_attachment(attachment)

            sg = SendGridAPIClient(self._sendgrid_api_key)
            response = sg.send(message)
            return response.status_code in (200, 201, 202)

        result = await asyncio.to_thread(_send)
        logger.info("email_sent_sendgrid", to=to_email, attachments=len(attachments))
        return result
