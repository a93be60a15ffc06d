"""Tests for report e-mail delivery."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from cv_screener_agents.tools.email_sender import EmailSender
from cv_screener_core.exceptions import EmailDeliveryError


@pytest.mark.unit
class TestEmailSender:
    """Test SMTP delivery and error wrapping."""

    async def test_smtp_send_with_attachment(self, tmp_path: Path) -> None:
        report = tmp_path / "a1_results.csv"
        report.write_text("name,overall\nJane,8.0\n")
        sender = EmailSender(smtp_host="smtp.test", smtp_user="u", smtp_password="p")

        with patch("aiosmtplib.send", new_callable=AsyncMock) as send:
            ok = await sender.send("hr@test.local", "Results", "<p>hi</p>", "hi", [report])

        assert ok is True
        message = send.call_args.args[0]
        assert message["To"] == "hr@test.local"
        assert [p.get_filename() for p in message.iter_attachments()] == ["a1_results.csv"]
        assert send.call_args.kwargs["hostname"] == "smtp.test"
        assert send.call_args.kwargs["username"] == "u"

    async def test_missing_attachments_skipped(self, tmp_path: Path) -> None:
        sender = EmailSender()
        with patch("aiosmtplib.send", new_callable=AsyncMock) as send:
            await sender.send("hr@test.local", "s", "<p/>", "t", [tmp_path / "gone.csv"])
        assert list(send.call_args.args[0].iter_attachments()) == []

    async def test_smtp_failure_wrapped(self) -> None:
        sender = EmailSender()
        with patch("aiosmtplib.send", new_callable=AsyncMock, side_effect=OSError("refused")):
            with pytest.raises(EmailDeliveryError, match="refused"):
                await sender.send("hr@test.local", "s", "<p/>", "t")
