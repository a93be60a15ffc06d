"""Notifier agent: e-mails a finished analysis report."""

from __future__ import annotations

import html
import time
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from cv_screener_agents.agents.base import BaseAgent
from cv_screener_agents.tools.factories import create_email_sender
from cv_screener_core.exceptions import EmailDeliveryError
from cv_screener_core.models.analysis import CandidateResult
from cv_screener_core.state import AnalysisState

if TYPE_CHECKING:
    from cv_screener_agents.tools.email_sender import EmailSender
    from cv_screener_core.config.settings import Settings

logger = structlog.get_logger()

TOP_CANDIDATES_IN_EMAIL = 5


def build_email_bodies(title: str, results: list[CandidateResult]) -> tuple[str, str]:
    """Plain-text and minimal HTML bodies listing the top candidates."""
    ranked = sorted(results, key=lambda r: r.overall, reverse=True)[:TOP_CANDIDATES_IN_EMAIL]
    lines = [f"Analysis '{title}' is complete: {len(results)} candidate(s) scored.", ""]
    lines += [f"{i}. {r.name} - {r.overall:.1f}/10" for i, r in enumerate(ranked, start=1)]
    lines += ["", "The full report is attached."]
    text_body = "\n".join(lines)

    items = "".join(
        f"<li>{html.escape(r.name)} &ndash; {r.overall:.1f}/10</li>" for r in ranked
    )
    html_body = (
        f"<p>Analysis <strong>{html.escape(title)}</strong> is complete: "
        f"{len(results)} candidate(s) scored.</p>"
        f"<ol>{items}</ol><p>The full report is attached.</p>"
    )
    return text_body, html_body


class NotifierAgent(BaseAgent):
    """Send the report of an analysis by e-mail."""

    agent_name = "notifier"

    def __init__(self, settings: Settings, email_sender: EmailSender | None = None) -> None:
        """Initialize with settings and an optional e-mail sender."""
        super().__init__(settings)
        self._sender = email_sender or create_email_sender(settings)

    async def run(self, state: AnalysisState) -> AnalysisState:
        """E-mail the report when the request asked for it; failures are not fatal."""
        to_email = state.request.notify_email
        if not to_email:
            return state

        self._log_start({"to": to_email})
        start = time.monotonic()
        try:
            state.email_sent = await self.send_report(
                to_email,
                state.request.title or "CV analysis",
                state.sorted_results(),
                [Path(p) for p in state.output_files],
            )
        except EmailDeliveryError as e:
            self._record_error(state, e)

        self._log_end(time.monotonic() - start, {"email_sent": state.email_sent})
        return state

    async def send_report(
        self,
        to_email: str,
        title: str,
        results: list[CandidateResult],
        attachments: list[Path] | None = None,
    ) -> bool:
        """Send the report e-mail."""
        text_body, html_body = build_email_bodies(title, results)
        return await self._sender.send(
            to_email=to_email,
            subject=f"CV analysis results: {title}",
            html_body=html_body,
            text_body=text_body,
            attachments=attachments,
        )
