"""CLI entrypoint using typer."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TypeVar

import structlog
import typer
from rich.console import Console
from rich.table import Table

from cv_screener_agents.observability import configure_logging, configure_tracing
from cv_screener_agents.orchestrator.container import ServiceContainer, build_services
from cv_screener_core.config.settings import Settings
from cv_screener_core.exceptions import CVScreenerError
from cv_screener_core.models.analysis import (
    AnalysisOutcome,
    AnalysisRequest,
    CandidateResult,
    CVDocument,
)
from cv_screener_core.models.credits import CreditBalance, CreditType, TransactionType
from cv_screener_core.models.events import AnalysisEvent

app = typer.Typer(
    name="cv-screener",
    help="Score candidate CVs against must-have job requirements",
)
credits_app = typer.Typer(help="Inspect and adjust credit balances")
app.add_typer(credits_app, name="credits")

console = Console()
logger = structlog.get_logger()

T = TypeVar("T")

CLI_USER = "cli"


def _load_settings(verbose: bool = False) -> Settings:
    settings = Settings()  # type: ignore[call-arg]
    if verbose:
        settings.log_level = "DEBUG"
    configure_logging(settings)
    return settings


async def _with_services(
    settings: Settings, action: Callable[[ServiceContainer], Awaitable[T]]
) -> T:
    services = await build_services(settings)
    try:
        return await action(services)
    finally:
        await services.close()


def _run(settings: Settings, action: Callable[[ServiceContainer], Awaitable[T]]) -> T:
    """Run an async action with services, turning domain errors into exit code 1."""
    try:
        return asyncio.run(_with_services(settings, action))
    except CVScreenerError as exc:
        console.print(f"[red]Error:[/red] {exc}", style="bold")
        raise typer.Exit(code=1) from exc


def _print_balance(user_id: str, balance: CreditBalance) -> None:
    console.print(f"[bold]Credits for {user_id}:[/bold] {balance.total_credits}")
    console.print(f"  Subscription: {balance.subscription_credits}")
    console.print(f"  Purchased: {balance.purchased_credits}")
    if balance.last_subscription_reset:
        console.print(f"  Last reset: {balance.last_subscription_reset:%Y-%m-%d %H:%M}")


def _results_table(results: list[CandidateResult], requirements: list[str]) -> Table:
    table = Table(title="Ranked candidates")
    table.add_column("#", justify="right")
    table.add_column("Candidate")
    table.add_column("Overall", justify="right")
    for requirement in requirements:
        table.add_column(requirement[:24], justify="right")
    table.add_column("Status")

    for rank, result in enumerate(results, start=1):
        status = "failed" if result.failed else ("cached" if result.cached else "scored")
        table.add_row(
            str(rank),
            result.name,
            f"{result.overall:.1f}",
            *(str(result.scores.get(r, 0)) for r in requirements),
            status,
        )
    return table


@app.command()
def serve(
    host: str | None = typer.Option(None, "--host", help="Bind address (default from settings)"),
    port: int | None = typer.Option(None, "--port", help="Port (default from settings)"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
) -> None:
    """Start the HTTP API."""
    from cv_screener_api.main import run

    run(host=host, port=port, reload=reload)


@app.command()
def analyze(
    job: Path = typer.Argument(..., help="Job description text file", exists=True),
    cvs: list[Path] = typer.Argument(..., help="Candidate CV PDFs", exists=True),
    requirement: list[str] = typer.Option(
        [], "--requirement", "-r", help="Must-have requirement (repeatable)"
    ),
    user: str = typer.Option(CLI_USER, "--user", help="User whose credits are charged"),
    title: str | None = typer.Option(None, "--title", help="Job title for reports"),
    email: str | None = typer.Option(None, "--email", help="E-mail the report to this address"),
    export: bool = typer.Option(True, "--export/--no-export", help="Write CSV and Excel reports"),
    trace: bool = typer.Option(False, "--trace", help="Print OpenTelemetry spans"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Enable debug logging"),
) -> None:
    """Score CVs against a job description, charging the user's credits."""
    settings = _load_settings(verbose)
    if trace:
        settings.otel_exporter = "console"
    configure_tracing(settings)

    job_text = job.read_text(encoding="utf-8").strip()
    documents = [CVDocument(file_name=p.name, content=p.read_bytes()) for p in cvs]

    async def _progress(event: AnalysisEvent) -> None:
        if event.event == "result":
            result = event.data.get("result") or {}
            name = result.get("name") if isinstance(result, dict) else None
            console.print(
                f"[dim]{event.data.get('processed')}/{event.data.get('total')}[/dim] {name}"
            )
        elif event.event == "error":
            console.print(f"[red]{event.data.get('error')}[/red]")

    async def _analyze(services: ServiceContainer) -> tuple[AnalysisOutcome, list[str]]:
        requirements = list(requirement)
        if not requirements:
            suggested = await services.requirements_extractor.extract(job_text)
            requirements = [r.text for r in suggested]
            console.print("[bold]Using suggested requirements:[/bold]")
            for r in requirements:
                console.print(f"  - {r}")

        request = AnalysisRequest(
            user_id=user,
            title=title,
            job_text=job_text,
            requirements=requirements,
            notify_email=email,
            export_reports=export,
        )
        console.print(f"[bold green]Starting analysis:[/bold green] {request.analysis_id}")
        outcome = await services.pipeline.run(request, documents, emit=_progress)
        return outcome, request.requirements

    outcome, requirements = _run(settings, _analyze)

    console.print(_results_table(outcome.results, requirements))
    console.print(f"\n[bold]Analysis complete:[/bold] {outcome.status}")
    console.print(
        f"  Credits: {outcome.credits_deducted} charged, {outcome.credits_refunded} refunded"
    )
    if outcome.balance_after is not None:
        console.print(f"  Balance: {outcome.balance_after}")
    console.print(f"  Tokens: {outcome.total_tokens}")
    console.print(f"  Cost: ${outcome.estimated_cost_usd:.4f}")

    if outcome.output_files:
        console.print("\n[bold]Output files:[/bold]")
        for f in outcome.output_files:
            console.print(f"  {f}")

    if outcome.email_sent:
        console.print("\n[green]Email sent successfully[/green]")
    elif email:
        console.print("\n[yellow]Email not sent[/yellow]")

    if outcome.errors:
        console.print(f"\n[yellow]Warnings/Errors: {len(outcome.errors)}[/yellow]")

    if outcome.status == "failed":
        raise typer.Exit(code=1)


@app.command("extract-requirements")
def extract_requirements(
    job: Path = typer.Argument(..., help="Job description text file", exists=True),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Enable debug logging"),
) -> None:
    """Suggest must-have requirements for a job description."""
    settings = _load_settings(verbose)
    job_text = job.read_text(encoding="utf-8")

    async def _extract(services: ServiceContainer) -> list[str]:
        return [r.text for r in await services.requirements_extractor.extract(job_text)]

    for i, text in enumerate(_run(settings, _extract), start=1):
        console.print(f"{i}. {text}")


@credits_app.command("show")
def credits_show(
    user: str = typer.Argument(..., help="User id"),
    transactions: int = typer.Option(0, "--transactions", "-n", help="Also list N transactions"),
) -> None:
    """Show a user's balance."""
    settings = _load_settings()

    async def _show(services: ServiceContainer) -> None:
        balance = await services.ledger.get_balance(user)
        if balance is None:
            console.print(f"[yellow]No balance for {user}[/yellow]")
            return
        _print_balance(user, balance)
        if transactions > 0:
            for t in await services.ledger.list_transactions(user, limit=transactions):
                console.print(
                    f"  {t.created_at:%Y-%m-%d %H:%M} {t.transaction_type.value:<24} "
                    f"{t.amount:>+5} {t.credit_type.value:<12} -> {t.balance_after}"
                )

    _run(settings, _show)


@credits_app.command("grant")
def credits_grant(
    user: str = typer.Argument(..., help="User id"),
    amount: int = typer.Argument(..., help="Credits to add"),
    subscription: bool = typer.Option(
        False, "--subscription", help="Add as subscription allocation instead of purchase"
    ),
    description: str | None = typer.Option(None, "--description", help="Ledger note"),
) -> None:
    """Add credits to a user's balance."""
    settings = _load_settings()
    credit_type = CreditType.SUBSCRIPTION if subscription else CreditType.PURCHASED
    transaction_type = (
        TransactionType.SUBSCRIPTION_ALLOCATION if subscription else TransactionType.PURCHASE
    )

    async def _grant(services: ServiceContainer) -> CreditBalance:
        return await services.ledger.add_credits(
            user,
            amount,
            credit_type=credit_type,
            transaction_type=transaction_type,
            description=description,
        )

    _print_balance(user, _run(settings, _grant))


@credits_app.command("reset")
def credits_reset(
    user: str = typer.Argument(..., help="User id"),
    allocation: int = typer.Argument(..., help="New subscription credits"),
) -> None:
    """Reset a user's subscription credits for a new period."""
    settings = _load_settings()

    async def _reset(services: ServiceContainer) -> CreditBalance:
        return await services.ledger.reset_subscription_credits(user, allocation)

    _print_balance(user, _run(settings, _reset))


@app.command()
def cleanup(
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Enable debug logging"),
) -> None:
    """Delete expired cache rows, stored CV text and old report files."""
    from cv_screener_agents.services.retention import CleanupReport, run_cleanup

    settings = _load_settings(verbose)

    async def _cleanup(services: ServiceContainer) -> CleanupReport:
        return await run_cleanup(
            services.cache_client,
            services.session_factory,
            Path(settings.output_dir),
            settings.retention_days,
        )

    report = _run(settings, _cleanup)
    console.print("[bold]Cleanup complete[/bold]")
    console.print(f"  Cache entries: {report.cache_entries}")
    console.print(f"  Stored CV texts: {report.cv_texts}")
    console.print(f"  Report files: {report.report_files}")


@app.command()
def version() -> None:
    """Show version."""
    console.print("cv-screener v0.1.0")


if __name__ == "__main__":
    app()
