from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Optional

import typer

from greenform_pipeline.application.use_cases.aggregate_results import ResultAggregator
from greenform_pipeline.config import Settings, settings
from greenform_pipeline.container import Container, build_container
from greenform_pipeline.domain.errors import AuthError, ValidationError
from greenform_pipeline.domain.model import BulkResult, Failure, Success
from greenform_pipeline.logging_setup import configure_logging
from greenform_pipeline.presentation.assets import resolve_asset_url

app = typer.Typer(help="Green form order lookup CLI")
token_app = typer.Typer(help="Manage the cached API token")
app.add_typer(token_app, name="token")

EXIT_ALL_FAILED = 1
EXIT_VALIDATION = 2
EXIT_AUTH = 3


class EchoProgressAdapter:
    """Renders first-pass progress on stderr."""

    def notify(self, event: str, payload: dict[str, Any]) -> None:
        if event == "progress" and payload.get("phase") == "first_pass":
            typer.echo(
                f"\rProgress: {payload['percent']:5.1f}% ({payload['completed']}/{payload['total']})",
                err=True,
                nl=payload["completed"] == payload["total"],
            )
        elif event == "retry_progress" and payload["completed"] == payload["total"]:
            typer.echo(f"Retried {payload['total']} orders with a fresh token", err=True)


def _container(cfg: Settings, **kwargs: Any) -> Container:
    return build_container(cfg, **kwargs)


def _render(result: BulkResult, cfg: Settings) -> None:
    for order_id, outcome in result.items:
        if isinstance(outcome, Success):
            rec = outcome.record
            typer.echo(f"{order_id}\tOK\t{rec.cnic or '-'}\t{rec.full_name or '-'}")
            for label, path in rec.document_paths().items():
                url = resolve_asset_url(path, base_url=cfg.resolved_asset_base_url, key=cfg.asset_key)
                if url:
                    typer.echo(f"    {label}: {url}")
        elif isinstance(outcome, Failure):
            typer.echo(f"{order_id}\tFAILED\t{outcome.reason.value}\t{outcome.message}")
    for line in ResultAggregator().summarize(result):
        typer.echo(line)


@app.callback()
def main(log_level: str = typer.Option(settings.log_level, "--log-level", help="loguru level")) -> None:
    configure_logging(log_level)


@app.command()
def fetch(
    order_ids: str = typer.Argument("", help="Order IDs separated by commas, spaces or newlines"),
    file: Optional[Path] = typer.Option(None, "--file", "-f", help="Read order IDs from a file"),
) -> None:
    raw = order_ids
    if file is not None:
        raw = f"{raw}\n{file.read_text()}"

    async def run() -> BulkResult:
        container = _container(settings, progress=EchoProgressAdapter())
        try:
            return await container.orchestrator.fetch_many(raw)
        finally:
            await container.aclose()

    try:
        result = asyncio.run(run())
    except ValidationError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(EXIT_VALIDATION)
    except AuthError as e:
        typer.echo(f"Authentication failed: {e.message}", err=True)
        raise typer.Exit(EXIT_AUTH)
    _render(result, settings)
    if result.all_failed:
        raise typer.Exit(EXIT_ALL_FAILED)


@token_app.command("status")
def token_status() -> None:
    async def run() -> None:
        container = _container(settings)
        try:
            status = container.tokens.status()
        finally:
            await container.aclose()
        expires = status.expires_at.isoformat() if status.expires_at else "-"
        typer.echo(f"{status.state.value}\texpires_at={expires}")

    asyncio.run(run())


@token_app.command("login")
def token_login(force: bool = typer.Option(False, "--force", help="Log in even if the cached token is valid")) -> None:
    async def run() -> str:
        container = _container(settings)
        try:
            token = await container.tokens.login(force=force)
        finally:
            await container.aclose()
        return token.expires_at.isoformat()

    try:
        expires = asyncio.run(run())
    except AuthError as e:
        typer.echo(f"Authentication failed: {e.message}", err=True)
        raise typer.Exit(EXIT_AUTH)
    typer.echo(f"Token ready, expires_at={expires}")


@token_app.command("clear")
def token_clear() -> None:
    async def run() -> None:
        container = _container(settings)
        try:
            container.tokens.clear()
        finally:
            await container.aclose()

    asyncio.run(run())
    typer.echo("Token cleared")
