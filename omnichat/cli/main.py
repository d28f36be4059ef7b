"""
Omnichat CLI.

Serves the webhook API and runs the batch operations (schema creation,
template sync, campaign execution) against the configured database.
"""

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import Any

import typer
import uvicorn

from omnichat.core.config.settings import settings
from omnichat.core.container import ServiceContainer
from omnichat.core.logging.logger import setup_app_logging

app = typer.Typer(help="Omnichat multi-channel messaging pipeline CLI")


def _run_with_services(operation: Callable[[ServiceContainer], Awaitable[Any]]) -> Any:
    async def runner():
        services = ServiceContainer(settings)
        await services.start()
        try:
            return await operation(services)
        finally:
            await services.close()

    setup_app_logging()
    return asyncio.run(runner())


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", "--host", "-h", help="Host to bind to"),
    port: int = typer.Option(settings.port, "--port", "-p", help="Port to bind to"),
    reload: bool = typer.Option(False, "--reload", help="Auto-reload on code changes"),
    workers: int = typer.Option(1, "--workers", "-w", help="Number of worker processes"),
):
    """
    Run the HTTP server.

    Examples:
        omnichat serve --port 8080
        omnichat serve --reload
    """
    typer.echo(f"🚀 Starting Omnichat on {host}:{port}")
    uvicorn.run(
        "omnichat.main:app",
        host=host,
        port=port,
        reload=reload,
        workers=1 if reload else workers,
    )


async def _noop(services: ServiceContainer) -> None:
    return None


@app.command("init-db")
def init_db():
    """Create the database schema."""
    # Starting the services creates the schema
    _run_with_services(_noop)
    typer.echo("✅ Database schema ready")


@app.command("sync-templates")
def sync_templates(channel_id: int = typer.Argument(..., help="WhatsApp channel id")):
    """Pull the message template catalog for a channel."""
    synced = _run_with_services(lambda services: services.engine.sync_templates(channel_id))
    typer.echo(f"🔄 Synced {synced} templates")


@app.command("run-campaign")
def run_campaign(
    campaign_id: int = typer.Argument(..., help="Campaign id"),
    message: str = typer.Option(
        None, "--message", "-m", help="Free text when the campaign has no template"
    ),
    params: str = typer.Option(
        None, "--params", help="Template params as a JSON object"
    ),
):
    """Execute a campaign now."""
    template_params = json.loads(params) if params else None
    if template_params is not None and not isinstance(template_params, dict):
        typer.echo("❌ --params must be a JSON object", err=True)
        raise typer.Exit(1)

    result = _run_with_services(
        lambda services: services.engine.execute_campaign(
            campaign_id, template_params=template_params, custom_message=message
        )
    )
    typer.echo(result.model_dump_json(indent=2))
    if result.sent == 0 and result.failed > 0:
        raise typer.Exit(1)


@app.command("run-due-campaigns")
def run_due_campaigns():
    """Execute every scheduled campaign whose send time has passed."""
    results = _run_with_services(lambda services: services.engine.execute_due_campaigns())
    typer.echo(f"🏁 Ran {len(results)} scheduled campaigns")
    for result in results:
        typer.echo(f"  campaign {result.campaign_id}: {result.sent} sent, {result.failed} failed")


@app.command("process-pending")
def process_pending(channel_id: int = typer.Argument(..., help="Channel id")):
    """Run the follow-up pipeline on unread conversations of a channel."""
    summary = _run_with_services(
        lambda services: services.dispatcher.process_pending_replies(channel_id)
    )
    typer.echo(f"🏷️ Processed {summary.processed} pending conversations")


def main():
    app()


if __name__ == "__main__":
    main()
