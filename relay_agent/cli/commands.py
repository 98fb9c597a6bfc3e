"""CLI commands for relay-agent."""

import asyncio
import json
import sys

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from relay_agent import __brand__, __logo__, __version__

app = typer.Typer(
    name="relay-agent",
    help=f"{__logo__} {__brand__} - Chat-to-LLM relay",
    no_args_is_help=True,
)

console = Console()


def _cli_fail(cause: str, fix: str | None = None, *, exit_code: int = 1) -> None:
    """Print a consistent CLI error block and exit."""
    console.print(f"[red]{cause}[/red]")
    if fix:
        console.print(f"[dim]Fix: {fix}[/dim]")
    raise typer.Exit(exit_code)


def _set_log_level(verbose: bool) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO")


def _mark(ok: bool, detail: str = "") -> str:
    if ok:
        return f"[green]✓ {detail}[/green]" if detail else "[green]✓[/green]"
    return "[dim]not set[/dim]"


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} {__brand__} v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(None, "--version", "-v", callback=version_callback, is_eager=True),
):
    """relay-agent - Chat-to-LLM relay."""
    pass


@app.command("version")
def version_command():
    """Show relay-agent version."""
    console.print(f"{__logo__} {__brand__} v{__version__}")


@app.command()
def serve(
    host: str = typer.Option(None, "--host", help="Bind host (defaults to server.host)"),
    port: int = typer.Option(None, "--port", "-p", help="Bind port (defaults to server.port)"),
    verbose: bool = typer.Option(False, "--verbose", help="Verbose output"),
):
    """Run the HTTP relay."""
    from relay_agent.agent.orchestrator import RequestOrchestrator
    from relay_agent.config.loader import load_config
    from relay_agent.server.http_server import RelayHttpServer

    _set_log_level(verbose)
    config = load_config()
    orchestrator = RequestOrchestrator.from_config(config)
    server = RelayHttpServer(
        orchestrator=orchestrator,
        host=host or config.server.host,
        port=config.server.port if port is None else port,
    )

    console.print(f"{__logo__} Starting {__brand__} on {server.host}:{server.port}...")
    if not config.memory.enabled:
        console.print("[yellow]Long-term memory disabled (memory.baseUrl/agentId not set)[/yellow]")

    try:
        asyncio.run(server.serve_forever())
    except KeyboardInterrupt:
        console.print("\nShutting down...")
    except OSError as e:
        _cli_fail(
            f"Could not bind {server.host}:{server.port}: {e}",
            "Pick another port with --port or stop the process using it.",
        )


@app.command()
def ask(
    message: str = typer.Option(..., "--message", "-m", help="Message to relay"),
    conversation: str = typer.Option("cli:default", "--conversation", "-c", help="Conversation ID"),
    as_json: bool = typer.Option(False, "--json", help="Print the full result as JSON"),
):
    """Send one message through the relay pipeline."""
    from relay_agent.agent.orchestrator import ProcessingError, RequestOrchestrator
    from relay_agent.config.loader import get_config_path, load_config

    config = load_config()
    if not config.gateway.token:
        _cli_fail(
            "No LLM gateway token configured.",
            f"Set gateway.token in {get_config_path()} or RELAY_AGENT_GATEWAY__TOKEN.",
        )

    orchestrator = RequestOrchestrator.from_config(config)

    async def run_once():
        try:
            return await orchestrator.process(
                message, {"conversationId": conversation, "userId": "cli"}
            )
        finally:
            await orchestrator.aclose()

    try:
        result = asyncio.run(run_once())
    except ProcessingError as e:
        _cli_fail(f"{e.error}: {e.details}")
        return

    if as_json:
        console.print_json(json.dumps(result.to_dict(), ensure_ascii=False))
    else:
        console.print(f"\n{__logo__} {result.response}")


@app.command()
def status():
    """Show relay-agent configuration status."""
    from relay_agent.config.loader import get_config_path, load_config
    from relay_agent.providers.factory import build_router

    config_path = get_config_path()
    config = load_config()
    router = build_router(config)

    console.print(f"{__logo__} {__brand__} Status\n")
    console.print(
        f"Config: {config_path} {'[green]✓[/green]' if config_path.exists() else '[red]✗[/red]'}"
    )
    console.print(f"Gateway: {config.gateway.base_url or '[dim]direct upstream[/dim]'}")
    console.print(f"Gateway token: {_mark(bool(config.gateway.token))}")
    console.print(f"Long-term memory: {_mark(config.memory.enabled, config.memory.base_url)}")
    console.print(f"Slack bot token: {_mark(bool(config.slack.bot_token))}")

    table = Table(title="Model routes")
    table.add_column("Route", style="cyan")
    table.add_column("Model")
    table.add_column("Family")
    for label, model in (
        ("text", config.llm.default_model),
        ("vision", config.llm.vision_model),
    ):
        table.add_row(label, model, router.registry.family_for(model).value)
    console.print(table)


if __name__ == "__main__":
    app()
