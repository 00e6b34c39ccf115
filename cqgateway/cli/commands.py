"""CLI commands for cqgateway.

`serve` runs the HTTP gateway; `query`, `address` and `validate` call the decoder
directly without a server; `status` reports configuration and decoder availability.
"""

import asyncio
import errno
import json
import socket

import typer
from rich.console import Console
from rich.syntax import Syntax

from cqgateway import __logo__, __version__
from cqgateway.cli.shared.logging_utils import configure_stderr, ensure_rotating_log_file
from cqgateway.utils.exceptions import CqGatewayError

app = typer.Typer(
    name="cqgateway",
    help=f"{__logo__} cqgateway - REST and MCP gateway for the cq Cardano decoder",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} cqgateway v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-V", callback=version_callback, is_eager=True
    ),
):
    """cqgateway - REST and MCP gateway for the cq Cardano decoder."""
    pass


def _make_client():
    from cqgateway.gateway.runtime import load_runtime

    return load_runtime().decoder


def _port_taken(host: str, port: int) -> bool:
    """True when something is already listening on host:port."""
    try:
        listener = socket.create_server((host, port))
    except OSError as e:
        if e.errno == errno.EADDRINUSE:
            return True
        raise
    listener.close()
    return False


def _print_output(text: str, as_json: bool) -> None:
    if as_json:
        try:
            pretty = json.dumps(json.loads(text), indent=2)
        except json.JSONDecodeError:
            console.print(text, markup=False, highlight=False)
            return
        console.print(Syntax(pretty, "json", word_wrap=True))
    else:
        console.print(text, markup=False, highlight=False)


def _fail(exc: CqGatewayError) -> None:
    console.print(f"[red]Error:[/red] {exc.message}")
    raise typer.Exit(1)


# ============================================================================
# Server
# ============================================================================


@app.command()
def serve(
    host: str = typer.Option(None, "--host", "-h", help="Bind host (defaults to server.host from config)"),
    port: int = typer.Option(None, "--port", "-p", help="Bind port (defaults to server.port from config)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging on stderr"),
):
    """Start the HTTP gateway (REST endpoints + MCP JSON-RPC endpoint)."""
    from cqgateway.api.server import create_app, run_server
    from cqgateway.config.loader import load_config

    config = load_config()
    host = host or config.server.host
    port = port or config.server.port

    if _port_taken(host, port):
        console.print(
            f"[red]Port {port} is already in use.[/red] "
            f"Close the process using it, or pass [cyan]--port[/cyan] (current: {host}:{port})."
        )
        raise typer.Exit(1)

    configure_stderr(verbose)
    log_path = ensure_rotating_log_file("serve", level="DEBUG" if verbose else "INFO")

    try:
        api = create_app(config)
    except CqGatewayError as e:
        _fail(e)

    console.print(f"{__logo__} Starting cqgateway on {host}:{port}...")
    console.print(f"[dim]Logs: {log_path}[/dim]")
    console.print(f"[green]✓[/green] Decoder: {config.decoder_path}")
    console.print(
        f"[green]✓[/green] REST: POST /api/query, /api/address, /api/validate "
        f"({config.rate_limit.max_requests} req / {config.rate_limit.window_ms} ms)"
    )
    if config.mcp.enabled:
        console.print(
            f"[green]✓[/green] MCP: POST /api/mcp ({config.mcp.max_requests} req / {config.mcp.window_ms} ms)"
        )
    else:
        console.print("[yellow]MCP endpoint disabled[/yellow]")

    run_server(api, host=host, port=port, log_level="debug" if verbose else "warning")


# ============================================================================
# Direct decoder calls
# ============================================================================


@app.command()
def query(
    input: str = typer.Argument(..., help="Transaction CBOR hex (0x prefix allowed)"),
    query_path: str = typer.Option(None, "--query", "-q", help="Query path, e.g. fee or outputs.0.address"),
    format: str = typer.Option(None, "--format", "-f", help="Output format: json, raw or pretty"),
    ada: bool = typer.Option(False, "--ada", help="Show amounts in ADA instead of lovelace"),
):
    """Query a transaction with the cq decoder."""
    from cqgateway.decoder import QueryOptions, coerce_transaction_input

    if format is not None and format not in ("json", "raw", "pretty"):
        console.print(f"[red]Unknown format: {format}[/red] (expected json, raw or pretty)")
        raise typer.Exit(2)

    try:
        client = _make_client()
        output = asyncio.run(
            client.query_transaction(
                coerce_transaction_input(input),
                query_path,
                QueryOptions(format=format, ada=ada),
            )
        )
    except CqGatewayError as e:
        _fail(e)
    _print_output(output, as_json=format == "json")


@app.command()
def address(
    value: str = typer.Argument(..., help="Cardano address (bech32, base58 or hex)"),
    as_json: bool = typer.Option(True, "--json/--no-json", help="Ask the decoder for JSON output"),
):
    """Decode a Cardano address."""
    try:
        client = _make_client()
        output = asyncio.run(client.decode_address(value, as_json=as_json))
    except CqGatewayError as e:
        _fail(e)
    _print_output(output, as_json=as_json)


@app.command()
def validate(
    input: str = typer.Argument(..., help="Transaction CBOR hex (0x prefix allowed)"),
):
    """Validate a transaction; exits with code 1 when it is invalid."""
    from cqgateway.decoder import coerce_transaction_input

    try:
        client = _make_client()
        is_valid = asyncio.run(client.validate_transaction(coerce_transaction_input(input)))
    except CqGatewayError as e:
        _fail(e)
    if is_valid:
        console.print("[green]✓[/green] valid")
        return
    console.print("[red]✗[/red] invalid")
    raise typer.Exit(1)


# ============================================================================
# Status
# ============================================================================


@app.command()
def status():
    """Show cqgateway status."""
    from cqgateway.config.loader import get_config_path, load_config
    from cqgateway.decoder import ProcessBridge

    config_path = get_config_path()
    config = load_config()
    decoder_path = config.decoder_path

    console.print(f"{__logo__} cqgateway Status\n")
    console.print(f"Config: {config_path} {'[green]✓[/green]' if config_path.exists() else '[dim](defaults)[/dim]'}")
    console.print(f"Decoder: {decoder_path} {'[green]✓[/green]' if decoder_path.exists() else '[red]✗[/red]'}")

    if decoder_path.exists():
        try:
            version = asyncio.run(ProcessBridge(decoder_path, timeout_seconds=5).version())
        except CqGatewayError:
            version = None
        console.print(f"Decoder version: {version or '[red]unavailable[/red]'}")

    timeout = config.decoder.timeout_seconds
    console.print(f"Decoder timeout: {f'{timeout}s' if timeout else '[dim]none[/dim]'}")
    console.print(f"REST limit: {config.rate_limit.max_requests} requests / {config.rate_limit.window_ms} ms")
    if config.mcp.enabled:
        console.print(f"MCP: [green]enabled[/green] ({config.mcp.max_requests} requests / {config.mcp.window_ms} ms)")
    else:
        console.print("MCP: [dim]disabled[/dim]")
    console.print(f"Bind: {config.server.host}:{config.server.port}")


if __name__ == "__main__":
    app()
