"""
LSP (Language Server Protocol) CLI commands.

Commands for running the stalkercfg LSP server.
"""

import typer

lsp_app = typer.Typer(
    help="Language Server Protocol (LSP) commands.",
    no_args_is_help=True,
)


@lsp_app.command("run")
def lsp_run(
    stdio: bool = typer.Option(
        True,
        "--stdio/--no-stdio",
        help="Use stdio transport (default, for editor piping)",
    ),
    tcp: bool = typer.Option(
        False,
        "--tcp",
        help="Use TCP transport (for debugging)",
    ),
    port: int = typer.Option(
        2087,
        "--port",
        help="TCP port (only used with --tcp)",
    ),
) -> None:
    """
    Start the stalkercfg LSP server.

    By default uses stdio transport for editor integration.
    Use --tcp --port for debugging with a TCP connection.
    """
    if not stdio and not tcp:
        typer.echo(
            "Error: --no-stdio requires --tcp (no other transport is available).", err=True
        )
        raise typer.Exit(code=1)

    try:
        from stalkercfg.lsp import start_server
    except ImportError as e:
        typer.echo(
            f"Error: LSP dependencies not installed: {e}\n"
            "Install with: pip install stalker-cfg[lsp]",
            err=True,
        )
        raise typer.Exit(code=1)

    if tcp:
        typer.echo(f"Starting stalkercfg LSP server on TCP port {port}...", err=True)
    try:
        start_server(tcp=tcp, port=port)
    except KeyboardInterrupt:
        typer.echo("\nLSP server stopped.", err=True)
    except OSError as e:
        typer.echo(f"Error starting LSP server: {e}", err=True)
        raise typer.Exit(code=1)


@lsp_app.command("check")
def lsp_check() -> None:
    """
    Verify LSP dependencies are installed and show version info.
    """
    from importlib.metadata import PackageNotFoundError, version

    missing = []
    for name in ("pygls", "lsprotocol"):
        try:
            typer.echo(f"{name + ':':<14}{version(name)}")
        except PackageNotFoundError:
            missing.append(name)

    if missing:
        typer.echo(
            f"\nMissing dependencies: {', '.join(missing)}\n"
            "Install with: pip install stalker-cfg[lsp]",
            err=True,
        )
        raise typer.Exit(code=1)

    typer.echo("\nAll LSP dependencies installed.")
