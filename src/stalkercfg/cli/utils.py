"""
stalkercfg CLI Utilities.

Shared utility functions used across CLI modules.
"""

import logging
import platform
from collections.abc import Sequence
from pathlib import Path

import typer

from stalkercfg._version import get_version
from stalkercfg.core.diagnostics import Diagnostic
from stalkercfg.core.errors import StalkerCfgError


def version_callback(value: bool) -> None:
    """Display version and environment information."""
    if value:
        lsp_available = False
        try:
            # Quiet pygls before importing the server module
            logging.getLogger("pygls").setLevel(logging.ERROR)

            import stalkercfg.lsp.server  # noqa: F401 - intentional import for availability check

            lsp_available = True
        except ImportError:
            pass

        typer.echo(f"stalkercfg version {get_version()}")
        typer.echo("")
        typer.echo("Environment:")
        python = f"{platform.python_implementation()} {platform.python_version()}"
        typer.echo(f"  Python:        {python}")
        typer.echo(f"  Platform:      {platform.system()} {platform.release()}")
        typer.echo("")
        typer.echo("Features:")
        if lsp_available:
            lsp_status = "✓ Available"
        else:
            lsp_status = "✗ Not available (install with: pip install stalker-cfg[lsp])"
        typer.echo(f"  LSP Server:    {lsp_status}")

        raise typer.Exit()


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def display_path(path: Path, root: Path | None = None) -> Path:
    """Make ``path`` relative to ``root`` (default: cwd) when possible."""
    root = root or Path.cwd()
    try:
        return path.resolve().relative_to(root.resolve())
    except ValueError:
        return path


def print_human_diagnostics(results: Sequence[tuple[Path, list[Diagnostic]]]) -> None:
    """Print diagnostics in human-readable format."""
    errors = 0
    warnings = 0
    for path, diagnostics in results:
        for d in diagnostics:
            label = "ERROR" if d.is_error else "WARNING"
            location = f"{display_path(path)}:{d.line + 1}:{d.start_column + 1}"
            typer.echo(f"{label}: {location}: {d.message}", err=d.is_error)
            if d.is_error:
                errors += 1
            else:
                warnings += 1

    if not errors and not warnings:
        typer.echo(f"OK: {len(results)} file(s) checked, no problems found.")
    else:
        typer.echo(f"\n{errors} error(s), {warnings} warning(s) in {len(results)} file(s).")


def print_vscode_diagnostics(results: Sequence[tuple[Path, list[Diagnostic]]]) -> None:
    """
    Print diagnostics in VS Code format: file:line:col: severity: message
    """
    any_found = False
    for path, diagnostics in results:
        for d in diagnostics:
            any_found = True
            typer.echo(
                f"{display_path(path)}:{d.line + 1}:{d.start_column + 1}: "
                f"{d.severity.value}: {d.message}",
                err=True,
            )

    if not any_found:
        typer.echo("::notice: Validation successful")


def print_error(error: StalkerCfgError, as_vscode: bool = False) -> None:
    """Print a loading error, with location when the error carries one."""
    if as_vscode and error.context:
        ctx = error.context
        typer.echo(
            f"{display_path(ctx.file)}:{ctx.line}:{ctx.column}: error: {error.message}",
            err=True,
        )
    elif as_vscode:
        typer.echo(f"::error: {error.message}", err=True)
    else:
        typer.echo(f"Error: {error}", err=True)
