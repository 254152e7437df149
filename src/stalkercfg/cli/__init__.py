"""
stalkercfg CLI Package.

- project.py: check, format, inspect and orphans commands
- lsp.py: language server commands
- utils.py: Shared utilities
"""

import sys

import typer

from stalkercfg._version import get_version
from stalkercfg.cli.lsp import lsp_app
from stalkercfg.cli.project import (
    check_command,
    format_command,
    inspect_command,
    orphans_command,
)
from stalkercfg.cli.utils import configure_logging, version_callback

__version__ = get_version()

# =============================================================================
# Main Application
# =============================================================================

app = typer.Typer(
    help="""stalkercfg - STALKER 2 .cfg validator and formatter

Commands:
  • check:   report structural and style problems
  • format:  fix indentation in place
  • inspect: show the block tree of a file
  • orphans: show how struct.begin / struct.end pair up
""",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and environment information",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """stalkercfg CLI main callback for global options."""
    configure_logging(verbose)


app.command(name="check")(check_command)
app.command(name="format")(format_command)
app.command(name="inspect")(inspect_command)
app.command(name="orphans")(orphans_command)

app.add_typer(lsp_app, name="lsp")


# =============================================================================
# Main Entry Point
# =============================================================================


def main(argv: list[str] | None = None) -> None:
    app(args=argv, standalone_mode=True)


__all__ = [
    "__version__",
    "app",
    "main",
    "lsp_app",
    "version_callback",
]

if __name__ == "__main__":
    main(sys.argv[1:])
