"""
Document commands: check, format, inspect, orphans.
"""

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from stalkercfg.cli.utils import (
    display_path,
    print_error,
    print_human_diagnostics,
    print_vscode_diagnostics,
)
from stalkercfg.core.ast import (
    BlockNode,
    DocumentNode,
    EndNode,
    InvalidNode,
    MalformedHeaderNode,
    PropertyNode,
)
from stalkercfg.core.config import FormatSettings, resolve_settings
from stalkercfg.core.diagnostics import Diagnostic, has_errors
from stalkercfg.core.errors import StalkerCfgError
from stalkercfg.core.fileset import discover_cfg_files, read_document, write_document
from stalkercfg.core.formatter import apply_text_edits, format_parse
from stalkercfg.core.parser import ParseResult, parse_document
from stalkercfg.core.validator import validate_parse

console = Console()


def _settings_for(path: Path, indent_step: int | None, tab_width: int | None) -> FormatSettings:
    return resolve_settings(start=path, indent_step=indent_step, tab_width=tab_width)


def check_command(
    paths: list[Path] = typer.Argument(..., help="Files or directories to check"),
    format: str = typer.Option(
        "human", "--format", "-f", help="Output format: 'human' or 'vscode'"
    ),
    indent_step: int | None = typer.Option(
        None, "--indent-step", help="Spaces per nesting level (default: 3)"
    ),
    tab_width: int | None = typer.Option(
        None, "--tab-width", help="Columns a tab counts for (default: 3)"
    ),
) -> None:
    """
    Validate .cfg files and report diagnostics.

    Directories are searched recursively for *.cfg files. Exits with code 1
    if any file has an error.
    """
    as_vscode = format == "vscode"
    try:
        files = discover_cfg_files(paths)
        results: list[tuple[Path, list[Diagnostic]]] = []
        for path in files:
            settings = _settings_for(path, indent_step, tab_width)
            parse = parse_document(read_document(path), settings)
            results.append((path, validate_parse(parse, settings)))
    except StalkerCfgError as e:
        print_error(e, as_vscode)
        raise typer.Exit(code=1)

    if as_vscode:
        print_vscode_diagnostics(results)
    else:
        print_human_diagnostics(results)

    if any(has_errors(diagnostics) for _, diagnostics in results):
        raise typer.Exit(code=1)


def format_command(
    paths: list[Path] = typer.Argument(..., help="Files or directories to format"),
    check: bool = typer.Option(
        False, "--check", help="Report files that would change without writing them"
    ),
    indent_step: int | None = typer.Option(
        None, "--indent-step", help="Spaces per nesting level (default: 3)"
    ),
    tab_width: int | None = typer.Option(
        None, "--tab-width", help="Columns a tab counts for (default: 3)"
    ),
) -> None:
    """
    Fix indentation of .cfg files in place.

    Files with error diagnostics are skipped. With --check nothing is
    written and the exit code is 1 if any file would change.
    """
    changed = 0
    skipped = 0
    try:
        files = discover_cfg_files(paths)
        for path in files:
            settings = _settings_for(path, indent_step, tab_width)
            text = read_document(path)
            parse = parse_document(text, settings)
            errors = [d for d in validate_parse(parse, settings) if d.is_error]
            if errors:
                skipped += 1
                typer.echo(
                    f"Skipped {display_path(path)}: {len(errors)} error(s) must be fixed first",
                    err=True,
                )
                continue

            edits = format_parse(parse, settings)
            if not edits:
                continue
            changed += 1
            if check:
                typer.echo(f"Would reformat {display_path(path)} ({len(edits)} line(s))")
            else:
                write_document(path, apply_text_edits(text, edits))
                typer.echo(f"Reformatted {display_path(path)} ({len(edits)} line(s))")
    except StalkerCfgError as e:
        print_error(e)
        raise typer.Exit(code=1)

    unchanged = len(files) - changed - skipped
    verb = "would be reformatted" if check else "reformatted"
    typer.echo(f"\n{changed} file(s) {verb}, {unchanged} unchanged, {skipped} skipped.")

    if skipped or (check and changed):
        raise typer.Exit(code=1)


def _add_children(tree: Tree, container: DocumentNode | BlockNode, show_properties: bool) -> None:
    for child in container.children:
        if isinstance(child, BlockNode):
            end = child.end_line + 1 if child.end_line is not None else "?"
            label = (
                f"[bold cyan]{escape(child.name)}[/bold cyan] "
                f"[dim](lines {child.start_line + 1}-{end})[/dim]"
            )
            if child.header.params_raw:
                label += f" [magenta]{escape(child.header.params_raw.strip())}[/magenta]"
            if not child.closed:
                label += " [red]unclosed[/red]"
            elif child.recovered:
                label += " [yellow]recovered[/yellow]"
            _add_children(tree.add(label), child, show_properties)
        elif isinstance(child, PropertyNode):
            if show_properties:
                tree.add(escape(f"{child.key} = {child.value}"))
        elif isinstance(child, EndNode):
            tree.add(f"[red]orphan struct.end[/red] [dim](line {child.start_line + 1})[/dim]")
        elif isinstance(child, InvalidNode | MalformedHeaderNode):
            tree.add(
                f"[red]invalid:[/red] {escape(child.text)} "
                f"[dim](line {child.start_line + 1})[/dim]"
            )


def inspect_command(
    file: Path = typer.Argument(..., help=".cfg file to inspect"),
    properties: bool = typer.Option(
        True, "--properties/--no-properties", help="Show properties inside blocks"
    ),
    tab_width: int | None = typer.Option(
        None, "--tab-width", help="Columns a tab counts for (default: 3)"
    ),
) -> None:
    """
    Print the block tree of a .cfg file.
    """
    try:
        settings = _settings_for(file, None, tab_width)
        parse = parse_document(read_document(file), settings)
    except StalkerCfgError as e:
        print_error(e)
        raise typer.Exit(code=1)

    tree = Tree(f"[bold]{escape(str(display_path(file)))}[/bold] ({len(parse.lines)} lines)")
    _add_children(tree, parse.document, properties)
    console.print(tree)


def _print_context(parse: ParseResult, line: int, context: int) -> None:
    first = max(0, line - context)
    last = min(len(parse.lines) - 1, line + context)
    for i in range(first, last + 1):
        marker = ">>" if i == line else "  "
        console.print(f"  {marker} {i + 1:5d} | {parse.lines[i]}", markup=False, highlight=False)
    console.print()


def orphans_command(
    file: Path = typer.Argument(..., help=".cfg file to analyse"),
    context: int = typer.Option(2, "--context", "-c", help="Lines of context around problems"),
    tab_width: int | None = typer.Option(
        None, "--tab-width", help="Columns a tab counts for (default: 3)"
    ),
) -> None:
    """
    Report how struct.begin / struct.end lines pair up.

    Lists matched pairs, openers that were never closed and closers without
    an opener, with surrounding lines for each problem. Exits with code 1 if
    anything is unmatched.
    """
    try:
        settings = _settings_for(file, None, tab_width)
        parse = parse_document(read_document(file), settings)
    except StalkerCfgError as e:
        print_error(e)
        raise typer.Exit(code=1)

    resolution = parse.resolution
    matched = [span for span in resolution.spans if span.closed]

    table = Table(title="Matched blocks")
    table.add_column("Block", style="cyan")
    table.add_column("Open", justify="right")
    table.add_column("Close", justify="right")
    table.add_column("Recovered")
    for span in matched:
        table.add_row(
            escape(span.name),
            str(span.start_line + 1),
            str(span.end_line + 1) if span.end_line is not None else "",
            "[yellow]yes[/yellow]" if span.recovered else "",
        )
    console.print(table)

    unclosed = resolution.unclosed
    if unclosed:
        console.print(f"\n[red]Unmatched struct.begin ({len(unclosed)}):[/red]")
        for span in unclosed:
            console.print(
                f'[bold]"{escape(span.name)}"[/bold] opened on line {span.start_line + 1}'
            )
            _print_context(parse, span.start_line, context)

    if resolution.orphans:
        console.print(f"\n[red]Orphan struct.end ({len(resolution.orphans)}):[/red]")
        for orphan in resolution.orphans:
            console.print(f"line {orphan.line + 1} (indent {orphan.indent})")
            _print_context(parse, orphan.line, context)

    console.print(
        f"\n{len(matched)} matched, {len(unclosed)} unclosed, "
        f"{len(resolution.orphans)} orphan(s)."
    )
    if unclosed or resolution.orphans:
        raise typer.Exit(code=1)
