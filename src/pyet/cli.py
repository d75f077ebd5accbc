"""pyet CLI Entry Point

Usage:
    pyet page.ejs                        # Render to stdout
    pyet page.ejs -p params.yaml         # Parameters from a YAML/JSON file
    pyet page.ejs -s title=Home -s n=3   # Parameters from the command line
    pyet page.ejs -o page.html           # Render to file
    pyet page.ejs -c pyet.yaml           # Render options from YAML
    pyet -v / PYET_DEBUG=1               # More logging
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys
import tempfile
from pathlib import Path
from typing import Any, List, Optional

import typer
import yaml
from rich.console import Console
from rich.logging import RichHandler

from pyet._version import __version__
from pyet.config import RenderOptions, load_options, load_params, parse_assignment
from pyet.engine import render_file
from pyet.exceptions import PyetError

log = logging.getLogger(__name__)

console = Console(stderr=True)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the pyet CLI.

    Log levels:
    - Normal: Only warnings/errors shown
    - Verbose (-v): INFO level
    - Debug (PYET_DEBUG=1): DEBUG level - fragments, includes, failures
    """
    if os.environ.get("PYET_DEBUG"):
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    handler = RichHandler(
        console=console,
        show_time=verbose,
        show_path=bool(os.environ.get("PYET_DEBUG")),
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))

    pyet_logger = logging.getLogger("pyet")
    pyet_logger.setLevel(level)
    pyet_logger.handlers = [handler]
    pyet_logger.propagate = False


def build_namespace(params_file: Optional[Path], assignments: List[str]) -> dict[str, Any]:
    """Merge parameters from a file and KEY=VALUE assignments (assignments win)."""
    namespace: dict[str, Any] = {}
    if params_file is not None:
        namespace.update(load_params(params_file))
    for item in assignments:
        key, value = parse_assignment(item)
        namespace[key] = value
    return namespace


async def _render_to(template: Path, namespace: dict[str, Any], options: RenderOptions, output: Optional[Path]) -> int:
    stream = await render_file(template, namespace, options=options)
    if output is None:
        written = await stream.copy_to(sys.stdout.buffer)
        sys.stdout.flush()
        return written

    # Rendered into a temp file next to output, moved into place once complete
    output.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        dir=output.parent,
        prefix=f".{output.name}.",
        delete=False,
    ) as f:
        partial = Path(f.name)
        try:
            written = await stream.copy_to(f)
        except BaseException:
            f.close()
            partial.unlink(missing_ok=True)
            raise
    os.replace(partial, output)
    return written


typer_app = typer.Typer()


@typer_app.command()
def cli(
    template: Optional[Path] = typer.Argument(None, help="Template file to render."),
    version: bool = typer.Option(
        False, "-V", "--version", help="Show version and exit."
    ),
    params_file: Optional[Path] = typer.Option(
        None, "-p", "--params", help="YAML or JSON file with template parameters."
    ),
    assignments: Optional[List[str]] = typer.Option(
        None, "-s", "--set", help="Set a parameter: KEY=VALUE (value parsed as YAML)."
    ),
    config_path: Optional[Path] = typer.Option(
        None, "-c", "--config", help="YAML file with render options."
    ),
    output: Optional[Path] = typer.Option(
        None, "-o", "--output", help="Write output to file instead of stdout."
    ),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose logging."),
) -> None:
    """Render an embedded-Python template."""
    if version:
        typer.echo(f"pyet {__version__}")
        raise typer.Exit()

    if template is None:
        typer.secho("Error: Missing template file.", err=True, fg=typer.colors.RED)
        raise typer.Exit(code=2)

    setup_logging(verbose)

    try:
        options = load_options(config_path) if config_path else RenderOptions()
        namespace = build_namespace(params_file, assignments or [])
    except (FileNotFoundError, ValueError, yaml.YAMLError) as exc:
        typer.secho(f"Error: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(code=1)

    try:
        written = asyncio.run(_render_to(template, namespace, options, output))
    except PyetError as exc:
        typer.secho(f"Error: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(code=1)
    except Exception as exc:
        # Fault raised by template code; notes say where
        notes = getattr(exc, "__notes__", [])
        detail = f" ({'; '.join(notes)})" if notes else ""
        typer.secho(
            f"Error: {type(exc).__name__}: {exc}{detail}", err=True, fg=typer.colors.RED
        )
        log.debug("Template failure", exc_info=exc)
        raise typer.Exit(code=1)

    if output is not None:
        log.info(f"Wrote {written} bytes to {output}")


def app() -> None:
    """Entry point for the installed `pyet` script."""
    typer_app()


if __name__ == "__main__":
    app()
