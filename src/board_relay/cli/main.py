# src/board_relay/cli/main.py

"""
CLI entrypoint.

`board-relay check` validates the sources file against the registered source
types without touching any board or account.
"""

from __future__ import annotations

import logging
from pathlib import Path

import typer

from .. import __version__
from ..config import get_settings, load_sources_file
from ..errors import ConfigurationError
from ..logging_setup import setup_logging
from ..sources.manager import SourceRegistry, default_registry

logger = logging.getLogger(__name__)

app = typer.Typer(help="Project board source orchestration.")


def check_sources(path: Path, registry: SourceRegistry | None = None) -> list[str]:
    """One summary line per source. Raises ConfigurationError on the first bad entry."""
    registry = registry if registry is not None else default_registry()
    data = load_sources_file(path)

    lines: list[str] = []
    for entry in data.get("sources", []):
        descriptor = registry.validate(entry)
        columns = entry.get("columns") or {}
        managed = sorted(columns[r] for r in descriptor.managed_columns if r in columns)
        cols = ", ".join(f"{role}={name}" for role, name in sorted(columns.items()))
        lines.append(f"{descriptor.type}: columns=[{cols}] managed=[{', '.join(managed)}]")
    return lines


@app.callback(invoke_without_command=True)
def _root(
    version: bool = typer.Option(False, "--version", help="Show version and exit."),
) -> None:
    if version:
        typer.echo(__version__)
        raise typer.Exit()


@app.command("check")
def check(
    sources: Path | None = typer.Option(None, "--sources", help="Path to the sources JSON file."),
    log_level: str | None = typer.Option(None, "--log-level", help="Console log level (default from settings)."),
) -> None:
    """Validate the sources file."""
    settings = get_settings()

    level_name = str(log_level or settings.log_level).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    sources_path = sources or settings.sources_path
    logger.debug("%s: checking sources file %s", settings.app_name, sources_path)

    try:
        lines = check_sources(sources_path)
    except ConfigurationError as exc:
        typer.secho(str(exc), err=True, fg=typer.colors.RED)
        raise typer.Exit(2) from exc

    for line in lines:
        typer.echo(line)
    logger.info("%d source(s) OK in %s", len(lines), sources_path)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
