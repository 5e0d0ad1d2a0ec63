"""liquidcue CLI using Typer.

Usage:
    liquidcue PLAYLIST [--level 8] [--cue 40] [--output FILE] [--append]
"""

import json
from pathlib import Path
from typing import Annotated, Optional

import typer

from . import __version__
from .config import get_settings
from .errors import LiquidCueError
from .logging import configure_logging, get_logger
from .pipeline import Pipeline
from .playlist import display_path

app = typer.Typer(
    name="liquidcue",
    help="Annotate a playlist with loudness-based cue-in and crossfade points for liquidsoap.",
    add_completion=False,
)


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"liquidcue {__version__}")
        raise typer.Exit()


def parse_error_policy(value: Optional[str]) -> Optional[str]:
    """Validate the --on-error choice."""
    if value is None:
        return None
    value = value.lower()
    if value not in ("abort", "skip"):
        raise typer.BadParameter(f"Invalid error policy: {value}. Use 'abort' or 'skip'.")
    return value


@app.command()
def process(
    playlist: Annotated[Path, typer.Argument(help="Path to the playlist")],
    level: Annotated[float, typer.Option("--level", "-l", help="LU below average loudness to trigger next track")] = 8.0,
    cue: Annotated[float, typer.Option("--cue", "-c", help="LU below average loudness for track cue-in point")] = 40.0,
    output: Annotated[Optional[Path], typer.Option("--output", "-o", help="Output filename (default: '-processed' suffix)")] = None,
    append: Annotated[bool, typer.Option("--append", "-a", help="Append to output file instead of overwriting everything")] = False,
    workers: Annotated[Optional[int], typer.Option("--workers", "-j", min=1, help="Parallel measurements (default: CPU count)")] = None,
    timeout: Annotated[Optional[float], typer.Option("--timeout", min=0, help="Seconds before a measurement is killed (0 waits forever)")] = None,
    on_error: Annotated[Optional[str], typer.Option("--on-error", callback=parse_error_policy, help="On a failed track: abort the run or skip the track")] = None,
    report_json: Annotated[Optional[Path], typer.Option("--json", help="Write a JSON report of the run")] = None,
    log_level: Annotated[Optional[str], typer.Option("--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)")] = None,
    log_format: Annotated[Optional[str], typer.Option("--log-format", help="Log format (console, json)")] = None,
    version: Annotated[Optional[bool], typer.Option("--version", callback=version_callback, is_eager=True, help="Show the version and exit")] = None,
) -> None:
    """Measure every track of PLAYLIST and write an annotated liquidsoap playlist.

    Example:
        liquidcue music.m3u --level 8 --cue 40 -o music-processed.m3u8
    """
    settings = get_settings()
    if timeout is not None:
        settings = settings.model_copy(update={"measure_timeout": timeout})

    configure_logging(
        level=log_level or settings.log_level,
        format="json" if (log_format or settings.log_format) == "json" else "console",
    )
    logger = get_logger(__name__)

    typer.echo(f"Processing playlist: {playlist}")

    try:
        pipeline = Pipeline(
            settings=settings,
            error_policy=on_error,
            workers=workers,
            on_progress=lambda path: typer.echo(f"Processing filename: {display_path(path)}"),
        )
        result = pipeline.run(
            playlist,
            output=output,
            drop_threshold=level,
            start_threshold=cue,
            append=append,
        )
    except LiquidCueError as e:
        typer.echo(f"Error ({e.kind}): {e}", err=True)
        raise typer.Exit(1)
    except Exception as e:
        logger.exception("pipeline_failed", error=str(e))
        typer.echo(f"Error: Pipeline failed - {e}", err=True)
        raise typer.Exit(1)

    action = "Appended" if result.appended else "Wrote"
    typer.echo(f"{action} {len(result.entries)} entries to: {result.output_path}")

    if result.failures:
        typer.echo(f"Skipped {len(result.failures)} entries:", err=True)
        for failure in result.failures:
            typer.echo(f"  - [{failure.kind}] {failure.message}", err=True)

    if report_json:
        try:
            # json.dumps escapes surrogates that model_dump_json rejects
            report = json.dumps(result.model_dump(), indent=2, default=str)
            report_json.write_text(report, encoding="utf-8")
        except OSError as e:
            typer.echo(f"Error (output): cannot write report ({e.strerror or e}): {report_json}", err=True)
            raise typer.Exit(1)
        typer.echo(f"Report written to: {report_json}")

    typer.echo("Done!")


def main() -> None:
    """CLI entry point."""
    app()
