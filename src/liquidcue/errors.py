"""Exception taxonomy for liquidcue.

Every failure carries the path it concerns so the CLI can name the
offending file. Library code raises these; only the CLI exits.
"""

from pathlib import Path


class LiquidCueError(Exception):
    """Base class for all liquidcue failures."""

    kind = "error"

    def __init__(self, message: str, path: str | Path | None = None):
        super().__init__(message)
        self.message = message
        self.path = str(path) if path is not None else None

    def __str__(self) -> str:
        if self.path is None:
            return self.message
        return f"{self.message}: {self.path}"


class InputError(LiquidCueError):
    """The playlist cannot be read or its output path cannot be derived."""

    kind = "input"


class MeasurementError(LiquidCueError):
    """ffmpeg could not be run or produced no usable loudness report."""

    kind = "measurement"


class OutputError(LiquidCueError):
    """The annotated playlist cannot be written."""

    kind = "output"
