"""Playlist input and annotated liquidsoap playlist output."""

import os
import stat
import tempfile
from collections.abc import Iterable
from pathlib import Path

from .errors import InputError, OutputError
from .logging import get_logger
from .models import AnalysisResult

logger = get_logger(__name__)

PLAYLIST_HEADER = "#EXTM3U"

# Undecodable path bytes survive as surrogates and are written back unchanged
PATH_ENCODING = "utf-8"
PATH_ERRORS = "surrogateescape"
OUTPUT_SUFFIX = "-processed.m3u8"


def parse_playlist_lines(lines: Iterable[str]) -> list[str]:
    """Return the media paths of a playlist, in order.

    The ``#EXTM3U`` header and blank lines are dropped; every other line
    is kept verbatim as a path, minus its line ending. A byte order mark
    on the first line is ignored.
    """
    entries: list[str] = []
    for number, line in enumerate(lines):
        entry = line.rstrip("\r\n")
        if number == 0:
            entry = entry.removeprefix("\ufeff")
        if not entry.strip() or entry.strip() == PLAYLIST_HEADER:
            continue
        entries.append(entry)
    return entries


def display_path(entry: str) -> str:
    """Printable form of an entry; undecodable bytes show as U+FFFD."""
    return entry.encode(PATH_ENCODING, PATH_ERRORS).decode(PATH_ENCODING, "replace")


def read_playlist(path: Path) -> list[str]:
    """Read media paths from a playlist file.

    Raises:
        InputError: If the file is missing or unreadable
    """
    try:
        with open(path, encoding="utf-8-sig", errors=PATH_ERRORS) as f:
            entries = parse_playlist_lines(f)
    except OSError as e:
        raise InputError(f"cannot read playlist ({e.strerror or e})", path)

    logger.info("playlist_read", path=str(path), entries=len(entries))
    return entries


def default_output_path(playlist: Path) -> Path:
    """Derive ``<stem>-processed.m3u8`` next to the input playlist.

    Raises:
        InputError: If the playlist path has no file name to derive from
    """
    if not playlist.stem:
        raise InputError("cannot derive an output name from the playlist path", playlist)
    return playlist.with_name(f"{playlist.stem}{OUTPUT_SUFFIX}")


def format_annotation(result: AnalysisResult) -> str:
    """Format one liquidsoap ``annotate:`` entry, without a line ending."""
    return (
        f'annotate:liq_cue_in="{result.cue_point:.3f}",'
        f'liq_cross_duration="{result.start_next:.3f}",'
        f'duration="{result.duration:.3f}",'
        f'liq_amplify="{result.amplify:.3f}dB"'
        f":{result.source_path}"
    )


def render_playlist(results: Iterable[AnalysisResult], append: bool = False) -> str:
    """Render the complete output text; the header is omitted when appending."""
    lines = [] if append else [PLAYLIST_HEADER]
    lines.extend(format_annotation(result) for result in results)
    return "".join(f"{line}\n" for line in lines)


def write_playlist(path: Path, text: str, append: bool = False) -> None:
    """Write the rendered playlist in a single operation.

    Appends go straight to the file. A fresh write goes to a temporary
    file in the same directory that then replaces the destination, so
    the destination never holds a partial playlist.

    Raises:
        OutputError: If the destination cannot be created or written
    """
    try:
        if append:
            with open(path, "a", encoding=PATH_ENCODING, errors=PATH_ERRORS) as f:
                f.write(text)
        else:
            _replace_atomically(path, text)
    except OSError as e:
        raise OutputError(f"cannot write playlist ({e.strerror or e})", path)

    logger.info(
        "playlist_written",
        path=str(path),
        append=append,
        bytes=len(text.encode(PATH_ENCODING, PATH_ERRORS)),
    )


def _replace_atomically(path: Path, text: str) -> None:
    # Write through symlinks so the link itself stays in place
    target = Path(os.path.realpath(path))
    mode = _target_mode(target)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=target.parent)
    try:
        with os.fdopen(fd, "w", encoding=PATH_ENCODING, errors=PATH_ERRORS) as f:
            f.write(text)
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, target)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def _target_mode(target: Path) -> int:
    """Keep an existing file's permissions; new files follow the umask."""
    try:
        return stat.S_IMODE(target.stat().st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask
