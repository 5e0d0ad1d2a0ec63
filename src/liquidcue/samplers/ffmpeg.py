"""ffmpeg ebur128 loudness sampler.

Runs the ``ebur128`` audio filter over a file and parses its stderr
report. A typical report looks like::

    [Parsed_ebur128_0 @ 0x55d0] t: 0.4  TARGET:-23 LUFS  M: -21.3 S:-120.7  I: -21.3 LUFS ...
    size=N/A time=00:03:00.05 bitrate=N/A speed= 512x
    [Parsed_ebur128_0 @ 0x55d0] Summary:

      Integrated loudness:
        I:         -14.2 LUFS
        Threshold: -24.5 LUFS
"""

import re
import subprocess

from ..errors import MeasurementError
from ..logging import get_logger
from ..models import LoudnessSample, TrackLoudnessProfile
from . import BaseSampler

logger = get_logger(__name__)

WINDOW_RE = re.compile(r"\bt:\s*(?P<time>\S+)\s.*?\bM:\s*(?P<momentary>\S+)")
INTEGRATED_RE = re.compile(r"^\s*I:\s*(?P<value>\S+)\s+LUFS")
PROGRESS_TIME_RE = re.compile(r"\btime=(?P<h>\d+):(?P<m>\d+):(?P<s>\d+(?:\.\d+)?)")


def _parse_float(value: str, field: str) -> float:
    try:
        return float(value)
    except ValueError:
        raise MeasurementError(f"unparseable {field} value {value!r} in ebur128 report") from None


def parse_ebur128_log(text: str) -> TrackLoudnessProfile:
    """Build a loudness profile from ffmpeg's ebur128 stderr output.

    Per-window lines before the summary block become samples. The
    integrated loudness comes from the summary and the duration from the
    last progress ``time=`` field, or the last sample when there is none.

    Raises:
        MeasurementError: If there are no samples, no summary, or a
            numeric field does not parse
    """
    samples: list[LoudnessSample] = []
    integrated: float | None = None
    duration: float | None = None
    in_summary = False

    # splitlines() also breaks on the \r ffmpeg uses for progress updates
    for line in text.splitlines():
        progress = PROGRESS_TIME_RE.search(line)
        if progress:
            duration = (
                int(progress["h"]) * 3600
                + int(progress["m"]) * 60
                + _parse_float(progress["s"], "duration")
            )
            continue

        if "Summary:" in line:
            in_summary = True
            continue

        if in_summary:
            match = INTEGRATED_RE.match(line)
            if match and integrated is None:
                integrated = _parse_float(match["value"], "integrated loudness")
            continue

        if "ebur128" not in line:
            continue
        match = WINDOW_RE.search(line)
        if match:
            samples.append(
                LoudnessSample(
                    time=_parse_float(match["time"], "time"),
                    momentary=_parse_float(match["momentary"], "momentary loudness"),
                )
            )

    if not samples:
        raise MeasurementError("ebur128 report contained no loudness samples")
    if integrated is None:
        raise MeasurementError("ebur128 report is missing the integrated loudness summary")
    if duration is None:
        duration = samples[-1].time

    return TrackLoudnessProfile(
        samples=tuple(samples),
        integrated_loudness=integrated,
        duration=duration,
    )


class FfmpegSampler(BaseSampler):
    """Measure loudness with ``ffmpeg -af ebur128``.

    Video and attached-picture streams are disabled, since broken
    embedded artwork would otherwise abort the measurement.
    """

    def __init__(self, binary: str = "ffmpeg", timeout: float | None = None):
        """Initialize the sampler.

        Args:
            binary: ffmpeg executable name or path
            timeout: Seconds before the measurement is killed; None or 0 waits forever
        """
        self.binary = binary
        self.timeout = timeout or None

    @property
    def name(self) -> str:
        return "ffmpeg-ebur128"

    def command(self, path: str) -> list[str]:
        return [
            self.binary,
            "-hide_banner",
            "-nostdin",
            "-y",
            "-i", path,
            "-vn",
            "-af", "ebur128",
            "-f", "null",
            "-",
        ]

    def measure(self, path: str) -> TrackLoudnessProfile:
        cmd = self.command(path)
        logger.debug("running_ffmpeg", cmd=cmd)

        try:
            completed = subprocess.run(
                cmd,
                capture_output=True,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired:
            raise MeasurementError(f"ffmpeg timed out after {self.timeout:g}s", path)
        except OSError as e:
            raise MeasurementError(f"could not launch {self.binary} ({e.strerror or e})", path)

        # Undecodable bytes (odd tag encodings) are replaced, not fatal
        report = (completed.stderr or b"").decode("utf-8", errors="replace")

        try:
            profile = parse_ebur128_log(report)
        except MeasurementError as e:
            detail = e.message
            if completed.returncode != 0:
                last_line = report.strip().splitlines()[-1] if report.strip() else ""
                detail = f"ffmpeg exited with status {completed.returncode}: {last_line or detail}"
            raise MeasurementError(detail, path) from e

        if completed.returncode != 0:
            logger.warning("ffmpeg_nonzero_exit", path=path, returncode=completed.returncode)

        logger.debug(
            "track_measured",
            path=path,
            samples=len(profile.samples),
            integrated_loudness=profile.integrated_loudness,
            duration=profile.duration,
        )
        return profile
