"""Cue-in and crossfade point detection from a loudness profile.

All thresholds are given in LU below the track's integrated loudness:

- Cue-in: first moment the momentary loudness rises above
  ``integrated - start_threshold``, moved back by one measurement window.
- Start next: last moment the track is louder than
  ``integrated - drop_threshold``, expressed as seconds before the end.
  Tracks with an unusually long quiet tail get one re-scan against a
  stricter level so long outros are played rather than crossfaded away.

The analysis is a pure function of the profile and the two thresholds.
"""

from collections.abc import Sequence

from .errors import MeasurementError
from .logging import get_logger
from .models import AnalysisResult, LoudnessSample, TrackLoudnessProfile

logger = get_logger(__name__)

DEFAULT_DROP_THRESHOLD = 8.0
DEFAULT_START_THRESHOLD = 40.0

# Momentary loudness integrates over 400 ms, so a rise is reported that late
WINDOW_COMPENSATION = 0.4

# Quiet tails longer than this are treated as part of the track
LONG_TAIL_SECONDS = 15.0
# Extra LU subtracted from the drop level when re-scanning a long tail
LONG_TAIL_CORRECTION = 15.0


def first_time_above(
    samples: Sequence[LoudnessSample],
    threshold: float,
    reverse: bool = False,
) -> float:
    """Return the time of the first sample strictly louder than ``threshold``.

    Scans earliest-first, or latest-first when ``reverse`` is set.
    Returns 0.0 when no sample crosses the threshold.
    """
    ordered = reversed(samples) if reverse else samples
    for sample in ordered:
        if sample.momentary > threshold:
            return sample.time
    return 0.0


def analyze(
    profile: TrackLoudnessProfile,
    drop_threshold: float = DEFAULT_DROP_THRESHOLD,
    start_threshold: float = DEFAULT_START_THRESHOLD,
) -> tuple[float, float]:
    """Compute ``(cue_point, start_next)`` for a loudness profile.

    Args:
        profile: Measured loudness of one track
        drop_threshold: LU below integrated loudness that triggers the next track
        start_threshold: LU below integrated loudness that marks the track start

    Returns:
        Cue-in time in seconds from the start, and the seconds before the
        end of the file at which the next track should begin.

    Raises:
        MeasurementError: If the profile holds no samples
    """
    if not profile.samples:
        raise MeasurementError("loudness profile has no samples")

    samples = profile.samples
    loudness = profile.integrated_loudness
    duration = profile.duration

    cue_level = loudness - start_threshold
    cue_time = first_time_above(samples, cue_level)
    cue_point = min(max(0.0, cue_time - WINDOW_COMPENSATION), duration)

    next_level = loudness - drop_threshold
    next_time = first_time_above(samples, next_level, reverse=True)

    # Double precision: tails within float error of 15s may round differently
    # than a single-precision implementation would
    if duration - next_time > LONG_TAIL_SECONDS:
        next_level = loudness - drop_threshold - LONG_TAIL_CORRECTION
        next_time = first_time_above(samples, next_level, reverse=True)

    start_next = min(max(0.0, duration - next_time), duration)
    return cue_point, start_next


def analyze_track(
    source_path: str,
    profile: TrackLoudnessProfile,
    drop_threshold: float = DEFAULT_DROP_THRESHOLD,
    start_threshold: float = DEFAULT_START_THRESHOLD,
) -> AnalysisResult:
    """Analyze a measured track and package the result for output."""
    try:
        cue_point, start_next = analyze(profile, drop_threshold, start_threshold)
    except MeasurementError as e:
        raise MeasurementError(e.message, source_path) from e

    logger.debug(
        "track_analyzed",
        path=source_path,
        cue_point=round(cue_point, 3),
        start_next=round(start_next, 3),
        loudness=profile.integrated_loudness,
    )
    return AnalysisResult(
        source_path=source_path,
        cue_point=cue_point,
        start_next=start_next,
        duration=profile.duration,
        integrated_loudness=profile.integrated_loudness,
    )
