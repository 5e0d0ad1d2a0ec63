"""Pydantic data models for liquidcue.

Profiles and results are frozen: they are built once per track and
handed between worker threads without being mutated.
"""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, SkipValidation

# EBU R128 programme loudness target used to compute playback gain
REFERENCE_LOUDNESS_LUFS = -23.0


class LoudnessSample(BaseModel):
    """One momentary-loudness reading from the measurement filter."""

    model_config = ConfigDict(frozen=True)

    time: float = Field(description="Seconds from the start of the media")
    momentary: float = Field(description="Momentary loudness over the 400 ms window (LUFS)")


class TrackLoudnessProfile(BaseModel):
    """Loudness over time for a single track.

    Samples are in non-decreasing time order; the analyzer scans them
    linearly and relies on that order.
    """

    model_config = ConfigDict(frozen=True)

    samples: tuple[LoudnessSample, ...] = Field(description="Readings roughly every 0.1 s")
    integrated_loudness: float = Field(description="Integrated loudness of the whole track (LUFS)")
    duration: float = Field(ge=0.0, description="Total media duration in seconds")


class AnalysisResult(BaseModel):
    """Cue and crossfade points computed for one playlist entry."""

    model_config = ConfigDict(frozen=True)

    # Entries may carry surrogate-escaped bytes, which string validation rejects
    source_path: SkipValidation[str] = Field(description="Playlist entry exactly as read")
    cue_point: float = Field(ge=0.0, description="Seconds from start where playback begins")
    start_next: float = Field(ge=0.0, description="Seconds before end where the next track starts")
    duration: float = Field(ge=0.0, description="Track duration in seconds")
    integrated_loudness: float = Field(description="Integrated loudness (LUFS)")

    @property
    def amplify(self) -> float:
        """Gain in dB that brings the track to the reference loudness."""
        return REFERENCE_LOUDNESS_LUFS - self.integrated_loudness


class TrackFailure(BaseModel):
    """A playlist entry left out of the output under the skip policy."""

    index: int = Field(ge=0, description="Position in the input playlist")
    source_path: SkipValidation[str]
    kind: str = Field(description="Failure kind, e.g. 'measurement'")
    message: SkipValidation[str]


class PlaylistResult(BaseModel):
    """Outcome of processing one playlist."""

    source_playlist: Path
    output_path: Path
    appended: bool = False
    entries: list[AnalysisResult] = Field(default_factory=list)
    failures: list[TrackFailure] = Field(default_factory=list)
