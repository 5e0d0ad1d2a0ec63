"""Loudness sampler interface.

A sampler turns a media file into a TrackLoudnessProfile. The analyzer
only ever sees the profile, so tests and alternative measurement tools
plug in here without touching the analysis.
"""

from abc import ABC, abstractmethod
from typing import Protocol, runtime_checkable

from ..models import TrackLoudnessProfile


@runtime_checkable
class LoudnessSampler(Protocol):
    """Protocol for loudness measurement backends."""

    @property
    def name(self) -> str:
        """Unique identifier for this sampler."""
        ...

    def measure(self, path: str) -> TrackLoudnessProfile:
        """Measure the loudness profile of a media file.

        Args:
            path: Media file path as listed in the playlist

        Returns:
            Time-ordered momentary loudness plus integrated loudness and duration

        Raises:
            MeasurementError: If the file cannot be measured
        """
        ...


class BaseSampler(ABC):
    """Abstract base class for samplers."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def measure(self, path: str) -> TrackLoudnessProfile:
        pass


from .ffmpeg import FfmpegSampler, parse_ebur128_log

__all__ = [
    "LoudnessSampler",
    "BaseSampler",
    "FfmpegSampler",
    "parse_ebur128_log",
]
