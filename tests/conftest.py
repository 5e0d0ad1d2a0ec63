from __future__ import annotations

import pytest

from liquidcue.config import Settings
from liquidcue.models import LoudnessSample, TrackLoudnessProfile


def make_profile(
    points: list[tuple[float, float]],
    integrated: float = -14.0,
    duration: float = 180.0,
) -> TrackLoudnessProfile:
    return TrackLoudnessProfile(
        samples=tuple(LoudnessSample(time=t, momentary=m) for t, m in points),
        integrated_loudness=integrated,
        duration=duration,
    )


@pytest.fixture
def settings() -> Settings:
    """Settings that ignore the developer's environment and .env file."""
    return Settings(_env_file=None, workers=4, measure_timeout=None, error_policy="abort")
