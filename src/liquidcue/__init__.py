"""liquidcue - Loudness-based cue and crossfade annotation for playlists.

Measures each playlist entry with ffmpeg's EBU R128 filter and writes
a liquidsoap annotated playlist with cue-in, crossfade and gain values.
"""

__version__ = "0.1.0"

from .cli import main

__all__ = ["main", "__version__"]
