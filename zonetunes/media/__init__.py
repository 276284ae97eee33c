"""
Media Processing Layer.

This package wraps the external collaborators: yt-dlp for retrieving audio,
and the beat sources that turn audio into beat-timing files.
"""

from .beatmap import (
    BeatSource,
    ExecutableBeatDetector,
    UniformBeatSynthesizer,
    select_beat_source,
    synthesize_beats,
)
from .fetcher import MediaFetcher, MediaInfo
from .probe import probe_duration

__all__ = [
    "BeatSource",
    "ExecutableBeatDetector",
    "MediaFetcher",
    "MediaInfo",
    "UniformBeatSynthesizer",
    "probe_duration",
    "select_beat_source",
    "synthesize_beats",
]
