"""
Reads stream information from downloaded audio files.
"""

import logging
from pathlib import Path

from mutagen import MutagenError
from mutagen.mp3 import MP3

log = logging.getLogger(__name__)


def probe_duration(filepath: Path) -> float | None:
    """
    Returns the playing time of an MP3 file in seconds.

    Args:
        filepath: Path to the MP3 file.

    Returns:
        The duration, or None if the file has no readable stream info.
    """
    try:
        audio = MP3(filepath)
    except MutagenError as e:
        log.debug(f"Could not read stream info from '{filepath}': {e}")
        return None

    if audio.info and audio.info.length > 0:
        return float(audio.info.length)
    log.warning(f"'{filepath}' has no valid stream info.")
    return None
