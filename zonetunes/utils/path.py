"""
Utilities for handling file paths, save file detection and media file naming.
"""

import os
import re
from pathlib import Path, PurePath

from pathvalidate import sanitize_filename

SAVE_FILE_PATTERN = re.compile(r"^save_data\d+\.xml$")


def create_dir(directory_path: Path) -> None:
    """Creates a directory if it does not already exist."""
    directory_path.mkdir(parents=True, exist_ok=True)


def path_exists(path: Path) -> bool:
    """True if anything, including a dangling symlink, exists at the path."""
    return os.path.lexists(path)


def to_game_path(path: str | PurePath) -> str:
    """The game only accepts forward-slash delimited paths, even on Windows."""
    return str(path).replace("\\", "/")


def media_stem(media_id: str) -> str:
    """A filesystem-safe file stem for a media id."""
    stem = sanitize_filename(str(media_id), platform="universal")
    if not stem:
        raise ValueError(f"Media id {media_id!r} cannot be used as a file name.")
    return stem


def detect_save_file(game_dir: Path) -> Path | None:
    """
    Looks for a `save_data<N>.xml` file in the game's data directory.

    Returns the first match in name order, or None when nothing fits.
    """
    data_dir = game_dir / "data"
    if not data_dir.is_dir():
        return None

    candidates = sorted(
        entry.name
        for entry in os.scandir(data_dir)
        if entry.is_file() and SAVE_FILE_PATTERN.match(entry.name)
    )
    if not candidates:
        return None
    return data_dir / candidates[0]
