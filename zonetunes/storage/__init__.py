"""
Storage Layer.

This package handles everything persisted on disk: the configuration file,
the media info cache, the per-zone song links and the game's save file.
"""

from .cache import CacheManager
from .config_manager import ConfigManager
from .links import LinkKind, LinkManager
from .save_file import NO_CUSTOM_SONG, SaveFileEditor

__all__ = [
    "NO_CUSTOM_SONG",
    "CacheManager",
    "ConfigManager",
    "LinkKind",
    "LinkManager",
    "SaveFileEditor",
]
