"""
zonetunes: assign songs from the web to game zones.

Downloads a song, builds its beatmap, and wires it into the game's save file
through stable per-zone symlinks.
"""

__version__ = "0.1.0"
