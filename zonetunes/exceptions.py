"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class ZoneTunesError(Exception):
    """Base exception for all application-specific errors."""


class ConfigurationError(ZoneTunesError):
    """Raised for issues related to configuration loading or validation."""


class UnknownZoneError(ZoneTunesError):
    """Raised when a zone identifier does not match any zone in the registry."""

    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(f"Unknown zone identifier: '{identifier}'")


class SaveFileError(ZoneTunesError):
    """Base class for errors raised while handling the game save file."""


class SaveFileNotFoundError(SaveFileError):
    """Raised when the save file does not exist or cannot be detected."""


class SaveFileParseError(SaveFileError):
    """Raised when the save file cannot be parsed as the expected XML structure."""


class NotLoadedError(SaveFileError):
    """Raised when the save file is edited or persisted before it was loaded."""


class BackupExistsError(SaveFileError):
    """Raised when a save file backup would overwrite an existing backup."""


class FetchFailedError(ZoneTunesError):
    """Raised when media information or audio cannot be retrieved."""


class BeatmapError(ZoneTunesError):
    """Base class for errors raised while producing a beatmap."""


class BeatmapSourceMissingError(BeatmapError):
    """
    Raised when a beatmap is required but neither a beat detector executable
    nor an explicit BPM is available.
    """


class InvalidBpmError(BeatmapError):
    """Raised when the BPM is non-positive, non-finite or unreasonably large."""


class InvalidOffsetError(BeatmapError):
    """Raised when the beat offset is negative or non-finite."""


class BeatDetectionError(BeatmapError):
    """Raised when the beat detector executable fails or writes no output."""


class LinkError(ZoneTunesError):
    """Raised when a zone's stable link cannot be created or replaced."""


class InvalidTargetError(LinkError):
    """Raised when a stable link would point at a file that does not exist."""
