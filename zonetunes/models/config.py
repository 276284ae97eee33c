"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from zonetunes.models.zone import ZoneRegistry

DEFAULT_BEAT_TRACKER = Path("data") / "essentia" / "beattracker.exe"
DEFAULT_BEATMAP_LINK_DIR = Path("data") / "custom_music"


class SyncConfig(BaseModel):
    """A validated configuration model for the application."""

    # Game
    game_dir: str
    save_file: str = ""
    zone_map: str = ""

    # Media & Beatmaps
    library_dir: str = ""
    beatmap_link_dir: str = ""
    beat_tracker: str = ""
    yt_dlp: str = "yt-dlp"
    metadata_cache_days: int = 7

    # Save File Behaviour
    backup_save_file: bool = False
    prepare_all_links: bool = True
    always_persist: bool = False

    # Internal fields not loaded from INI file
    config_path: str = Field(..., repr=False)

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True
        str_strip_whitespace = True

    @field_validator("game_dir")
    @classmethod
    def validate_game_dir(cls, v: str) -> str:
        """Ensures the game directory is configured and exists."""
        if not v:
            raise ValueError("Game directory is not configured.")
        path = Path(v).expanduser()
        if not path.exists():
            raise ValueError(f"Game directory '{v}' does not exist.")
        if not path.is_dir():
            raise ValueError(f"Game directory '{v}' is not a directory.")
        return str(path)

    @field_validator("metadata_cache_days")
    @classmethod
    def validate_cache_days(cls, v: int) -> int:
        if v < 0 or v > 365:
            raise ValueError("Metadata cache age must be between 0 and 365 days.")
        return v

    @field_validator("yt_dlp")
    @classmethod
    def validate_yt_dlp(cls, v: str) -> str:
        return v or "yt-dlp"

    @property
    def game_path(self) -> Path:
        return Path(self.game_dir)

    @property
    def data_dir(self) -> Path:
        return self.game_path / "data"

    @property
    def library_path(self) -> Path:
        if self.library_dir:
            return Path(self.library_dir).expanduser()
        return Path(self.config_path)

    @property
    def music_dir(self) -> Path:
        """Cache directory for downloaded audio files."""
        return self.library_path / "music"

    @property
    def beatmap_dir(self) -> Path:
        """Directory holding generated beat-timing files."""
        return self.library_path / "beatmaps"

    @property
    def audio_link_dir(self) -> Path:
        """Directory of stable-name audio links referenced by the save file."""
        return self.library_path / "symlinks"

    @property
    def beatmap_link_path(self) -> Path:
        """Directory of stable-name beatmap links read by the game."""
        if self.beatmap_link_dir:
            return Path(self.beatmap_link_dir).expanduser()
        return self.game_path / DEFAULT_BEATMAP_LINK_DIR

    @property
    def beat_tracker_path(self) -> Path:
        if self.beat_tracker:
            return Path(self.beat_tracker).expanduser()
        return self.game_path / DEFAULT_BEAT_TRACKER

    @property
    def save_file_path(self) -> Path | None:
        if not self.save_file:
            return None
        path = Path(self.save_file).expanduser()
        # A bare file name is relative to the game's data directory
        if not path.is_absolute() and path.parent == Path("."):
            return self.data_dir / path
        return path

    def load_registry(self) -> ZoneRegistry:
        """Returns the configured zone registry, or the built-in one."""
        if self.zone_map:
            return ZoneRegistry.from_file(Path(self.zone_map).expanduser())
        return ZoneRegistry.default()

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"config_path"}
        return {key for key in cls.model_fields if key not in internal_fields}
