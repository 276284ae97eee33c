"""
Manages loading, validation, and migration of the INI configuration file.
"""

import configparser
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from zonetunes.exceptions import ConfigurationError
from zonetunes.models.config import SyncConfig

log = logging.getLogger(__name__)


class ConfigManager:
    """Handles all operations related to the application's INI config file."""

    def __init__(self, config_file_path: Path):
        self.config_file_path = config_file_path
        self._parser = configparser.ConfigParser(interpolation=None)

    def load_config(self, cli_options: dict[str, Any] | None = None) -> SyncConfig:
        """
        Loads configuration from the INI file, applies CLI overrides, and validates it.

        Args:
            cli_options: A dictionary of options provided via the command line.

        Returns:
            A validated SyncConfig object.

        Raises:
            ConfigurationError: If the config file is missing, invalid, or validation
            fails.
        """
        if not self.config_file_path.is_file():
            raise ConfigurationError(
                f"Configuration file not found at '{self.config_file_path}'. "
                "Please run 'zonetunes init <GAME_DIR>' first."
            )

        try:
            self._parser.read(self.config_file_path, encoding="utf-8")
        except configparser.Error as e:
            raise ConfigurationError(f"Error parsing configuration file: {e}") from e

        if self._migrate_if_needed():
            log.info(
                "[yellow]Configuration file was updated with new default values."
                "[/yellow]"
            )

        config_from_file = self._get_config_as_dict()

        # Override with CLI options
        if cli_options:
            config_from_file.update(cli_options)

        try:
            config_dir = self.config_file_path.parent
            return SyncConfig(**config_from_file, config_path=str(config_dir))
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}") from e

    def save_new_config(self, settings: dict[str, Any]) -> None:
        """
        Creates and saves a new configuration file.

        Args:
            settings: A dictionary of settings to save.
        """
        config = configparser.ConfigParser(interpolation=None)
        config["DEFAULT"] = {}

        defaults = SyncConfig.model_construct()
        for key in sorted(SyncConfig.get_ini_keys()):
            value = settings.get(key, getattr(defaults, key, None))
            if value is None:
                continue
            config["DEFAULT"][key] = self._to_ini_value(value)

        try:
            self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file_path, "w", encoding="utf-8") as configfile:
                config.write(configfile)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration file: {e}") from e

    def update_value(self, key: str, value: Any) -> None:
        """
        Rewrites a single key of an existing configuration file, e.g. to remember
        an auto-detected save file.
        """
        if key not in SyncConfig.get_ini_keys():
            raise ConfigurationError(f"Unknown configuration key '{key}'.")

        parser = configparser.ConfigParser(interpolation=None)
        try:
            parser.read(self.config_file_path, encoding="utf-8")
            parser["DEFAULT"][key] = self._to_ini_value(value)
            with open(self.config_file_path, "w", encoding="utf-8") as f:
                parser.write(f)
        except (configparser.Error, OSError) as e:
            raise ConfigurationError(f"Failed to update configuration file: {e}") from e
        log.debug(f"Updated config key '{key}' in '{self.config_file_path}'")

    def get_config_as_dict(self) -> dict[str, Any]:
        """Reads the raw configuration without validating it."""
        self._parser.read(self.config_file_path, encoding="utf-8")
        return self._get_config_as_dict()

    @staticmethod
    def _to_ini_value(value: Any) -> str:
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)

    def _get_config_as_dict(self) -> dict[str, Any]:
        """Reads the 'DEFAULT' section of the INI file into a dictionary."""
        section = self._parser["DEFAULT"]
        try:
            return {
                "game_dir": section.get("game_dir", ""),
                "save_file": section.get("save_file", ""),
                "zone_map": section.get("zone_map", ""),
                "library_dir": section.get("library_dir", ""),
                "beatmap_link_dir": section.get("beatmap_link_dir", ""),
                "beat_tracker": section.get("beat_tracker", ""),
                "yt_dlp": section.get("yt_dlp", "yt-dlp"),
                "metadata_cache_days": section.getint("metadata_cache_days", 7),
                "backup_save_file": section.getboolean("backup_save_file", False),
                "prepare_all_links": section.getboolean("prepare_all_links", True),
                "always_persist": section.getboolean("always_persist", False),
            }
        except ValueError as e:
            raise ConfigurationError(f"Invalid value in configuration file: {e}") from e

    def _migrate_if_needed(self) -> bool:
        """Adds missing default values to an existing config file."""
        defaults = SyncConfig.model_construct()
        needs_saving = False

        config_section = self._parser["DEFAULT"]

        for key in sorted(SyncConfig.get_ini_keys()):
            if key in config_section:
                continue
            default_value = getattr(defaults, key, None)
            if default_value is None:
                continue

            config_section[key] = self._to_ini_value(default_value)
            needs_saving = True
            log.debug(
                f"Migrating config: added missing key '{key}' with "
                f"value '{config_section[key]}'."
            )

        if needs_saving:
            try:
                with open(self.config_file_path, "w", encoding="utf-8") as f:
                    self._parser.write(f)
            except OSError as e:
                log.error(f"Could not save migrated configuration file: {e}")
                return False

        return needs_saving
