"""
The main orchestrator: fetch -> beatmap -> link -> edit -> persist.
"""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import replace
from pathlib import Path

from rich.markup import escape

from zonetunes.exceptions import SaveFileNotFoundError
from zonetunes.media.fetcher import MediaFetcher
from zonetunes.models.config import SyncConfig
from zonetunes.models.results import ProcessOptions, ProcessResult
from zonetunes.models.zone import ZoneDescriptor, ZoneRegistry
from zonetunes.storage.cache import CacheManager
from zonetunes.storage.config_manager import ConfigManager
from zonetunes.storage.links import LinkKind, LinkManager
from zonetunes.storage.save_file import SaveFileEditor
from zonetunes.utils.path import detect_save_file

from .media_pipeline import MediaPipeline

log = logging.getLogger(__name__)

ALL_ZONES = "all"


class SyncManager:
    """
    Sequences the media pipeline, the stable links and the save file edit.

    The save file is the only shared resource and exclusive access to it is
    assumed for the duration of a run. It is loaded only after the media and
    links are in place, and written once at the end, so a failure in any
    earlier step leaves it untouched.
    """

    def __init__(
        self,
        config: SyncConfig,
        registry: ZoneRegistry | None = None,
        pipeline: MediaPipeline | None = None,
        links: LinkManager | None = None,
        config_manager: ConfigManager | None = None,
    ):
        self.config = config
        self.registry = registry or config.load_registry()
        self.links = links or LinkManager(
            config.audio_link_dir, config.beatmap_link_path
        )
        if pipeline is None:
            cache = CacheManager(Path(config.config_path), config.metadata_cache_days)
            if cache.enabled:
                cache.cleanup_expired_entries()
            pipeline = MediaPipeline(
                MediaFetcher(config.yt_dlp, cache),
                config.music_dir,
                config.beatmap_dir,
            )
        self.pipeline = pipeline
        self.config_manager = config_manager

    def locate_save_file(self, explicit: Path | None = None) -> Path:
        """
        Returns the save file to edit: an explicit path, the configured one, or
        one detected in the game's data directory. A detected file is
        remembered in the configuration file when a ConfigManager is available.

        Raises:
            SaveFileNotFoundError: If no existing save file can be found.
        """
        path = Path(explicit) if explicit else self.config.save_file_path
        if path is None:
            log.debug("No save file configured, trying to detect")
            path = detect_save_file(self.config.game_path)
            if path is None:
                raise SaveFileNotFoundError(
                    f"No save file could be auto-detected in "
                    f"'{self.config.data_dir}'. Configure 'save_file' manually."
                )
            log.info(f"Auto-detected save file [dim]{escape(path.name)}[/dim]")
            if self.config_manager:
                self.config_manager.update_value("save_file", path.name)

        if not path.is_file():
            raise SaveFileNotFoundError(f"Save file '{path}' does not exist.")
        return path

    def _assign_stable_links(self, editor: SaveFileEditor) -> int:
        """Points every zone's save entry at its stable audio link."""
        changed = 0
        for zone in self.registry:
            audio_link = self.links.stable_path(zone, LinkKind.AUDIO)
            if editor.set_custom_song(zone, audio_link):
                changed += 1
        if changed:
            log.info(f"Pointed {changed} zone(s) at their stable song links")
        return changed

    async def _persist(self, editor: SaveFileEditor) -> bool:
        if editor.is_dirty or self.config.always_persist:
            await editor.persist()
            log.info(f"[green]✓ Save file updated:[/] [dim]{escape(str(editor.path))}[/]")
            return True
        log.info("[yellow]○ Save file already up to date[/yellow]")
        return False

    async def full_process(self, options: ProcessOptions) -> ProcessResult:
        """
        Downloads and beatmaps a link, then assigns it to a zone.

        Raises:
            UnknownZoneError: Before any I/O, if the zone does not resolve.
            SaveFileNotFoundError: Before any download, if there is no save file.
            ZoneTunesError: Any pipeline, link or save file error, unchanged.
        """
        zone = self.registry.require(options.zone)
        save_path = self.locate_save_file(options.save_file)

        acquire = options.acquire_options()
        if acquire.beat_tracker is None:
            acquire = replace(acquire, beat_tracker=self.config.beat_tracker_path)

        log.info(f"[bold cyan]🎵 Processing zone {escape(zone.id)}[/bold cyan]")
        result = await self.pipeline.acquire(options.link, acquire)

        audio_link, beatmap_link = await asyncio.to_thread(
            self.links.point_zone, zone, result.media_file, result.beatmap_file
        )
        log.info(f"  [green]✓ Linked:[/] [dim]{escape(audio_link.name)}[/dim]")

        editor = SaveFileEditor(save_path, self.registry)
        await editor.load()

        backup = (
            self.config.backup_save_file
            if options.backup_save_file is None
            else options.backup_save_file
        )
        backup_file = await editor.backup() if backup else None

        prepare_all = (
            self.config.prepare_all_links
            if options.prepare_all_links is None
            else options.prepare_all_links
        )
        if prepare_all:
            self._assign_stable_links(editor)
        editor.set_custom_song(zone, audio_link)

        save_written = await self._persist(editor)
        return ProcessResult(
            zone=zone,
            pipeline=result,
            save_file=save_path,
            audio_link=audio_link,
            beatmap_link=beatmap_link,
            save_written=save_written,
            backup_file=backup_file,
        )

    def resolve_zones(self, identifiers: Sequence[str]) -> list[ZoneDescriptor]:
        """
        Resolves a list of zone identifiers; `all` anywhere selects every zone.

        Raises:
            UnknownZoneError: For the first identifier that does not resolve.
        """
        if not identifiers:
            raise ValueError("At least one zone identifier is required.")
        if any(i.strip().lower() == ALL_ZONES for i in identifiers):
            return list(self.registry)

        zones = [self.registry.require(identifier) for identifier in identifiers]
        return list(dict.fromkeys(zones))

    async def reset_zones(
        self, save_file: Path | None, zones: Sequence[str]
    ) -> list[ZoneDescriptor]:
        """
        Sets zones back to the game's "no custom song" value, writing once.

        Returns:
            The zones that were reset.
        """
        targets = self.resolve_zones(zones)
        save_path = self.locate_save_file(save_file)

        editor = SaveFileEditor(save_path, self.registry)
        await editor.load()
        for zone in targets:
            editor.set_custom_song(zone, None)

        await self._persist(editor)
        return targets

    async def prepare_zone_links(self, save_file: Path | None = None) -> bool:
        """
        Points every zone's save entry at its stable audio link, so later runs
        only need to re-point links. Returns True if the save file was written.
        """
        save_path = self.locate_save_file(save_file)
        editor = SaveFileEditor(save_path, self.registry)
        await editor.load()
        self._assign_stable_links(editor)
        return await self._persist(editor)
