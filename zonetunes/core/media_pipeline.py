"""
Fetches the audio for a link and produces its beat-timing file.
"""

import asyncio
import logging
from pathlib import Path

from rich.markup import escape

from zonetunes.media.beatmap import (
    UniformBeatSynthesizer,
    select_beat_source,
    validate_bpm,
    validate_offset,
)
from zonetunes.media.fetcher import MediaFetcher
from zonetunes.media.probe import probe_duration
from zonetunes.models.results import AcquireOptions, PipelineResult
from zonetunes.utils.path import media_stem

log = logging.getLogger(__name__)


class MediaPipeline:
    """
    Resolves a link to a local MP3 and beat file, reusing both when they are
    already present unless a reload is forced.
    """

    def __init__(self, fetcher: MediaFetcher, music_dir: Path, beatmap_dir: Path):
        self.fetcher = fetcher
        self.music_dir = music_dir
        self.beatmap_dir = beatmap_dir

    def media_path(self, media_id: str) -> Path:
        return self.music_dir / f"{media_stem(media_id)}.mp3"

    def beatmap_path(self, media_id: str) -> Path:
        return self.beatmap_dir / f"{media_stem(media_id)}.mp3.txt"

    async def acquire(
        self, link: str, options: AcquireOptions | None = None
    ) -> PipelineResult:
        """
        Runs fetch and beatmap generation for a link.

        The beat source is chosen before anything is downloaded, so a missing
        source or an invalid BPM fails without leaving a stray download behind.

        Raises:
            FetchFailedError: If yt-dlp cannot provide the info or audio.
            BeatmapSourceMissingError: If a beatmap is needed but there is no
                BPM and no beat tracker.
            InvalidBpmError, InvalidOffsetError: For out-of-range beat settings.
        """
        options = options or AcquireOptions()
        if options.bpm is not None:
            validate_bpm(options.bpm)
        validate_offset(options.offset)

        info = await self.fetcher.get_info(link, refresh=options.force_download)
        media_file = self.media_path(info.id)
        beatmap_file = self.beatmap_path(info.id)
        display = escape(info.title or info.id)

        beatmap_exists = await asyncio.to_thread(beatmap_file.is_file)
        source = None
        if options.force_beatmap or not beatmap_exists:
            source = select_beat_source(
                options.bpm, options.offset, options.beat_tracker
            )

        download_skipped = (
            await asyncio.to_thread(media_file.is_file) and not options.force_download
        )
        if download_skipped:
            log.info(
                f"  [yellow]○ Skipping download:[/] [dim]{escape(media_file.name)}"
                "[/dim] (already exists)"
            )
        else:
            log.info(f"  [cyan]↓ Downloading:[/] {display}")
            await self.fetcher.download(link, media_file)
            log.info(f"  [green]✓ Downloaded:[/] [dim]{escape(str(media_file))}[/dim]")

        if source is None:
            log.info(
                f"  [yellow]○ Skipping beatmap:[/] [dim]{escape(beatmap_file.name)}"
                "[/dim] (already exists)"
            )
            return PipelineResult(
                media_id=info.id,
                media_file=media_file,
                beatmap_file=beatmap_file,
                download_skipped=download_skipped,
                beatmap_skipped=True,
                title=info.title,
            )

        duration = info.duration
        if duration is None and isinstance(source, UniformBeatSynthesizer):
            duration = await asyncio.to_thread(probe_duration, media_file)

        beats = await source.generate(media_file, beatmap_file, duration)
        log.info(
            f"  [green]✓ Beatmap created:[/] {len(beats)} beats "
            f"[dim]({source.name})[/dim]"
        )
        return PipelineResult(
            media_id=info.id,
            media_file=media_file,
            beatmap_file=beatmap_file,
            download_skipped=download_skipped,
            beatmap_skipped=False,
            beat_source=source.name,
            beat_count=len(beats),
            title=info.title,
        )
