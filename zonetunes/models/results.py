"""
Value objects passed between the media pipeline, the sync manager and the CLI.
"""

from dataclasses import dataclass
from pathlib import Path

from zonetunes.models.zone import ZoneDescriptor


@dataclass
class AcquireOptions:
    """Options controlling a single media pipeline run."""

    force_download: bool = False
    force_beatmap: bool = False
    bpm: float | None = None
    offset: float = 0.0
    beat_tracker: Path | None = None


@dataclass
class PipelineResult:
    """Outcome of fetching a media file and producing its beatmap."""

    media_id: str
    media_file: Path
    beatmap_file: Path
    download_skipped: bool
    beatmap_skipped: bool
    beat_source: str = "cached"
    beat_count: int | None = None
    title: str | None = None


@dataclass
class ProcessOptions:
    """Everything `SyncManager.full_process` needs for one link/zone pair."""

    link: str
    zone: str
    save_file: Path | None = None
    bpm: float | None = None
    offset: float = 0.0
    beat_tracker: Path | None = None
    force_download: bool = False
    force_beatmap: bool = False
    backup_save_file: bool | None = None
    prepare_all_links: bool | None = None

    def acquire_options(self) -> AcquireOptions:
        return AcquireOptions(
            force_download=self.force_download,
            force_beatmap=self.force_beatmap,
            bpm=self.bpm,
            offset=self.offset,
            beat_tracker=self.beat_tracker,
        )


@dataclass
class ProcessResult:
    """Outcome of a full process run."""

    zone: ZoneDescriptor
    pipeline: PipelineResult
    save_file: Path
    audio_link: Path
    beatmap_link: Path
    save_written: bool
    backup_file: Path | None = None

    @property
    def media_file(self) -> Path:
        return self.pipeline.media_file

    @property
    def beatmap_file(self) -> Path:
        return self.pipeline.beatmap_file
