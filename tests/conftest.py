"""Shared fixtures for the zonetunes test-suite."""

from pathlib import Path

import pytest

from zonetunes.core.media_pipeline import MediaPipeline
from zonetunes.core.sync_manager import SyncManager
from zonetunes.media.fetcher import MediaInfo
from zonetunes.models.config import SyncConfig
from zonetunes.models.zone import ZoneRegistry

SAMPLE_SAVE = (
    "<?xml?>\n"
    "<necrodancer>\n"
    '\t<player numCoins="120" hairColor="3" />\n'
    '\t<game version="2.59" customSong0="|2350|DEFAULT|" '
    'customSong3="C:/music/old.mp3" lastPlayed="1-1" volume="0.8" />\n'
    "\t<!-- unlocked characters -->\n"
    '\t<npc name="merlin" unlocked="true" />\n'
    "</necrodancer>\n"
)


class FakeFetcher:
    """Stands in for yt-dlp and records how often it was asked for work."""

    def __init__(self, media_id: str = "abc123", duration: float | None = 2.5):
        self.info = MediaInfo(id=media_id, duration=duration, title="Test Song")
        self.info_calls = 0
        self.download_calls = 0

    async def get_info(self, link: str, refresh: bool = False) -> MediaInfo:
        self.info_calls += 1
        return self.info

    async def download(self, link: str, destination: Path) -> Path:
        self.download_calls += 1
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(b"ID3 not really audio")
        return destination


@pytest.fixture
def registry() -> ZoneRegistry:
    return ZoneRegistry.default()


@pytest.fixture
def game_dir(tmp_path: Path) -> Path:
    path = tmp_path / "game"
    (path / "data").mkdir(parents=True)
    return path


@pytest.fixture
def save_file(game_dir: Path) -> Path:
    path = game_dir / "data" / "save_data1.xml"
    path.write_text(SAMPLE_SAVE, encoding="utf-8", newline="")
    return path


@pytest.fixture
def fake_fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def config(game_dir: Path, tmp_path: Path) -> SyncConfig:
    return SyncConfig(
        game_dir=str(game_dir),
        library_dir=str(tmp_path / "library"),
        config_path=str(tmp_path / "config"),
    )


@pytest.fixture
def pipeline(config: SyncConfig, fake_fetcher: FakeFetcher) -> MediaPipeline:
    return MediaPipeline(fake_fetcher, config.music_dir, config.beatmap_dir)


@pytest.fixture
def manager(
    config: SyncConfig, registry: ZoneRegistry, pipeline: MediaPipeline
) -> SyncManager:
    return SyncManager(config, registry=registry, pipeline=pipeline)
