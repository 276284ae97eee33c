import asyncio
import json
import os
import time

import pytest

from zonetunes.exceptions import FetchFailedError
from zonetunes.media.fetcher import MediaFetcher, MediaInfo
from zonetunes.storage.cache import CacheManager


class RecordingFetcher(MediaFetcher):
    """Replaces the yt-dlp process with canned output."""

    def __init__(self, output: str, cache=None):
        super().__init__("yt-dlp", cache)
        self.output = output
        self.calls = []

    async def _run(self, *args: str) -> str:
        self.calls.append(args)
        return self.output


INFO_JSON = json.dumps({"id": "abc123", "duration": 212, "title": "Song"})


def test_get_info_parses_yt_dlp_json():
    """Verify the id, duration and title are read from yt-dlp's output."""
    fetcher = RecordingFetcher(INFO_JSON)

    info = asyncio.run(fetcher.get_info("link"))

    assert info == MediaInfo(id="abc123", duration=212.0, title="Song")
    assert "--dump-single-json" in fetcher.calls[0]
    assert fetcher.calls[0][-1] == "link"


@pytest.mark.parametrize("output", ["not json", json.dumps({"title": "no id"})])
def test_get_info_rejects_unusable_output(output):
    """Verify output without a media id is a fetch failure."""
    with pytest.raises(FetchFailedError):
        asyncio.run(RecordingFetcher(output).get_info("link"))


def test_get_info_uses_cache(tmp_path):
    """Verify cached info avoids a second yt-dlp call unless refreshed."""
    cache = CacheManager(tmp_path)
    fetcher = RecordingFetcher(INFO_JSON, cache)

    first = asyncio.run(fetcher.get_info("link"))
    second = asyncio.run(fetcher.get_info("link"))
    asyncio.run(fetcher.get_info("link", refresh=True))

    assert first == second
    assert len(fetcher.calls) == 2


def test_missing_executable_is_a_fetch_failure(tmp_path):
    """Verify a missing yt-dlp binary is reported clearly."""
    fetcher = MediaFetcher(str(tmp_path / "no-such-yt-dlp"))

    with pytest.raises(FetchFailedError, match="Is yt-dlp installed"):
        asyncio.run(fetcher.get_info("link"))


def test_download_requires_output_file(tmp_path):
    """Verify a download that produced nothing is a failure."""
    fetcher = RecordingFetcher("")
    destination = tmp_path / "music" / "abc123.mp3"

    with pytest.raises(FetchFailedError, match="was not created"):
        asyncio.run(fetcher.download("link", destination))
    assert fetcher.calls[0][fetcher.calls[0].index("--output") + 1] == str(
        tmp_path / "music" / "abc123.%(ext)s"
    )


def test_cache_disabled_with_zero_age(tmp_path):
    """Verify a zero max age turns the cache off."""
    cache = CacheManager(tmp_path, max_age_days=0)

    assert cache.set("key", {"a": 1}) is False
    assert cache.get("key") is None


def test_cache_round_trip_and_clear(tmp_path):
    """Verify values survive until the cache is cleared."""
    cache = CacheManager(tmp_path)

    assert cache.set("info:link", {"id": "abc123"})
    assert cache.get("info:link") == {"id": "abc123"}
    assert cache.get("info:other") is None
    assert cache.clear()
    assert cache.get("info:link") is None


def test_cleanup_removes_only_expired_entries(tmp_path):
    """Verify entries older than the max age are deleted."""
    cache = CacheManager(tmp_path, max_age_days=1)
    cache.set("old", 1)
    cache.set("new", 2)
    old_file = cache._get_cache_path("old")
    stale = time.time() - 2 * 86400
    os.utime(old_file, (stale, stale))

    assert cache.cleanup_expired_entries() == 1
    assert not old_file.exists()
    assert cache.get("new") == 2
