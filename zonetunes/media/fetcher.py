"""
Retrieves media information and audio through the yt-dlp executable.
"""

import asyncio
import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path

from zonetunes.exceptions import FetchFailedError
from zonetunes.storage.cache import CacheManager
from zonetunes.utils.path import create_dir

log = logging.getLogger(__name__)


@dataclass
class MediaInfo:
    """The subset of yt-dlp's metadata the pipeline needs."""

    id: str
    duration: float | None = None
    title: str | None = None


class MediaFetcher:
    """
    Thin async wrapper around yt-dlp.

    Failures are reported as FetchFailedError and never retried here; yt-dlp
    has its own retry options for transient network errors.
    """

    def __init__(self, executable: str = "yt-dlp", cache: CacheManager | None = None):
        self.executable = executable
        self.cache = cache

    async def _run(self, *args: str) -> str:
        try:
            process = await asyncio.create_subprocess_exec(
                self.executable,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (FileNotFoundError, PermissionError) as e:
            raise FetchFailedError(
                f"Could not run '{self.executable}': {e}. Is yt-dlp installed?"
            ) from e

        stdout, stderr = await process.communicate()
        if process.returncode != 0:
            message = stderr.decode("utf-8", errors="replace").strip().splitlines()
            detail = message[-1] if message else f"exit code {process.returncode}"
            raise FetchFailedError(f"yt-dlp failed: {detail}")
        return stdout.decode("utf-8", errors="replace")

    async def get_info(self, link: str, refresh: bool = False) -> MediaInfo:
        """
        Fetches the media id, duration and title for a link.

        Args:
            link: Any locator yt-dlp understands.
            refresh: Ignore a cached entry and query yt-dlp again.
        """
        cache_key = f"info:{link}"
        if self.cache and not refresh:
            cached = self.cache.get(cache_key)
            if cached and cached.get("id"):
                log.debug(f"Using cached media info for '{link}'")
                return MediaInfo(**cached)

        log.debug(f"Fetching media info for '{link}'")
        output = await self._run(
            "--dump-single-json", "--no-playlist", "--skip-download", link
        )
        try:
            data = json.loads(output)
        except json.JSONDecodeError as e:
            raise FetchFailedError(f"yt-dlp returned invalid JSON for '{link}'") from e

        if not isinstance(data, dict) or not data.get("id"):
            raise FetchFailedError(f"yt-dlp returned no media id for '{link}'")

        duration = data.get("duration")
        info = MediaInfo(
            id=str(data["id"]),
            duration=float(duration) if isinstance(duration, (int, float)) else None,
            title=data.get("title"),
        )
        if self.cache:
            self.cache.set(cache_key, asdict(info))
        return info

    async def download(self, link: str, destination: Path) -> Path:
        """
        Downloads the best audio stream of a link and converts it to MP3 at
        `destination`.
        """
        create_dir(destination.parent)
        output_template = f"{destination.with_suffix('')}.%(ext)s"

        log.debug(f"Downloading '{link}' to '{destination}'")
        await self._run(
            "--no-playlist",
            "--no-progress",
            "--extract-audio",
            "--format",
            "bestaudio",
            "--restrict-filenames",
            "--audio-format",
            "mp3",
            "--output",
            output_template,
            link,
        )

        if not destination.is_file():
            raise FetchFailedError(
                f"yt-dlp finished but '{destination.name}' was not created."
            )
        return destination
