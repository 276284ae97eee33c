"""
Stable-name symlinks that decouple the save file from download paths.

Each zone owns two permanently named links: an audio link referenced by the
save file and a beatmap link read by the game next to it. Only their targets
change between runs, so a zone's save-file entry never needs rewriting after
it has been pointed at its link once.
"""

import logging
import os
from enum import Enum
from pathlib import Path

from zonetunes.exceptions import InvalidTargetError, LinkError
from zonetunes.models.zone import ZoneDescriptor
from zonetunes.utils.path import create_dir, path_exists

log = logging.getLogger(__name__)


class LinkKind(str, Enum):
    AUDIO = "audio"
    BEATMAP = "beatmap"


class LinkManager:
    """
    Creates and re-points the per-zone stable links.

    Pointing a link at a missing target is refused with InvalidTargetError; a
    dangling link would make the game silently fall back to its own music.
    """

    def __init__(self, audio_link_dir: Path, beatmap_link_dir: Path):
        self.audio_link_dir = audio_link_dir
        self.beatmap_link_dir = beatmap_link_dir

    @staticmethod
    def stable_name(zone: ZoneDescriptor, kind: LinkKind) -> str:
        audio_name = f"song_{zone.id}.mp3"
        if kind is LinkKind.AUDIO:
            return audio_name
        return f"{audio_name}.txt"

    def stable_path(self, zone: ZoneDescriptor, kind: LinkKind) -> Path:
        directory = (
            self.audio_link_dir if kind is LinkKind.AUDIO else self.beatmap_link_dir
        )
        return (directory / self.stable_name(zone, kind)).absolute()

    def read(self, zone: ZoneDescriptor, kind: LinkKind) -> Path | None:
        """Returns the current target of a zone's link, or None if there is none."""
        link = self.stable_path(zone, kind)
        if not link.is_symlink():
            return None
        return Path(os.readlink(link))

    def point(self, zone: ZoneDescriptor, target: Path, kind: LinkKind) -> Path:
        """
        Points the zone's stable link of the given kind at `target`.

        The new link is created under a temporary name and renamed over the
        stable one, so readers see either the old or the new target.

        Returns:
            The stable link path.

        Raises:
            InvalidTargetError: If `target` does not exist.
            LinkError: If the link cannot be created.
        """
        target = Path(target).absolute()
        if not target.exists():
            raise InvalidTargetError(
                f"Cannot point {kind.value} link of zone '{zone.id}' at missing "
                f"file '{target}'."
            )

        link = self.stable_path(zone, kind)
        if link.is_symlink() and Path(os.readlink(link)) == target:
            log.debug(f"Link '{link.name}' already points at '{target}'")
            return link

        if path_exists(link) and not link.is_symlink():
            raise LinkError(
                f"'{link}' exists and is not a symlink; refusing to replace it."
            )

        temp_link = link.with_name(f".{link.name}.tmp-link")
        try:
            create_dir(link.parent)
            if path_exists(temp_link):
                os.unlink(temp_link)
            os.symlink(target, temp_link)
            os.replace(temp_link, link)
        except (OSError, NotImplementedError) as e:
            if path_exists(temp_link):
                try:
                    os.unlink(temp_link)
                except OSError:
                    pass
            raise LinkError(f"Failed to create link '{link}': {e}") from e

        log.debug(f"Pointed '{link}' -> '{target}'")
        return link

    def point_zone(
        self, zone: ZoneDescriptor, media_file: Path, beatmap_file: Path
    ) -> tuple[Path, Path]:
        """Points both of a zone's links. Returns (audio link, beatmap link)."""
        audio_link = self.point(zone, media_file, LinkKind.AUDIO)
        beatmap_link = self.point(zone, beatmap_file, LinkKind.BEATMAP)
        return audio_link, beatmap_link
