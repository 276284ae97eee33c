import os

import pytest

from zonetunes.exceptions import InvalidTargetError, LinkError
from zonetunes.storage.links import LinkKind, LinkManager

pytestmark = pytest.mark.skipif(
    not hasattr(os, "symlink"), reason="symlinks are not available"
)


@pytest.fixture
def links(tmp_path) -> LinkManager:
    return LinkManager(tmp_path / "symlinks", tmp_path / "custom_music")


@pytest.fixture
def song(tmp_path):
    path = tmp_path / "music" / "abc123.mp3"
    path.parent.mkdir()
    path.write_bytes(b"audio")
    return path


def test_stable_names(registry):
    """Verify link names depend only on the zone."""
    zone = registry.require("1-1")

    assert LinkManager.stable_name(zone, LinkKind.AUDIO) == "song_1-1.mp3"
    assert LinkManager.stable_name(zone, LinkKind.BEATMAP) == "song_1-1.mp3.txt"


def test_point_creates_link(links, registry, song, tmp_path):
    """Verify a new link is created in the directory for its kind."""
    zone = registry.require("1-1")

    link = links.point(zone, song, LinkKind.AUDIO)

    assert link == (tmp_path / "symlinks" / "song_1-1.mp3").absolute()
    assert link.is_symlink()
    assert link.read_bytes() == b"audio"
    assert links.read(zone, LinkKind.AUDIO) == song.absolute()


def test_point_replaces_existing_target(links, registry, song):
    """Verify re-pointing keeps the link path and changes the target."""
    zone = registry.require("boss1")
    other = song.with_name("other.mp3")
    other.write_bytes(b"other audio")

    first = links.point(zone, song, LinkKind.AUDIO)
    second = links.point(zone, other, LinkKind.AUDIO)

    assert first == second
    assert second.read_bytes() == b"other audio"
    assert [p.name for p in second.parent.iterdir()] == ["song_boss1.mp3"]


def test_point_to_missing_target_is_refused(links, registry, tmp_path):
    """Verify links are never left dangling."""
    zone = registry.require("1-1")

    with pytest.raises(InvalidTargetError):
        links.point(zone, tmp_path / "missing.mp3", LinkKind.AUDIO)
    assert links.read(zone, LinkKind.AUDIO) is None


def test_regular_file_at_link_path_is_not_replaced(links, registry, song, tmp_path):
    """Verify a real file sitting at the link path is left alone."""
    zone = registry.require("1-1")
    occupied = tmp_path / "symlinks" / "song_1-1.mp3"
    occupied.parent.mkdir()
    occupied.write_bytes(b"user file")

    with pytest.raises(LinkError):
        links.point(zone, song, LinkKind.AUDIO)
    assert occupied.read_bytes() == b"user file"


def test_point_zone_creates_both_links(links, registry, song, tmp_path):
    """Verify audio and beatmap links are created for a zone."""
    zone = registry.require("2-1")
    beatmap = tmp_path / "abc123.mp3.txt"
    beatmap.write_text("0.0\n0.5", encoding="utf-8")

    audio_link, beatmap_link = links.point_zone(zone, song, beatmap)

    assert audio_link.parent.name == "symlinks"
    assert beatmap_link == (tmp_path / "custom_music" / "song_2-1.mp3.txt").absolute()
    assert beatmap_link.read_text(encoding="utf-8") == "0.0\n0.5"
