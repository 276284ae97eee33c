import pytest

from zonetunes.media.probe import probe_duration
from zonetunes.utils.path import detect_save_file, media_stem, to_game_path


def test_detect_save_file_picks_first_match(game_dir):
    """Verify only save_data<N>.xml files are detected, in name order."""
    data = game_dir / "data"
    for name in ["save_data2.xml", "save_data1.xml", "save_data.xml", "notes.xml"]:
        (data / name).write_text("<game />", encoding="utf-8")

    assert detect_save_file(game_dir) == data / "save_data1.xml"


def test_detect_save_file_without_candidates(game_dir, tmp_path):
    """Verify nothing is detected in empty or missing data directories."""
    assert detect_save_file(game_dir) is None
    assert detect_save_file(tmp_path / "missing") is None


def test_media_stem_is_filesystem_safe():
    """Verify media ids are turned into portable file names."""
    assert media_stem("abc123") == "abc123"
    assert "/" not in media_stem("a/b:c")
    with pytest.raises(ValueError):
        media_stem("///")


def test_to_game_path_uses_forward_slashes():
    """Verify backslashes are converted for the game."""
    assert to_game_path("C:\\Music\\song.mp3") == "C:/Music/song.mp3"


def test_probe_duration_of_unreadable_file(tmp_path):
    """Verify files without MP3 stream info have no duration."""
    path = tmp_path / "broken.mp3"
    path.write_bytes(b"not an mp3 at all")

    assert probe_duration(path) is None
