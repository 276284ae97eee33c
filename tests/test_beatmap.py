import asyncio
import math
import os
import stat

import pytest

from zonetunes.exceptions import (
    BeatDetectionError,
    BeatmapError,
    BeatmapSourceMissingError,
    InvalidBpmError,
    InvalidOffsetError,
)
from zonetunes.media.beatmap import (
    ExecutableBeatDetector,
    UniformBeatSynthesizer,
    parse_beats,
    select_beat_source,
    synthesize_beats,
)


def test_synthesize_beats_at_120_bpm():
    """Verify beats are spaced by 60/bpm and stop before the duration."""
    assert synthesize_beats(120, 2.5) == [0.0, 0.5, 1.0, 1.5, 2.0]


def test_synthesize_beats_with_offset():
    """Verify the offset shifts every beat."""
    assert synthesize_beats(60, 3.0, offset=0.25) == [0.25, 1.25, 2.25]


def test_synthesize_beats_excludes_beat_at_duration():
    """Verify a beat landing exactly on the duration is not included."""
    assert synthesize_beats(60, 2.0) == [0.0, 1.0]


@pytest.mark.parametrize(
    ("bpm", "duration", "count"),
    [(11, 60.0, 11), (13, 60.0, 13), (22, 30.0, 11), (44, 15.0, 11), (7, 60.0, 7)],
)
def test_synthesize_beats_with_inexact_interval(bpm, duration, count):
    """Verify a rounded beat interval never adds a beat at the duration."""
    beats = synthesize_beats(bpm, duration)

    assert len(beats) == count
    assert beats[-1] < duration
    assert beats[1] == 60 / bpm


@pytest.mark.parametrize("bpm", [0, -120, math.inf, math.nan, 60_000, True])
def test_invalid_bpm_is_rejected(bpm):
    """Verify the BPM must be a finite number in (0, 60000)."""
    with pytest.raises(InvalidBpmError):
        synthesize_beats(bpm, 10.0)


@pytest.mark.parametrize("offset", [-0.1, math.inf, math.nan])
def test_invalid_offset_is_rejected(offset):
    """Verify the offset must be finite and not negative."""
    with pytest.raises(InvalidOffsetError):
        UniformBeatSynthesizer(120, offset)


def test_parse_beats_ignores_blank_lines():
    """Verify beat files are parsed line by line."""
    assert parse_beats("0.5\n\n1.0\n 1.5 \n") == [0.5, 1.0, 1.5]
    with pytest.raises(BeatmapError, match="Line 2"):
        parse_beats("0.5\nabc\n")


def test_select_beat_source_prefers_bpm(tmp_path):
    """Verify an explicit BPM wins over an available detector."""
    tracker = tmp_path / "beattracker.exe"
    tracker.write_bytes(b"")

    assert isinstance(select_beat_source(120, 0.0, tracker), UniformBeatSynthesizer)
    assert isinstance(select_beat_source(None, 0.0, tracker), ExecutableBeatDetector)


def test_select_beat_source_without_bpm_or_detector(tmp_path):
    """Verify a missing detector without a BPM is reported."""
    with pytest.raises(BeatmapSourceMissingError):
        select_beat_source(None, 0.0, None)
    with pytest.raises(BeatmapSourceMissingError, match="beattracker.exe"):
        select_beat_source(None, 0.0, tmp_path / "beattracker.exe")


def test_synthesizer_writes_beat_file(tmp_path):
    """Verify the synthesized beats are written one per line."""
    output = tmp_path / "beatmaps" / "abc123.mp3.txt"

    beats = asyncio.run(
        UniformBeatSynthesizer(120).generate(tmp_path / "abc123.mp3", output, 2.5)
    )

    assert beats == [0.0, 0.5, 1.0, 1.5, 2.0]
    assert output.read_text(encoding="utf-8") == "0.0\n0.5\n1.0\n1.5\n2.0"
    assert not output.with_name("abc123.mp3.txt.partial").exists()


def test_synthesizer_needs_a_duration(tmp_path):
    """Verify beats cannot be synthesized for a song of unknown length."""
    with pytest.raises(BeatmapError, match="unknown duration"):
        asyncio.run(
            UniformBeatSynthesizer(120).generate(
                tmp_path / "a.mp3", tmp_path / "a.mp3.txt", None
            )
        )


def _script(path, body):
    path.write_text(f"#!/bin/sh\n{body}\n", encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR)
    return path


posix_only = pytest.mark.skipif(os.name != "posix", reason="uses a shell script")


@posix_only
def test_detector_output_is_parsed_and_moved_into_place(tmp_path):
    """Verify the detector writes to a partial file that is then renamed."""
    tracker = _script(tmp_path / "tracker", "printf '0.48\\n0.97\\n1.45\\n' > \"$2\"")
    output = tmp_path / "abc123.mp3.txt"

    beats = asyncio.run(
        ExecutableBeatDetector(tracker).generate(tmp_path / "abc123.mp3", output, None)
    )

    assert beats == [0.48, 0.97, 1.45]
    assert output.is_file()
    assert not output.with_name("abc123.mp3.txt.partial").exists()


@posix_only
def test_detector_failure_leaves_no_beat_file(tmp_path):
    """Verify a failing detector produces an error and no output."""
    tracker = _script(
        tmp_path / "tracker", "echo partial > \"$2\"\necho 'bad audio' >&2\nexit 3"
    )
    output = tmp_path / "abc123.mp3.txt"

    with pytest.raises(BeatDetectionError, match="bad audio"):
        asyncio.run(
            ExecutableBeatDetector(tracker).generate(
                tmp_path / "abc123.mp3", output, None
            )
        )
    assert not output.exists()
    assert not output.with_name("abc123.mp3.txt.partial").exists()
