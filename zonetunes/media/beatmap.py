"""
Produces beat-timing files: newline-separated beat timestamps in seconds.

Two sources exist: an external beat detector executable, and a uniform
sequence synthesized from an explicit BPM and offset.
"""

import asyncio
import logging
import math
import os
from abc import ABC, abstractmethod
from pathlib import Path

import aiofiles

from zonetunes.exceptions import (
    BeatDetectionError,
    BeatmapError,
    BeatmapSourceMissingError,
    InvalidBpmError,
    InvalidOffsetError,
)
from zonetunes.utils.path import create_dir

log = logging.getLogger(__name__)

MAX_BPM = 60_000


def validate_bpm(bpm: float) -> float:
    """Ensures a BPM is a finite number between 0 and 60000 (both exclusive)."""
    if isinstance(bpm, bool) or not isinstance(bpm, (int, float)):
        raise InvalidBpmError(f"BPM must be a number, got {bpm!r}.")
    if not math.isfinite(bpm) or bpm <= 0 or bpm >= MAX_BPM:
        raise InvalidBpmError(
            f"Invalid BPM {bpm}: must be a number between 0 and {MAX_BPM}."
        )
    return float(bpm)


def validate_offset(offset: float) -> float:
    if isinstance(offset, bool) or not isinstance(offset, (int, float)):
        raise InvalidOffsetError(f"Offset must be a number, got {offset!r}.")
    if not math.isfinite(offset) or offset < 0:
        raise InvalidOffsetError(
            f"Invalid offset {offset}: must be zero or a positive number of seconds."
        )
    return float(offset)


def synthesize_beats(bpm: float, duration: float, offset: float = 0.0) -> list[float]:
    """
    Builds a uniform beat sequence.

    Returns `offset + k * 60 / bpm` for every k >= 0 with `k * 60 / bpm`
    strictly less than `duration`. The bound is checked as `k * 60 < duration
    * bpm` so a rounded interval never adds a beat that lands on `duration`.
    """
    bpm = validate_bpm(bpm)
    offset = validate_offset(offset)

    beats = []
    k = 0
    while k * 60 < duration * bpm:
        beats.append(offset + k * 60 / bpm)
        k += 1
    return beats


def format_beats(beats: list[float]) -> str:
    return "\n".join(str(float(beat)) for beat in beats)


def parse_beats(text: str) -> list[float]:
    """Parses a beat file's contents, ignoring blank lines."""
    beats = []
    for number, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line:
            continue
        try:
            beats.append(float(line))
        except ValueError as e:
            raise BeatmapError(
                f"Line {number} of beat file is not a number: {line!r}"
            ) from e
    return beats


def _partial_path(output_path: Path) -> Path:
    return output_path.with_name(f"{output_path.name}.partial")


class BeatSource(ABC):
    """Something that can produce a beat-timing file for an audio file."""

    name: str = "unknown"

    @abstractmethod
    async def generate(
        self, audio_path: Path, output_path: Path, duration: float | None
    ) -> list[float]:
        """Writes the beat file to `output_path` and returns its timestamps."""


class UniformBeatSynthesizer(BeatSource):
    """Writes an evenly spaced beat sequence from a known BPM and offset."""

    name = "bpm"

    def __init__(self, bpm: float, offset: float = 0.0):
        self.bpm = validate_bpm(bpm)
        self.offset = validate_offset(offset)

    async def generate(
        self, audio_path: Path, output_path: Path, duration: float | None
    ) -> list[float]:
        if duration is None or not math.isfinite(duration) or duration <= 0:
            raise BeatmapError(
                f"Cannot synthesize beats for '{audio_path.name}': unknown duration."
            )

        beats = synthesize_beats(self.bpm, duration, self.offset)
        create_dir(output_path.parent)
        partial = _partial_path(output_path)
        async with aiofiles.open(partial, "w", encoding="utf-8", newline="\n") as f:
            await f.write(format_beats(beats))
        await asyncio.to_thread(os.replace, partial, output_path)

        log.debug(f"Synthesized {len(beats)} beats at {self.bpm} BPM")
        return beats


class ExecutableBeatDetector(BeatSource):
    """Runs an external beat tracker as `<executable> <audio> <output>`."""

    name = "detector"

    def __init__(self, executable: Path):
        self.executable = Path(executable)

    async def generate(
        self, audio_path: Path, output_path: Path, duration: float | None
    ) -> list[float]:
        create_dir(output_path.parent)
        partial = _partial_path(output_path)

        log.debug(f"Detecting beats with '{self.executable}' for '{audio_path}'")
        try:
            process = await asyncio.create_subprocess_exec(
                str(self.executable),
                str(audio_path),
                str(partial),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise BeatDetectionError(
                f"Could not run beat tracker '{self.executable}': {e}"
            ) from e

        _, stderr = await process.communicate()
        if process.returncode != 0:
            self._discard(partial)
            detail = stderr.decode("utf-8", errors="replace").strip()
            raise BeatDetectionError(
                f"Beat tracker exited with code {process.returncode}"
                + (f": {detail.splitlines()[-1]}" if detail else "")
            )

        if not partial.is_file():
            raise BeatDetectionError(
                f"Beat tracker did not write a beat file for '{audio_path.name}'."
            )

        async with aiofiles.open(partial, encoding="utf-8") as f:
            beats = parse_beats(await f.read())
        await asyncio.to_thread(os.replace, partial, output_path)
        return beats

    @staticmethod
    def _discard(path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            pass


def select_beat_source(
    bpm: float | None = None,
    offset: float = 0.0,
    executable: Path | None = None,
) -> BeatSource:
    """
    Picks the beat source for a run. An explicit BPM always wins; otherwise
    the detector executable is used if it exists.

    Raises:
        InvalidBpmError: If the BPM is out of range.
        InvalidOffsetError: If the offset is negative or not finite.
        BeatmapSourceMissingError: If there is neither a BPM nor a detector.
    """
    if bpm is not None:
        return UniformBeatSynthesizer(bpm, offset)

    if executable is not None and Path(executable).is_file():
        return ExecutableBeatDetector(Path(executable))

    where = f" (looked for '{executable}')" if executable is not None else ""
    raise BeatmapSourceMissingError(
        f"Cannot create beatmap: no BPM given and no beat tracker found{where}."
    )
