"""
Reads, edits and writes the game's XML save file.

Only the `customSong<N>` attributes of the `game` element are ever changed.
Edits are applied to the `game` start tag in the original text, so every
other byte of the document, including comments outside the root element,
attribute order, quoting and whitespace inside attribute values, is written
back as it was read. The game writes a bare `<?xml?>` declaration and expects
to find it again, so that exact form is restored on every write.
"""

import asyncio
import logging
import os
import re
import shutil
from datetime import datetime
from enum import Enum
from pathlib import Path
from xml.parsers import expat
from xml.sax.saxutils import escape

import aiofiles

from zonetunes.exceptions import (
    BackupExistsError,
    NotLoadedError,
    SaveFileNotFoundError,
    SaveFileParseError,
)
from zonetunes.models.zone import ZoneDescriptor, ZoneRegistry
from zonetunes.utils.path import to_game_path

log = logging.getLogger(__name__)

NO_CUSTOM_SONG = "|2350|DEFAULT|"
GAME_DECLARATION = "<?xml?>"
GAME_ELEMENT = "game"

_DECLARATION_RE = re.compile(r"^\ufeff?\s*<\?xml\b[^>]*\?>")
_ATTRIBUTE_RE = re.compile(
    r"""\s+(?P<name>[^\s=/>]+)\s*=\s*(?P<quote>["'])(?P<value>.*?)(?P=quote)""",
    re.DOTALL,
)
_ATTRIBUTE_ENTITIES = {
    '"': "&quot;",
    "'": "&apos;",
    "\t": "&#9;",
    "\n": "&#10;",
    "\r": "&#13;",
}


def _escape_attribute(value: str) -> str:
    return escape(value, _ATTRIBUTE_ENTITIES)


def _start_tag_end(text: str, start: int) -> int:
    """Index just past the `>` closing the start tag that begins at `start`."""
    quote = None
    for index in range(start, len(text)):
        char = text[index]
        if quote:
            if char == quote:
                quote = None
        elif char in "\"'":
            quote = char
        elif char == ">":
            return index + 1
    raise ValueError("unterminated start tag")


class EditorState(str, Enum):
    UNLOADED = "unloaded"
    LOADED = "loaded"
    CLEAN = "clean"
    DIRTY = "dirty"
    PERSISTED = "persisted"


class SaveFileEditor:
    """
    Holds one save document for a single load -> edit -> persist transaction.

    The dirty flag compares the `game` element's attributes against the state
    captured at load (or at the last persist), so writing back a value the
    document already had never counts as a change.
    """

    def __init__(self, path: Path, registry: ZoneRegistry | None = None):
        self.path = Path(path)
        self.registry = registry or ZoneRegistry.default()
        self._body: str | None = None
        self._tag_start = 0
        self._tag_end = 0
        self._attributes: dict[str, str] = {}
        self._baseline: dict[str, str] = {}
        self._edited = False
        self._persisted = False

    @property
    def is_loaded(self) -> bool:
        return self._body is not None

    @property
    def is_dirty(self) -> bool:
        return self.is_loaded and self._attributes != self._baseline

    @property
    def state(self) -> EditorState:
        if not self.is_loaded:
            return EditorState.UNLOADED
        if self.is_dirty:
            return EditorState.DIRTY
        if self._persisted:
            return EditorState.PERSISTED
        return EditorState.CLEAN if self._edited else EditorState.LOADED

    async def load(self) -> None:
        """
        Reads and parses the save file.

        Raises:
            SaveFileNotFoundError: If the file does not exist.
            SaveFileParseError: If it is not XML or has no `game` element.
        """
        if not await asyncio.to_thread(self.path.is_file):
            raise SaveFileNotFoundError(f"Save file '{self.path}' does not exist.")

        try:
            async with aiofiles.open(self.path, encoding="utf-8", newline="") as f:
                content = await f.read()
        except UnicodeDecodeError as e:
            raise SaveFileParseError(
                f"Save file '{self.path}' is not valid UTF-8: {e}"
            ) from e

        match = _DECLARATION_RE.match(content)
        body = content[match.end() :] if match else content.lstrip("\ufeff")
        tag_start, attributes = self._find_game_tag(body)

        self._body = body
        self._tag_start = tag_start
        self._tag_end = _start_tag_end(body, tag_start)
        self._attributes = attributes
        self._baseline = dict(attributes)
        self._edited = False
        self._persisted = False
        log.debug(f"Loaded save file '{self.path}' ({len(attributes)} attributes)")

    def _find_game_tag(self, body: str) -> tuple[int, dict[str, str]]:
        """
        Parses the document and returns the character offset of the `game`
        start tag (the root, or the root's first `game` child) and its
        attributes in document order.
        """
        encoded = body.encode("utf-8")
        parser = expat.ParserCreate()
        found: list[tuple[int, dict[str, str]]] = []
        depth = 0

        def start_element(name: str, attributes: dict[str, str]) -> None:
            nonlocal depth
            if not found and name == GAME_ELEMENT and depth <= 1:
                found.append((parser.CurrentByteIndex, attributes))
            depth += 1

        def end_element(name: str) -> None:
            nonlocal depth
            depth -= 1

        parser.StartElementHandler = start_element
        parser.EndElementHandler = end_element
        try:
            parser.Parse(encoded, True)
        except expat.ExpatError as e:
            raise SaveFileParseError(
                f"Save file '{self.path}' could not be parsed: {e}"
            ) from e

        if not found:
            raise SaveFileParseError(
                f"Save file '{self.path}' has no <{GAME_ELEMENT}> element."
            )
        byte_index, attributes = found[0]
        return len(encoded[:byte_index].decode("utf-8")), dict(attributes)

    def _require_loaded(self) -> str:
        if self._body is None:
            raise NotLoadedError("Save file content not loaded.")
        return self._body

    def _resolve(self, zone: str | ZoneDescriptor) -> ZoneDescriptor:
        if isinstance(zone, ZoneDescriptor):
            return zone
        return self.registry.require(zone)

    def get_custom_song(self, zone: str | ZoneDescriptor) -> str | None:
        """The zone's current value, or None if the game never set one."""
        self._require_loaded()
        return self._attributes.get(self._resolve(zone).attribute)

    def set_custom_song(
        self, zone: str | ZoneDescriptor, value: str | os.PathLike | None
    ) -> bool:
        """
        Assigns a custom song path to a zone, or clears it when `value` is None.

        Returns:
            True if the attribute's value changed.

        Raises:
            NotLoadedError: If called before `load()`.
            UnknownZoneError: If the zone identifier is not in the registry.
        """
        self._require_loaded()
        descriptor = self._resolve(zone)

        new_value = NO_CUSTOM_SONG if value is None else to_game_path(value)
        changed = self._attributes.get(descriptor.attribute) != new_value
        if changed:
            self._attributes[descriptor.attribute] = new_value
            log.debug(f"Set {descriptor.attribute} = '{new_value}'")
        self._edited = True
        return changed

    def _render_game_tag(self) -> str:
        """
        The `game` start tag with changed values patched in place and new
        attributes appended after the last existing one.
        """
        tag = self._body[self._tag_start : self._tag_end]
        changes = {
            name: value
            for name, value in self._attributes.items()
            if self._baseline.get(name) != value
        }
        if not changes:
            return tag

        parts = []
        last = 0
        position = 1 + len(GAME_ELEMENT)
        while match := _ATTRIBUTE_RE.match(tag, position):
            name = match.group("name")
            if name in changes:
                parts.append(tag[last : match.start("value")])
                parts.append(_escape_attribute(changes.pop(name)))
                last = match.end("value")
            position = match.end()
        parts.append(tag[last:position])
        for name, value in changes.items():
            parts.append(f' {name}="{_escape_attribute(value)}"')
        parts.append(tag[position:])
        return "".join(parts)

    def _render_body(self) -> str:
        body = self._require_loaded()
        return body[: self._tag_start] + self._render_game_tag() + body[self._tag_end :]

    def serialize(self) -> str:
        """Renders the current document with the game's declaration."""
        return f"{GAME_DECLARATION}{self._render_body()}"

    async def persist(self) -> None:
        """
        Writes the document back to disk.

        The content goes to a temporary sibling of the real file (following a
        symlinked save file) with the same permissions, and then replaces it in
        one rename, so a failure never leaves a half-written document.
        """
        body = self._render_body()
        content = f"{GAME_DECLARATION}{body}"
        target = await asyncio.to_thread(self.path.resolve)
        temp_path = target.with_name(f".{target.name}.tmp")

        try:
            async with aiofiles.open(
                temp_path, "w", encoding="utf-8", newline=""
            ) as f:
                await f.write(content)
            if await asyncio.to_thread(target.exists):
                await asyncio.to_thread(shutil.copymode, target, temp_path)
            await asyncio.to_thread(os.replace, temp_path, target)
        finally:
            if temp_path.exists():
                try:
                    os.remove(temp_path)
                except OSError:
                    pass

        self._tag_end = self._tag_start + len(self._render_game_tag())
        self._body = body
        self._baseline = dict(self._attributes)
        self._persisted = True
        log.debug(f"Saved save file '{self.path}'")

    async def backup(self) -> Path:
        """
        Copies the save file to `<name>-backup-<timestamp>` next to it.

        Raises:
            SaveFileNotFoundError: If there is no save file to copy.
            BackupExistsError: If the backup path is already taken.
        """
        stamp = datetime.now().strftime("%Y%m%d-%H%M%S-%f")
        backup_path = self.path.with_name(f"{self.path.name}-backup-{stamp}")
        await asyncio.to_thread(self._copy_exclusive, backup_path)
        log.info(f"Backed up save file to [dim]{backup_path.name}[/dim]")
        return backup_path

    def _copy_exclusive(self, backup_path: Path) -> None:
        try:
            with open(self.path, "rb") as src:
                try:
                    dst = open(backup_path, "xb")  # noqa: SIM115
                except FileExistsError as e:
                    raise BackupExistsError(
                        f"Backup '{backup_path}' already exists."
                    ) from e
                with dst:
                    shutil.copyfileobj(src, dst)
        except FileNotFoundError as e:
            raise SaveFileNotFoundError(
                f"Save file '{self.path}' does not exist."
            ) from e
        shutil.copystat(self.path, backup_path)
