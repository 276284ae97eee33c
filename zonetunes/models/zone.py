"""
Zone descriptors and the registry that maps zone names to save-file slots.
"""

import json
import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from zonetunes.exceptions import ConfigurationError, UnknownZoneError

log = logging.getLogger(__name__)

CUSTOM_SONG_ATTRIBUTE = "customSong"

# Records in the same shape as an external zone map file:
# the first name is the canonical id, gameIndex is the customSong<N> suffix.
DEFAULT_ZONE_MAP: list[dict[str, Any]] = [
    {"names": ["lobby", "main", "menu"], "gameIndex": 0},
    {"names": ["1-1", "zone1-1", "z1-1"], "gameIndex": 1},
    {"names": ["1-2", "zone1-2", "z1-2"], "gameIndex": 2},
    {"names": ["1-3", "zone1-3", "z1-3"], "gameIndex": 3},
    {"names": ["2-1", "zone2-1", "z2-1"], "gameIndex": 4},
    {"names": ["2-2", "zone2-2", "z2-2"], "gameIndex": 5},
    {"names": ["2-3", "zone2-3", "z2-3"], "gameIndex": 6},
    {"names": ["3-1", "zone3-1", "z3-1"], "gameIndex": 7},
    {"names": ["3-2", "zone3-2", "z3-2"], "gameIndex": 8},
    {"names": ["3-3", "zone3-3", "z3-3"], "gameIndex": 9},
    {"names": ["4-1", "zone4-1", "z4-1"], "gameIndex": 10},
    {"names": ["4-2", "zone4-2", "z4-2"], "gameIndex": 11},
    {"names": ["4-3", "zone4-3", "z4-3"], "gameIndex": 12},
    {"names": ["boss1", "king-conga", "conga"], "gameIndex": 13},
    {"names": ["boss2", "death-metal", "metal"], "gameIndex": 14},
    {"names": ["boss3", "deep-blues", "blues"], "gameIndex": 15},
    {"names": ["boss4", "coral-riff", "coral"], "gameIndex": 16},
    {"names": ["training", "tutorial"], "gameIndex": 17},
]


@dataclass(frozen=True)
class ZoneDescriptor:
    """A single assignable music slot in the save file."""

    id: str
    aliases: frozenset[str]
    slot_index: int

    @property
    def attribute(self) -> str:
        """The save-file attribute holding this zone's custom song."""
        return f"{CUSTOM_SONG_ATTRIBUTE}{self.slot_index}"

    def matches(self, identifier: str) -> bool:
        return identifier.strip().lower() in self.aliases


class ZoneRegistry:
    """
    Immutable lookup table of zones.

    Lookups are case-insensitive and alias-aware. An unknown identifier is a
    normal outcome: `resolve` returns None and callers decide whether that
    is fatal.
    """

    def __init__(self, zones: Iterable[ZoneDescriptor]):
        self._zones: tuple[ZoneDescriptor, ...] = tuple(zones)
        self._by_alias: dict[str, ZoneDescriptor] = {}
        seen_slots: dict[int, str] = {}

        for zone in self._zones:
            if zone.slot_index in seen_slots:
                raise ConfigurationError(
                    f"Zones '{seen_slots[zone.slot_index]}' and '{zone.id}' share "
                    f"slot index {zone.slot_index}."
                )
            seen_slots[zone.slot_index] = zone.id

            for alias in zone.aliases:
                if alias in self._by_alias:
                    raise ConfigurationError(
                        f"Alias '{alias}' is used by both "
                        f"'{self._by_alias[alias].id}' and '{zone.id}'."
                    )
                self._by_alias[alias] = zone

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> "ZoneRegistry":
        """
        Builds a registry from `{"names": [...], "gameIndex": int}` records.

        Raises:
            ConfigurationError: If a record is malformed or the table is ambiguous.
        """
        zones = []
        for position, record in enumerate(records):
            names = [str(n).strip().lower() for n in record.get("names", []) if n]
            names = [n for n in names if n]
            if not names:
                raise ConfigurationError(f"Zone record #{position} has no names.")

            index = record.get("gameIndex")
            if isinstance(index, bool) or not isinstance(index, int) or index < 0:
                raise ConfigurationError(
                    f"Zone '{names[0]}' needs a non-negative integer gameIndex, "
                    f"got {index!r}."
                )
            zones.append(
                ZoneDescriptor(id=names[0], aliases=frozenset(names), slot_index=index)
            )
        return cls(zones)

    @classmethod
    def from_file(cls, path: Path) -> "ZoneRegistry":
        """Loads a registry from a JSON zone map file with a top-level `zones` list."""
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except OSError as e:
            raise ConfigurationError(f"Cannot read zone map '{path}': {e}") from e
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Zone map '{path}' is not valid JSON: {e}") from e

        records = data.get("zones") if isinstance(data, dict) else None
        if not isinstance(records, list):
            raise ConfigurationError(f"Zone map '{path}' has no 'zones' list.")

        log.debug(f"Loaded {len(records)} zones from '{path}'")
        return cls.from_records(records)

    @classmethod
    def default(cls) -> "ZoneRegistry":
        return cls.from_records(DEFAULT_ZONE_MAP)

    def resolve(self, identifier: str) -> ZoneDescriptor | None:
        if not isinstance(identifier, str):
            return None
        return self._by_alias.get(identifier.strip().lower())

    def require(self, identifier: str) -> ZoneDescriptor:
        """Like `resolve`, but raises UnknownZoneError when nothing matches."""
        zone = self.resolve(identifier)
        if zone is None:
            raise UnknownZoneError(identifier)
        return zone

    def all(self) -> tuple[ZoneDescriptor, ...]:
        return self._zones

    def __iter__(self) -> Iterator[ZoneDescriptor]:
        return iter(self._zones)

    def __len__(self) -> int:
        return len(self._zones)

    def __contains__(self, identifier: object) -> bool:
        return isinstance(identifier, str) and self.resolve(identifier) is not None
