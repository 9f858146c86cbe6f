from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from soldiers.colors import Color, ColorFormatError, decode_color, encode_color

logger = logging.getLogger(__name__)

DEFAULT_DATA_FILE = "SoldierData.json"
JSON_INDENT = 2

# Up to seven fractional digits are common in files written by other tools;
# datetime only keeps microseconds.
_TIMESTAMP_RE = re.compile(
    r"^(?P<base>\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}(?::\d{2})?)"
    r"(?:\.(?P<fraction>\d+))?"
    r"(?P<offset>Z|[+-]\d{2}:?\d{2})?$"
)


class DocumentError(ValueError):
    """Raised when a soldier document cannot be parsed."""


def parse_timestamp(text: object) -> datetime:
    if not isinstance(text, str):
        raise DocumentError(f"Invalid timestamp: {text!r}")
    match = _TIMESTAMP_RE.match(text.strip())
    if match is None:
        raise DocumentError(f"Invalid timestamp: {text!r}")

    normalised = match.group("base")
    fraction = match.group("fraction")
    if fraction:
        normalised += "." + fraction[:6].ljust(6, "0")
    offset = match.group("offset")
    if offset:
        if offset == "Z":
            offset = "+00:00"
        elif ":" not in offset:
            offset = offset[:3] + ":" + offset[3:]
        normalised += offset
    try:
        return datetime.fromisoformat(normalised)
    except ValueError as exc:
        raise DocumentError(f"Invalid timestamp: {text!r}") from exc


def format_timestamp(value: datetime) -> str:
    text = value.isoformat()
    if text.endswith("+00:00"):
        return text[:-6] + "Z"
    return text


def _require(data: Dict, key: str, kind, context: str):
    if not isinstance(data, dict):
        raise DocumentError(f"{context} must be a JSON object")
    if key not in data:
        raise DocumentError(f"{context} is missing '{key}'")
    value = data[key]
    # bool is an int subclass; reject it for numeric fields.
    if isinstance(value, bool) or not isinstance(value, kind):
        raise DocumentError(f"{context} field '{key}' has unexpected type {type(value).__name__}")
    return value


@dataclass(frozen=True)
class Soldier:
    id: int
    first_name: str
    last_name: str
    rank: str
    country: str
    training_info: str
    color: Color

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @classmethod
    def from_dict(cls, data: Dict) -> "Soldier":
        context = "Soldier"
        soldier_id = _require(data, "Id", int, context)
        context = f"Soldier {soldier_id}"
        try:
            color = decode_color(data.get("Color"))
        except ColorFormatError as exc:
            raise DocumentError(f"{context}: {exc}") from exc
        return cls(
            id=soldier_id,
            first_name=_require(data, "FirstName", str, context),
            last_name=_require(data, "LastName", str, context),
            rank=_require(data, "Rank", str, context),
            country=_require(data, "Country", str, context),
            training_info=_require(data, "TrainingInfo", str, context),
            color=color,
        )

    def to_dict(self) -> Dict[str, object]:
        return {
            "Id": self.id,
            "FirstName": self.first_name,
            "LastName": self.last_name,
            "Rank": self.rank,
            "Country": self.country,
            "TrainingInfo": self.training_info,
            "Color": encode_color(self.color),
        }


@dataclass
class Position:
    soldier_id: int
    latitude: float
    longitude: float

    @classmethod
    def from_dict(cls, data: Dict) -> "Position":
        return cls(
            soldier_id=_require(data, "SoldierId", int, "Position"),
            latitude=float(_require(data, "Latitude", (int, float), "Position")),
            longitude=float(_require(data, "Longitude", (int, float), "Position")),
        )

    def to_dict(self) -> Dict[str, object]:
        return {
            "SoldierId": self.soldier_id,
            "Latitude": self.latitude,
            "Longitude": self.longitude,
        }


@dataclass
class PositionUpdate:
    timestamp: datetime
    positions: List[Position] = field(default_factory=list)
    # Spelling read from the file, written back unchanged while it still matches.
    timestamp_text: Optional[str] = field(default=None, compare=False, repr=False)

    @classmethod
    def from_dict(cls, data: Dict) -> "PositionUpdate":
        timestamp_text = _require(data, "Timestamp", str, "PositionUpdate")
        timestamp = parse_timestamp(timestamp_text)
        raw_positions = data.get("Positions") or []
        if not isinstance(raw_positions, list):
            raise DocumentError("PositionUpdate field 'Positions' must be a list")
        return cls(
            timestamp=timestamp,
            positions=[Position.from_dict(item) for item in raw_positions],
            timestamp_text=timestamp_text,
        )

    def to_dict(self) -> Dict[str, object]:
        return {
            "Timestamp": self._timestamp_for_output(),
            "Positions": [position.to_dict() for position in self.positions],
        }

    def _timestamp_for_output(self) -> str:
        if self.timestamp_text is not None and parse_timestamp(self.timestamp_text) == self.timestamp:
            return self.timestamp_text
        return format_timestamp(self.timestamp)


@dataclass
class SoldierDocument:
    """Soldier roster plus the append-only log of position updates."""

    soldiers: List[Soldier] = field(default_factory=list)
    position_updates: List[PositionUpdate] = field(default_factory=list)
    path: Optional[Path] = field(default=None, compare=False)

    @classmethod
    def load(cls, path: Path) -> "SoldierDocument":
        path = Path(path)
        text = path.read_text(encoding="utf-8-sig")
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise DocumentError(f"Malformed JSON: {exc}") from exc
        document = cls.from_dict(data, path=path)
        logger.info(
            "Loaded %d soldiers and %d position updates from %s",
            len(document.soldiers),
            len(document.position_updates),
            path,
        )
        return document

    @classmethod
    def from_dict(cls, data: Dict, path: Optional[Path] = None) -> "SoldierDocument":
        if not isinstance(data, dict):
            raise DocumentError("Document root must be a JSON object")
        raw_soldiers = _require(data, "Soldiers", list, "Document")
        raw_updates = data.get("PositionUpdates") or []
        if not isinstance(raw_updates, list):
            raise DocumentError("Document field 'PositionUpdates' must be a list")

        soldiers = [Soldier.from_dict(item) for item in raw_soldiers]
        seen = set()
        for soldier in soldiers:
            if soldier.id in seen:
                raise DocumentError(f"Duplicate soldier id {soldier.id}")
            seen.add(soldier.id)

        return cls(
            soldiers=soldiers,
            position_updates=[PositionUpdate.from_dict(item) for item in raw_updates],
            path=path,
        )

    def to_dict(self) -> Dict[str, object]:
        return {
            "Soldiers": [soldier.to_dict() for soldier in self.soldiers],
            "PositionUpdates": [update.to_dict() for update in self.position_updates],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=JSON_INDENT, ensure_ascii=False)

    def save(self, path: Optional[Path] = None) -> None:
        target = path or self.path
        if target is None:
            raise ValueError("No path supplied for saving SoldierDocument.")
        target = Path(target)
        target.write_text(self.to_json() + "\n", encoding="utf-8")
        logger.info("Saved %d position updates to %s", len(self.position_updates), target)

    # ------------------------------------------------------------------#
    # Queries
    # ------------------------------------------------------------------#
    def find_soldier(self, soldier_id: int) -> Optional[Soldier]:
        for soldier in self.soldiers:
            if soldier.id == soldier_id:
                return soldier
        return None

    def latest_timestamp(self, soldier_id: int) -> Optional[datetime]:
        stamps = [
            update.timestamp
            for update in self.position_updates
            if any(position.soldier_id == soldier_id for position in update.positions)
        ]
        return max(stamps) if stamps else None

    def latest_positions(self) -> Dict[int, Position]:
        """Last known position per soldier, replaying updates oldest first."""
        latest: Dict[int, Position] = {}
        for update in sorted(self.position_updates, key=lambda u: u.timestamp):
            for position in update.positions:
                latest[position.soldier_id] = position
        return latest

    # ------------------------------------------------------------------#
    # Mutation
    # ------------------------------------------------------------------#
    def append_correction(
        self,
        soldier_id: int,
        latitude: float,
        longitude: float,
        timestamp: Optional[datetime] = None,
    ) -> PositionUpdate:
        """Record a manual move as a new single-position update."""
        if self.find_soldier(soldier_id) is None:
            raise KeyError(soldier_id)
        update = PositionUpdate(
            timestamp=timestamp or datetime.now(),
            positions=[Position(soldier_id, float(latitude), float(longitude))],
        )
        self.position_updates.append(update)
        return update
