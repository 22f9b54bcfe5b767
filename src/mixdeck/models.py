"""
Track data model for MixDeck.

TrackAnalysis is the fixed record shape produced by the external analysis
service. LibraryTrack is an analysis accepted into the library: it gains an
id, the source file name, the time it was added and the parsed Camelot
fields. Records are immutable; the library only ever adds or deletes whole
records.

JSON field names are camelCase and match the persisted/exported documents.
"""

import logging
import math
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .analyze.key import parse_camelot

logger = logging.getLogger(__name__)


class AnalysisFormatError(ValueError):
    """Raised when an analysis or library record does not have the expected shape."""
    pass


class Energy(str, Enum):
    """Energy level of a structural section."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    BUILD_UP = "Build-up"
    DROP = "Drop"


def _require(data: Dict[str, Any], name: str) -> Any:
    if name not in data or data[name] is None:
        raise AnalysisFormatError(f"Missing required field: {name}")
    return data[name]


def _is_finite_number(value: Any) -> bool:
    # json.loads accepts NaN/Infinity, and huge integers overflow float()
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


def _require_str(data: Dict[str, Any], name: str) -> str:
    value = _require(data, name)
    if not isinstance(value, str):
        raise AnalysisFormatError(f"Field {name} must be a string, got {type(value).__name__}")
    return value


def _optional_str(data: Dict[str, Any], name: str) -> Optional[str]:
    value = data.get(name)
    if value is None:
        return None
    if not isinstance(value, str):
        raise AnalysisFormatError(f"Field {name} must be a string, got {type(value).__name__}")
    return value


@dataclass(frozen=True)
class StructuralPoint:
    """A labeled timestamp in a track (start of a section)."""

    timestamp: str  # "mm:ss"
    description: str
    energy: Energy

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StructuralPoint":
        if not isinstance(data, dict):
            raise AnalysisFormatError("Structural point must be an object")
        energy = _require_str(data, "energy")
        try:
            energy_level = Energy(energy)
        except ValueError:
            raise AnalysisFormatError(f"Unknown energy level: {energy!r}")
        return cls(
            timestamp=_require_str(data, "timestamp"),
            description=_require_str(data, "description"),
            energy=energy_level,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "description": self.description,
            "energy": self.energy.value,
        }


@dataclass(frozen=True)
class TrackAnalysis:
    """Analysis result for one track, as delivered by the external service."""

    bpm: float
    key: str
    genre: str
    duration: str  # "mm:ss"
    dj_tips: str
    mood: str = ""
    vocal_start: Optional[str] = None
    chorus_start: Optional[str] = None
    structural_points: Tuple[StructuralPoint, ...] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TrackAnalysis":
        """
        Validate and build an analysis from its JSON object.

        Raises:
            AnalysisFormatError: If a required field is missing or mistyped,
                or bpm is not a positive finite number.
        """
        if not isinstance(data, dict):
            raise AnalysisFormatError("Analysis record must be an object")

        bpm = _require(data, "bpm")
        if not _is_finite_number(bpm) or bpm <= 0:
            raise AnalysisFormatError(f"bpm must be a positive number, got {bpm!r}")

        points = _require(data, "structuralPoints")
        if not isinstance(points, list):
            raise AnalysisFormatError("structuralPoints must be an array")

        return cls(
            bpm=float(bpm),
            key=_require_str(data, "key"),
            genre=_require_str(data, "genre"),
            duration=_require_str(data, "duration"),
            dj_tips=_require_str(data, "djTips"),
            mood=_optional_str(data, "mood") or "",
            vocal_start=_optional_str(data, "vocalStart"),
            chorus_start=_optional_str(data, "chorusStart"),
            structural_points=tuple(StructuralPoint.from_dict(p) for p in points),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "bpm": self.bpm,
            "key": self.key,
            "genre": self.genre,
            "duration": self.duration,
            "mood": self.mood,
            "structuralPoints": [p.to_dict() for p in self.structural_points],
            "djTips": self.dj_tips,
        }
        if self.vocal_start is not None:
            data["vocalStart"] = self.vocal_start
        if self.chorus_start is not None:
            data["chorusStart"] = self.chorus_start
        return data


@dataclass(frozen=True)
class LibraryTrack:
    """An analyzed track stored in the library."""

    id: str
    file_name: str
    date_added: int  # epoch milliseconds
    analysis: TrackAnalysis
    camelot_number: Optional[int] = None
    camelot_letter: Optional[str] = None

    @classmethod
    def create(
        cls,
        analysis: TrackAnalysis,
        file_name: str,
        track_id: Optional[str] = None,
        date_added: Optional[int] = None,
    ) -> "LibraryTrack":
        """
        Accept an analysis into the library: assign identity and parse the key.

        Args:
            analysis: Validated analysis record
            file_name: Name of the analyzed source file
            track_id: Explicit id (default: random UUID4)
            date_added: Explicit epoch-ms timestamp (default: now)

        Returns:
            New LibraryTrack with camelot fields set together, or both None
        """
        camelot = parse_camelot(analysis.key)
        if camelot is None:
            logger.warning(f"Key {analysis.key!r} of {file_name} has no Camelot notation")

        return cls(
            id=track_id or str(uuid.uuid4()),
            file_name=file_name,
            date_added=date_added if date_added is not None else int(time.time() * 1000),
            analysis=analysis,
            camelot_number=camelot.number if camelot else None,
            camelot_letter=camelot.letter if camelot else None,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LibraryTrack":
        """
        Restore a stored record exactly; camelot fields are never re-derived.

        Raises:
            AnalysisFormatError: If the record is malformed.
        """
        if not isinstance(data, dict):
            raise AnalysisFormatError("Library record must be an object")

        track_id = _require_str(data, "id")
        if not track_id:
            raise AnalysisFormatError("Library record id must not be empty")

        date_added = _require(data, "dateAdded")
        if not _is_finite_number(date_added):
            raise AnalysisFormatError(f"dateAdded must be a finite number, got {date_added!r}")

        number = data.get("camelotNumber")
        letter = data.get("camelotLetter")
        if (number is None) != (letter is None):
            raise AnalysisFormatError(
                f"Track {track_id}: camelotNumber and camelotLetter must be set together"
            )
        if number is not None and (isinstance(number, bool) or not isinstance(number, int)):
            raise AnalysisFormatError(f"Track {track_id}: camelotNumber must be an integer")
        if letter is not None and letter not in ("A", "B"):
            raise AnalysisFormatError(f"Track {track_id}: camelotLetter must be 'A' or 'B'")

        return cls(
            id=track_id,
            file_name=_require_str(data, "fileName"),
            date_added=int(date_added),
            analysis=TrackAnalysis.from_dict(data),
            camelot_number=number,
            camelot_letter=letter,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = self.analysis.to_dict()
        data.update({
            "id": self.id,
            "fileName": self.file_name,
            "dateAdded": self.date_added,
        })
        if self.camelot_number is not None:
            data["camelotNumber"] = self.camelot_number
            data["camelotLetter"] = self.camelot_letter
        return data

    @property
    def has_camelot(self) -> bool:
        # A zero wheel number counts as unparsed, same as a missing one.
        return bool(self.camelot_number) and bool(self.camelot_letter)

    @property
    def bpm(self) -> float:
        return self.analysis.bpm

    @property
    def key(self) -> str:
        return self.analysis.key

    @property
    def duration(self) -> str:
        return self.analysis.duration

    @property
    def structural_points(self) -> Tuple[StructuralPoint, ...]:
        return self.analysis.structural_points
