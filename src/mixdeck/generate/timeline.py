"""
Structure Timeline: Turn labeled timestamps into a gapless section layout.

Each structural point opens a section that runs until the next point (or the
end of the track). Widths are percentages of the total duration, with a
minimum visible width so that zero-length or backwards sections, which come
from out-of-order timestamps, still show up. Input order is not validated.
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..models import Energy, StructuralPoint

logger = logging.getLogger(__name__)

DEFAULT_DURATION_SECONDS = 180  # 3:00
MIN_WIDTH_PERCENT = 1.0

TIMESTAMP_PATTERN = re.compile(r"^\s*(\d+):(\d+)\s*$")

# (substrings, label), first hit wins. Spanish labels come from the analysis service.
DISPLAY_LABELS = (
    (("drop",), "DROP"),
    (("break",), "BREAK"),
    (("estribillo", "est.", "chorus"), "CHORUS"),
    (("estrofa", "verse", "vocal"), "VERSE"),
    (("intro",), "INTRO"),
    (("outro",), "OUTRO"),
    (("puente", "build"), "BUILD"),
)


@dataclass(frozen=True)
class Segment:
    """One section of the structure timeline."""

    start_seconds: int
    end_seconds: int
    width_percent: float
    label: str
    description: str
    energy: Energy
    remaining_seconds: int  # start - total, counts down to the end of the track

    @property
    def kind(self) -> str:
        return section_kind(self.description, self.energy)


def to_seconds(time_str: Optional[str]) -> int:
    """
    Convert "mm:ss" to whole seconds.

    Args:
        time_str: Timestamp text

    Returns:
        Seconds, or 0 for empty or malformed input
    """
    if not time_str:
        return 0

    match = TIMESTAMP_PATTERN.match(time_str)
    if match is None:
        logger.debug(f"Malformed timestamp {time_str!r}, using 0")
        return 0

    return int(match.group(1)) * 60 + int(match.group(2))


def format_time(seconds: float) -> str:
    """Format seconds as m:ss, with a leading '-' for negative values."""
    sign = "-" if seconds < 0 else ""
    whole = int(abs(seconds))
    return f"{sign}{whole // 60}:{whole % 60:02d}"


def display_label(description: str) -> str:
    """Map a free-text section description to a short DJ label."""
    lowered = description.lower()
    for needles, label in DISPLAY_LABELS:
        if any(needle in lowered for needle in needles):
            return label
    return description.upper()[:8]


def section_kind(description: str, energy: Energy) -> str:
    """
    Classify a section for display.

    Returns:
        One of "drop", "peak", "build", "verse", "breakdown", "edge", "neutral"
    """
    lowered = description.lower()

    if "drop" in lowered:
        return "drop"
    if "estribillo" in lowered or energy == Energy.HIGH:
        return "peak"
    if "puente" in lowered or "build" in lowered or energy == Energy.BUILD_UP:
        return "build"
    if "estrofa" in lowered or "verse" in lowered:
        return "verse"
    if "break" in lowered or "down" in lowered:
        return "breakdown"
    if "intro" in lowered or "outro" in lowered:
        return "edge"
    return "neutral"


def build_segments(
    points: Sequence[StructuralPoint],
    total_duration: Optional[str],
    min_width_percent: float = MIN_WIDTH_PERCENT,
    default_duration_seconds: int = DEFAULT_DURATION_SECONDS,
) -> List[Segment]:
    """
    Build the timeline segments for a track.

    Args:
        points: Structural points, assumed ascending by timestamp
        total_duration: Track duration "mm:ss"; missing/unparseable/zero uses the default
        min_width_percent: Floor applied to every segment width
        default_duration_seconds: Duration used when total_duration is unusable

    Returns:
        One Segment per point; contiguous over [0, total] for sorted input
    """
    total_seconds = to_seconds(total_duration) or default_duration_seconds

    segments = []
    for index, point in enumerate(points):
        start = to_seconds(point.timestamp)
        if index + 1 < len(points):
            end = to_seconds(points[index + 1].timestamp)
        else:
            end = total_seconds

        width = (end - start) / total_seconds * 100
        if width < min_width_percent:
            logger.debug(
                f"Segment {point.description!r} at {point.timestamp} is {width:.2f}% wide; "
                f"clamping to {min_width_percent}%"
            )
            width = min_width_percent

        segments.append(
            Segment(
                start_seconds=start,
                end_seconds=end,
                width_percent=width,
                label=display_label(point.description),
                description=point.description,
                energy=point.energy,
                remaining_seconds=start - total_seconds,
            )
        )

    return segments
