"""
Mix suggestions: library tracks that can follow the selected track.

A candidate qualifies when it is both tempo-compatible (direct, double time
or half time) and harmonically compatible with the target. Results keep
library order; there is no scoring, so "best match" is simply the first
qualifying track and the rest are alternatives.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from ..models import LibraryTrack
from .harmonic import is_harmonic_match

logger = logging.getLogger(__name__)

# Inclusive candidate/target BPM ratio bands
TEMPO_BANDS = (
    (0.90, 1.10),  # direct, ±10%
    (1.90, 2.10),  # candidate at double time
    (0.45, 0.55),  # candidate at half time
)


def is_tempo_compatible(target_bpm: float, candidate_bpm: float) -> bool:
    """
    Check if a candidate's tempo can be mixed against the target's.

    Args:
        target_bpm: BPM of the selected track
        candidate_bpm: BPM of the candidate track

    Returns:
        True if candidate/target falls inside any tempo band
    """
    if target_bpm <= 0:
        return False

    ratio = candidate_bpm / target_bpm
    return any(low <= ratio <= high for low, high in TEMPO_BANDS)


def get_suggestions(target: LibraryTrack, library: Sequence[LibraryTrack]) -> List[LibraryTrack]:
    """
    Filter the library down to tracks that mix with the target.

    Args:
        target: Selected track
        library: Full library, in display order

    Returns:
        Compatible tracks in library order, never including the target itself
    """
    suggestions = []

    for candidate in library:
        if candidate.id == target.id:
            continue

        if not is_tempo_compatible(target.bpm, candidate.bpm):
            logger.debug(
                f"Track {candidate.id} BPM {candidate.bpm} incompatible with {target.bpm}"
            )
            continue

        if not is_harmonic_match(target, candidate):
            logger.debug(
                f"Track {candidate.id} key {candidate.key} incompatible with {target.key}"
            )
            continue

        suggestions.append(candidate)

    logger.debug(f"{len(suggestions)} suggestions for {target.id} out of {len(library)} tracks")
    return suggestions


def split_suggestions(
    suggestions: Sequence[LibraryTrack], limit: int = 3
) -> Tuple[Optional[LibraryTrack], List[LibraryTrack]]:
    """
    Split suggestions for presentation.

    Args:
        suggestions: Output of get_suggestions
        limit: Total number of tracks to present

    Returns:
        Tuple (best, alternatives): best is the first suggestion or None,
        alternatives are the next limit-1 suggestions
    """
    shown = list(suggestions[:limit])
    if not shown:
        return None, []
    return shown[0], shown[1:]
