"""
Harmonic compatibility on the Camelot wheel.

Compatible keys are:
- Same key (e.g., 8A and 8A)
- Relative major/minor: same number, other letter (e.g., 8A and 8B)
- Adjacent on the wheel with the same letter (e.g., 8A and 9A, 12A and 1A)

Tracks whose key could not be parsed fall back to raw key string equality.
"""

import logging

from ..models import LibraryTrack

logger = logging.getLogger(__name__)

# |n1 - n2| for neighbours across the 12 -> 1 seam. Wheel numbers are not
# range-checked, so out-of-range numbers can still hit it (15A matches 4A).
WHEEL_WRAP_DISTANCE = 11


def is_harmonic_match(track1: LibraryTrack, track2: LibraryTrack) -> bool:
    """
    Check if two tracks are harmonically compatible.

    Symmetric: is_harmonic_match(a, b) == is_harmonic_match(b, a).

    Args:
        track1: First track
        track2: Second track

    Returns:
        True if the keys mix well, False otherwise
    """
    if not track1.has_camelot or not track2.has_camelot:
        return track1.key == track2.key

    num1, num2 = track1.camelot_number, track2.camelot_number
    let1, let2 = track1.camelot_letter, track2.camelot_letter

    # Same key, or relative major/minor
    if num1 == num2:
        return True

    diff = abs(num1 - num2)
    adjacent = diff == 1 or diff == WHEEL_WRAP_DISTANCE
    return adjacent and let1 == let2
