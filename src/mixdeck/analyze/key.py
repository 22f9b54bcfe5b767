"""
Camelot key parsing.

The external analysis service reports keys as free-form strings that are
expected to contain Camelot notation somewhere inside them ("8A",
"4A/4B (A minor)", "12b"). Only the first Camelot token is used.
"""

import logging
import re
from typing import NamedTuple, Optional

logger = logging.getLogger(__name__)

# Digits immediately followed by the wheel letter. The number is not range-checked.
CAMELOT_PATTERN = re.compile(r"(\d+)([ABab])")


class CamelotKey(NamedTuple):
    """Parsed Camelot position: wheel number and letter (A=minor, B=major)."""

    number: int
    letter: str

    def __str__(self) -> str:
        return f"{self.number}{self.letter}"


def parse_camelot(key_str: Optional[str]) -> Optional[CamelotKey]:
    """
    Extract the first Camelot token from a key string.

    Args:
        key_str: Free-form key text (e.g. "8A", "4A/4B - A minor")

    Returns:
        CamelotKey with the letter upper-cased, or None if no token is present.
        None is a normal outcome: matching falls back to raw key equality.
    """
    if not key_str:
        return None

    match = CAMELOT_PATTERN.search(key_str)
    if match is None:
        logger.debug(f"No Camelot token in key {key_str!r}")
        return None

    return CamelotKey(number=int(match.group(1)), letter=match.group(2).upper())
