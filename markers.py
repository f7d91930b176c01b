"""
Recognition of the two-byte protocol markers in the device output.
"""

import enum
from typing import Optional

from config import (
    START_MARKER,
    END_MARKER,
    LOADED_MARKER,
    ASK_INPUT_MARKER,
    FINISHED_MARKER,
    PANIC_MARKER,
)


class Marker(enum.Enum):
    START = START_MARKER
    END = END_MARKER
    LOADED = LOADED_MARKER
    ASK_INPUT = ASK_INPUT_MARKER
    FINISHED = FINISHED_MARKER
    PANIC = PANIC_MARKER


# Match priority; enum definition order
_PRIORITY = tuple(Marker)


def match_marker(prev: Optional[int], cur: int) -> Optional[Marker]:
    """
    Return the marker formed by the previous and current byte, if any.

    Args:
        prev: Previous byte value, or None at the start of a stream
        cur: Current byte value

    Returns:
        Matching Marker or None
    """
    if prev is None:
        return None
    for marker in _PRIORITY:
        first, second = marker.value
        if prev == first and cur == second:
            return marker
    return None
