# © 2024–2025 Harnisch LLC. All Rights Reserved.
# Licensed exclusively for use by St. Edward Church & School (Nashville, TN).
# Unauthorized use, distribution, or modification is prohibited.

"""
Studio Resolver - Works out which studio a calendar title refers to
"""
import re
from enum import IntEnum
from typing import Optional, Tuple


class Studio(IntEnum):
    """Physical studios; values are the studio ids stored on bookings"""
    A = 1
    B = 2
    G = 3

    @property
    def display_name(self) -> str:
        return STUDIO_DISPLAY_NAMES[self]


STUDIO_DISPLAY_NAMES = {
    Studio.A: "אולפן א'",
    Studio.B: "אולפן ב'",
    Studio.G: "אולפן ג'",
}

# Checked in this order; the first studio with a matching marker wins
_MARKERS = (
    (Studio.A, 'א', 'A'),
    (Studio.B, 'ב', 'B'),
    (Studio.G, 'ג', 'G'),
)

STUDIO_PATTERNS = tuple(
    (
        studio,
        re.compile(rf"אולפן\s*{hebrew}(?![א-ת])"),
        re.compile(rf"\bstudio[\s_-]+{latin}(?![a-z])", re.IGNORECASE),
    )
    for studio, hebrew, latin in _MARKERS
)

_CLEANUP_PATTERNS = (
    re.compile(r"\(\s*אולפן\s*[א-ת](?![א-ת])['׳]?\s*\)"),
    re.compile(r"אולפן\s*[א-ת](?![א-ת])['׳]?"),
    re.compile(r"\(\s*studio[\s_-]+[a-z](?![a-z])\s*\)", re.IGNORECASE),
    re.compile(r"\bstudio[\s_-]+[a-z](?![a-z])", re.IGNORECASE),
    re.compile(r"\([^)]*\)"),             # parenthetical notes
    re.compile(r"\s*-\s*רן\s*$"),         # trailing signature
    re.compile(r"\s*\([^)]*$"),           # unclosed trailing parenthesis
)

_EDGE_CHARS = " \t-–—:|/()"


def find_studio(title: str) -> Optional[Studio]:
    """Return the first studio whose marker appears in the title"""
    if not title:
        return None
    for studio, hebrew, latin in STUDIO_PATTERNS:
        if hebrew.search(title) or latin.search(title):
            return studio
    return None


def clean_title(title: str) -> str:
    """Strip studio markers and parenthetical notes, then collapse whitespace"""
    if not title:
        return title

    cleaned = title
    for pattern in _CLEANUP_PATTERNS:
        cleaned = pattern.sub(' ', cleaned)

    cleaned = re.sub(r"\s+", ' ', cleaned).strip(_EDGE_CHARS).strip()
    # Never turn a title into nothing
    return cleaned or title.strip()


def resolve_studio(title: str) -> Tuple[Optional[int], str]:
    """
    Resolve a free-text calendar title.

    Returns:
        (studio id or None for a neutral booking, cleaned display title)
    """
    studio = find_studio(title)
    return (int(studio) if studio is not None else None), clean_title(title)
