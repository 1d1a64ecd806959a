"""SMS segment counting.

Carriers split long messages into concatenated segments. A GSM-7 message
fits 160 characters in one segment and 153 per segment once concatenated
(the UDH header eats 7). UCS-2 messages fit 70 and 67.

Any non-ASCII character forces UCS-2; this is what the providers we talk to
do for accented Latin text as well, so estimates stay on the safe side.
"""

from __future__ import annotations

import math
from enum import Enum

GSM7_SINGLE = 160
GSM7_MULTI = 153
UCS2_SINGLE = 70
UCS2_MULTI = 67

# Characters from the GSM 03.38 extension table; each one is sent as ESC + char.
GSM7_EXTENSION = frozenset("^{}\\[~]|")


class Encoding(str, Enum):
    GSM7 = "gsm7"
    UCS2 = "ucs2"


def detect_encoding(text: str) -> Encoding:
    return Encoding.GSM7 if text.isascii() else Encoding.UCS2


def message_length(text: str) -> int:
    """Length in encoded characters (septets for GSM-7, code units for UCS-2)."""

    if detect_encoding(text) is Encoding.UCS2:
        # Astral characters (emoji) take two UTF-16 code units.
        return len(text.encode("utf-16-le")) // 2
    return len(text) + sum(1 for ch in text if ch in GSM7_EXTENSION)


def count_segments(text: str) -> int:
    if detect_encoding(text) is Encoding.UCS2:
        single, multi = UCS2_SINGLE, UCS2_MULTI
    else:
        single, multi = GSM7_SINGLE, GSM7_MULTI

    length = message_length(text)
    if length <= single:
        return 1
    return math.ceil(length / multi)
