from __future__ import annotations

import pytest

from core import sms


@pytest.mark.parametrize(
    ("text", "segments"),
    [
        ("", 1),
        ("a" * 160, 1),
        ("a" * 161, 2),
        ("a" * 306, 2),
        ("a" * 307, 3),
        ("é" * 70, 1),
        ("é" * 71, 2),
        ("é" * 134, 2),
        ("é" * 135, 3),
    ],
)
def test_count_segments(text: str, segments: int) -> None:
    assert sms.count_segments(text) == segments


def test_non_ascii_forces_ucs2() -> None:
    assert sms.detect_encoding("hola") is sms.Encoding.GSM7
    assert sms.detect_encoding("canción") is sms.Encoding.UCS2


def test_extension_characters_count_double() -> None:
    assert sms.message_length("[]") == 4
    assert sms.count_segments("{" * 80) == 1
    assert sms.count_segments("{" * 81) == 2


def test_emoji_takes_two_code_units() -> None:
    assert sms.message_length("🙂") == 2
    assert sms.count_segments("🙂" * 35) == 1
    assert sms.count_segments("🙂" * 36) == 2
