"""
Shared fixtures: a minimal mod-settings.dat captured from the game.

Version 1.1.82.4, one startup string setting
``my-string-setting = "deadbeef"`` and two empty runtime sections.
"""

import pytest

SAMPLE_HEX = (
    "01 00 01 00 52 00 04 00 00 05 00 03 00 00 00 00 07 73 74 61 72 74 75 70 05 00 01 00 00 00 "
    "00 11 6D 79 2D 73 74 72 69 6E 67 2D 73 65 74 74 69 6E 67 05 00 01 00 00 00 00 05 76 61 6C "
    "75 65 03 00 00 08 64 65 61 64 62 65 65 66 00 0E 72 75 6E 74 69 6D 65 2D 67 6C 6F 62 61 6C "
    "05 00 00 00 00 00 00 10 72 75 6E 74 69 6D 65 2D 70 65 72 2D 75 73 65 72 05 00 00 00 00 00"
)


@pytest.fixture
def sample_bytes() -> bytes:
    return bytes.fromhex(SAMPLE_HEX)
