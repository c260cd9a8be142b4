"""Tests for levels and command builders."""

import pytest

from nkips_tbus_mcp.protocol.commands import (
    LABEL_LEVELS,
    LEVEL_LABELS,
    Level,
    build_crosspoint,
    build_handshake,
    build_heartbeat,
)
from nkips_tbus_mcp.protocol.framing import HANDSHAKE_FRAME, HEARTBEAT_FRAME, parse_frame


def test_level_values():
    """Eight levels, one bit each."""
    assert [int(level) for level in Level] == [1, 2, 4, 8, 16, 32, 64, 128]


def test_every_level_has_a_label():
    assert set(LEVEL_LABELS) == set(Level)
    assert Level.SDI_VIDEO.label == "SDI Video"
    assert len(LABEL_LEVELS) == 8


@pytest.mark.parametrize("value", [
    Level.SDI_VIDEO,
    2,
    "2",
    "SDI Video",
    " SDI Video ",
    "sdi_video",
    "SDI_VIDEO",
])
def test_level_parse(value):
    assert Level.parse(value) is Level.SDI_VIDEO


@pytest.mark.parametrize("value", [0, 3, 255, "Video", "", True, None, 2.0])
def test_level_parse_rejects(value):
    with pytest.raises(ValueError):
        Level.parse(value)


def test_build_crosspoint_accepts_label():
    frame = build_crosspoint(254, "AES Audio 2", 3, 7)
    parsed = parse_frame(frame)
    assert parsed is not None
    assert parsed.level == Level.AES_AUDIO_2
    assert parsed.destination == 2
    assert parsed.source == 6


def test_build_crosspoint_rejects_combined_levels():
    with pytest.raises(ValueError):
        build_crosspoint(254, Level.SDI_VIDEO | Level.AES_AUDIO_1, 1, 1)


def test_fixed_frames():
    assert build_handshake() == HANDSHAKE_FRAME
    assert build_heartbeat() == HEARTBEAT_FRAME
