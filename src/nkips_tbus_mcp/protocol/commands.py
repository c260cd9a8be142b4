"""Signal levels and high-level command builders.

The NK-IPS switches eight independent levels. Each is identified on the wire
by a single bit value; a crosspoint command always carries exactly one.
"""

from __future__ import annotations

from enum import IntEnum

from .framing import HANDSHAKE_FRAME, HEARTBEAT_FRAME, build_frame


class Level(IntEnum):
    """Router signal levels."""

    MD_VIDEO = 0x01
    SDI_VIDEO = 0x02
    AES_AUDIO_1 = 0x04
    AES_AUDIO_2 = 0x08
    ANALOG_VIDEO = 0x10
    ANALOG_AUDIO_1 = 0x20
    ANALOG_AUDIO_2 = 0x40
    MACHINE_CONTROL = 0x80

    @property
    def label(self) -> str:
        return LEVEL_LABELS[self]

    @classmethod
    def parse(cls, value: Level | int | str) -> Level:
        """Resolve a level from its value, label or member name.

        Accepts ``Level.SDI_VIDEO``, ``2``, ``"2"``, ``"SDI Video"`` or
        ``"sdi_video"``.

        Raises:
            ValueError: If the value names no single level.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            try:
                return cls(value)
            except ValueError:
                raise ValueError(
                    f"Unknown level {value}. Valid: {[int(lvl) for lvl in cls]}"
                ) from None
        if isinstance(value, str):
            text = value.strip()
            if text.isdigit():
                return cls.parse(int(text))
            if text in LABEL_LEVELS:
                return LABEL_LEVELS[text]
            member = text.upper().replace(" ", "_")
            if member in cls.__members__:
                return cls[member]
        raise ValueError(f"Unknown level {value!r}. Valid: {list(LABEL_LEVELS)}")


LEVEL_LABELS: dict[Level, str] = {
    Level.MD_VIDEO: "MD Video",
    Level.SDI_VIDEO: "SDI Video",
    Level.AES_AUDIO_1: "AES Audio 1",
    Level.AES_AUDIO_2: "AES Audio 2",
    Level.ANALOG_VIDEO: "Analog Video",
    Level.ANALOG_AUDIO_1: "Analog Audio 1",
    Level.ANALOG_AUDIO_2: "Analog Audio 2",
    Level.MACHINE_CONTROL: "Machine Control",
}

LABEL_LEVELS: dict[str, Level] = {label: level for level, label in LEVEL_LABELS.items()}


def build_crosspoint(address: int, level: Level | int, destination: int, source: int) -> bytes:
    """Build a "set crosspoint" frame.

    Args:
        address: T-Bus address of the NK-IPS (1-255).
        level: Signal level.
        destination: 1-based destination number.
        source: 1-based source number.
    """
    return build_frame(address, Level.parse(level), destination, source)


def build_handshake() -> bytes:
    """The greeting written once, straight after the TCP connect."""
    return HANDSHAKE_FRAME


def build_heartbeat() -> bytes:
    return HEARTBEAT_FRAME
