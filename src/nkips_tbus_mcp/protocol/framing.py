"""Crosspoint frame builder and parser for T-Bus over TCP.

Frame layout::

    +--------------+----------+---------+---------+---------+---------+---------+-----+----------+
    | Outer header | Protocol | Address | Set XPT |  Dest   | Source  |  Level  | Pad | Checksum |
    |   6 bytes    | 4 bytes  | 1 byte  | 2 bytes | 2 bytes | 2 bytes | 4 bytes | 1 B |  2 bytes |
    +--------------+----------+---------+---------+---------+---------+---------+-----+----------+
                   |<------------------------- payload (16 bytes) ------------------>|

- Outer header: ``PAS2`` followed by the big-endian length of payload + checksum
- Protocol: 0x4E 0x4B 0x32 0x00
- Address: T-Bus address of the NK-IPS gateway (1-255)
- Set XPT: 0x04 0x09, the "set crosspoint" sub-command
- Dest / Source: zero-based, big-endian
- Level: the level bit value (1, 2, 4 ... 128), big-endian
- Checksum: byte-swapped CRC-16 over the payload, always two bytes

The handshake and heartbeat are fixed byte strings rather than framed
commands.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..utils.crc import crc16_bytes

PROTOCOL_MARKER = b"\x4E\x4B\x32\x00"
SET_CROSSPOINT = b"\x04\x09"
PAYLOAD_SIZE = 16
CHECKSUM_SIZE = 2
OUTER_HEADER = b"PAS2" + (PAYLOAD_SIZE + CHECKSUM_SIZE).to_bytes(2, "big")
FRAME_SIZE = len(OUTER_HEADER) + PAYLOAD_SIZE + CHECKSUM_SIZE  # 24

HANDSHAKE_FRAME = b"PHOENIX-DB N\n"
HEARTBEAT_FRAME = b"HI"

LEVEL_VALUES = frozenset(1 << bit for bit in range(8))
MAX_INDEX = 0x10000  # 1-based indices map onto a 16-bit wire field


@dataclass
class CrosspointFrame:
    """A decoded crosspoint frame, indices as carried on the wire (zero-based)."""

    address: int
    level: int
    destination: int
    source: int

    def __repr__(self) -> str:
        return (
            f"CrosspointFrame(address={self.address}, level=0x{self.level:02X}, "
            f"destination={self.destination}, source={self.source})"
        )


def _check_range(name: str, value: int, low: int, high: int) -> None:
    if not low <= value <= high:
        raise ValueError(f"{name} must be {low}-{high}, got {value}")


def build_payload(address: int, level: int, destination: int, source: int) -> bytes:
    """Build the 16-byte checksummed section of a crosspoint frame.

    Args:
        address: T-Bus address 1-255.
        level: One level bit value (1, 2, 4 ... 128), never a combination.
        destination: 1-based destination number.
        source: 1-based source number.

    Raises:
        ValueError: If any field cannot be represented on the wire.
    """
    _check_range("Address", address, 1, 255)
    _check_range("Destination", destination, 1, MAX_INDEX)
    _check_range("Source", source, 1, MAX_INDEX)
    if level not in LEVEL_VALUES:
        raise ValueError(f"Level must be a single level bit (1-128), got {level}")

    return (
        PROTOCOL_MARKER
        + bytes([address])
        + SET_CROSSPOINT
        + (destination - 1).to_bytes(2, "big")
        + (source - 1).to_bytes(2, "big")
        + int(level).to_bytes(4, "big")
        + b"\x00"
    )


def build_frame(address: int, level: int, destination: int, source: int) -> bytes:
    """Build the complete 24-byte crosspoint frame ready to write to the socket."""
    payload = build_payload(address, level, destination, source)
    return OUTER_HEADER + payload + crc16_bytes(payload)


def parse_frame(data: bytes) -> CrosspointFrame | None:
    """Decode a crosspoint frame.

    Returns:
        A ``CrosspointFrame``, or ``None`` if the length, header, markers or
        checksum do not match.
    """
    if len(data) != FRAME_SIZE:
        return None
    if data[:6] != OUTER_HEADER:
        return None

    payload = data[6 : 6 + PAYLOAD_SIZE]
    if payload[0:4] != PROTOCOL_MARKER or payload[5:7] != SET_CROSSPOINT:
        return None
    if payload[15] != 0:
        return None

    if data[6 + PAYLOAD_SIZE :] != crc16_bytes(payload):
        return None

    return CrosspointFrame(
        address=payload[4],
        destination=int.from_bytes(payload[7:9], "big"),
        source=int.from_bytes(payload[9:11], "big"),
        level=int.from_bytes(payload[11:15], "big"),
    )
