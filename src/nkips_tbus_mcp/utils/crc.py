"""CRC-16 checksum used by T-Bus crosspoint frames.

Reflected polynomial 0xA001, seed 0xFFFF (the MODBUS parameter set). The
router expects the low byte of the accumulator first, so the result is
byte-swapped before it is returned.
"""

from __future__ import annotations

POLYNOMIAL = 0xA001
SEED = 0xFFFF


def _make_table() -> list[int]:
    table = []
    for byte in range(256):
        crc = byte
        for _ in range(8):
            if crc & 1:
                crc = (crc >> 1) ^ POLYNOMIAL
            else:
                crc >>= 1
        table.append(crc)
    return table


_TABLE = _make_table()


def _swap(value: int) -> int:
    return ((value & 0xFF) << 8) | (value >> 8)


def crc16(data: bytes) -> int:
    """Compute the byte-swapped CRC-16 of ``data``.

    Args:
        data: Bytes to checksum. May be empty.

    Returns:
        A 16-bit unsigned integer. ``crc16(b"")`` is the swapped seed, 0xFFFF.
    """
    crc = SEED
    for byte in data:
        crc = (crc >> 8) ^ _TABLE[(crc ^ byte) & 0xFF]
    return _swap(crc)


def crc16_bytes(data: bytes) -> bytes:
    """Checksum of ``data`` as the fixed-width 2-byte field sent on the wire."""
    return crc16(data).to_bytes(2, "big")
