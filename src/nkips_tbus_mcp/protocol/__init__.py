"""Protocol layer: crosspoint framing, CRC, levels and command builders."""

from .framing import build_frame, parse_frame, HANDSHAKE_FRAME, HEARTBEAT_FRAME
from .commands import Level, build_crosspoint
