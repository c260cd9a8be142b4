"""Device status reported to the surrounding registry."""

from __future__ import annotations

from enum import Enum
from typing import Callable, Optional


class DeviceStatus(Enum):
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"
    CLOSED = "closed"


# (device_id, status, detail) -> None
StatusSink = Callable[[str, DeviceStatus, Optional[str]], None]
