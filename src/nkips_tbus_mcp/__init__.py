"""T-Bus over TCP driver and MCP server for Ross Video Carbonite NK-IPS routers."""

from .driver import RouterDriver, crosspoint
from .errors import NotConnectedError, RouterError, TransportError
from .models import (
    CommitStaged,
    CrosspointCommand,
    DeviceStatus,
    DirectCrosspoint,
    RouterConfig,
    StageDestination,
    StageLevel,
    StageSource,
    StagingField,
    StagingIncomplete,
)
from .protocol.commands import Level
from .session import SessionManager, SessionState
from .staging import StagingStore

__version__ = "0.1.0"
