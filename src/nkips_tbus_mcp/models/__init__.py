"""Data models for configuration, commands and device status."""

from .config import RouterConfig, RouterLabels, PortLabel
from .commands import (
    CrosspointCommand,
    DirectCrosspoint,
    StageLevel,
    StageDestination,
    StageSource,
    CommitStaged,
    RouterCommand,
    StagingField,
    StagingIncomplete,
)
from .status import DeviceStatus, StatusSink
