"""Router driver: lifecycle plus the command dispatch surface.

Usage::

    driver = RouterDriver(RouterConfig(host="10.0.0.20", address=254))
    await driver.start()
    await driver.dispatch(DirectCrosspoint(Level.SDI_VIDEO, destination=5, source=10))

    await driver.dispatch(StageLevel("panel-1", Level.SDI_VIDEO))
    await driver.dispatch(StageDestination("panel-1", 5))
    await driver.dispatch(StageSource("panel-1", 10))
    await driver.dispatch(CommitStaged("panel-1"))

    await driver.stop()
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Optional

from .errors import TransportError
from .models.commands import (
    CommitStaged,
    CrosspointCommand,
    DirectCrosspoint,
    RouterCommand,
    StageDestination,
    StageLevel,
    StageSource,
    StagingIncomplete,
)
from .models.config import RouterConfig, RouterLabels
from .models.status import DeviceStatus, StatusSink
from .protocol.commands import LEVEL_LABELS, Level, build_crosspoint
from .session import SessionManager, SessionState
from .staging import StagingStore
from .transport.base import Transport
from .transport.tcp_connection import TcpTransport

logger = logging.getLogger(__name__)


class RouterDriver:
    """Drives one NK-IPS gateway over T-Bus.

    Args:
        config: Connection target, matrix shape and timings.
        transport: Defaults to a direct ``TcpTransport`` to ``config.host``.
        on_status: Sink for ``(device_id, status, detail)`` updates.
    """

    def __init__(
        self,
        config: RouterConfig,
        transport: Transport | None = None,
        on_status: StatusSink | None = None,
    ) -> None:
        self.config = config
        self.labels: RouterLabels = config.parsed_labels()
        self.staging = StagingStore(
            max_entries=config.max_controllers,
            clear_on_take=config.clear_on_take,
        )
        self._on_status = on_status
        self._status = DeviceStatus.CLOSED
        self._status_detail: str | None = None

        if transport is None:
            transport = TcpTransport(config.host, config.port, config.connect_timeout)
        self.session = SessionManager(
            transport,
            name=config.display_name,
            heartbeat_interval=config.heartbeat_interval,
            reconnect_delay=config.reconnect_delay,
            on_status=self._session_status,
        )

        self._handlers: dict[type, Callable[[Any], Awaitable[bool]]] = {
            DirectCrosspoint: self._direct,
            StageLevel: self._stage_level,
            StageDestination: self._stage_destination,
            StageSource: self._stage_source,
            CommitStaged: self._commit,
        }

    @property
    def status(self) -> DeviceStatus:
        return self._status

    @property
    def status_detail(self) -> Optional[str]:
        return self._status_detail

    @property
    def state(self) -> SessionState:
        return self.session.state

    @property
    def connected(self) -> bool:
        return self.session.connected

    @staticmethod
    def levels() -> list[dict[str, Any]]:
        """Level choices as ``{"id", "label"}`` items."""
        return [{"id": int(level), "label": label} for level, label in LEVEL_LABELS.items()]

    async def start(self) -> bool:
        return await self.session.start()

    async def stop(self) -> None:
        await self.session.stop()

    async def dispatch(self, command: RouterCommand) -> bool:
        """Run one command.

        Returns:
            True if a crosspoint frame was written to the router.

        Raises:
            TypeError: If ``command`` is not a known router command.
            ValueError: If a level, destination or source cannot be encoded.
        """
        handler = self._handlers.get(type(command))
        if handler is None:
            raise TypeError(f"Unsupported router command: {command!r}")
        return await handler(command)

    # ─── HANDLERS ───────────────────────────────────────────────────────

    async def _direct(self, command: DirectCrosspoint) -> bool:
        return await self._send_crosspoint(command.to_crosspoint())

    async def _stage_level(self, command: StageLevel) -> bool:
        self.staging.set_level(command.controller_id, command.level)
        return False

    async def _stage_destination(self, command: StageDestination) -> bool:
        self.staging.set_destination(command.controller_id, command.destination)
        return False

    async def _stage_source(self, command: StageSource) -> bool:
        self.staging.set_source(command.controller_id, command.source)
        return False

    async def _commit(self, command: CommitStaged) -> bool:
        result = self.staging.try_commit(command.controller_id)
        if isinstance(result, StagingIncomplete):
            logger.warning("%s: %s", self.config.display_name, result.message)
            return False
        return await self._send_crosspoint(result)

    async def _send_crosspoint(self, crosspoint: CrosspointCommand) -> bool:
        frame = build_crosspoint(
            self.config.address,
            crosspoint.level,
            crosspoint.destination,
            crosspoint.source,
        )
        try:
            await self.session.send(frame)
        except TransportError as e:
            logger.warning("%s: crosspoint not sent: %s", self.config.display_name, e)
            return False

        logger.info(
            "%s: CrossPoint %d (%s) Updated",
            self.config.display_name,
            crosspoint.destination,
            self._destination_label(crosspoint.destination),
        )
        return True

    def _destination_label(self, destination: int) -> str:
        if 1 <= destination <= len(self.labels.outputs):
            return self.labels.destination(destination).display()
        return f"Destination {destination}"

    def _session_status(self, status: DeviceStatus, detail: str | None) -> None:
        self._status = status
        self._status_detail = detail
        if self._on_status is not None:
            self._on_status(self.config.device_id, status, detail)


def crosspoint(level: Level | int | str, destination: int, source: int) -> DirectCrosspoint:
    """Build a ``DirectCrosspoint``, resolving ``level`` from a value or label."""
    return DirectCrosspoint(Level.parse(level), destination, source)
