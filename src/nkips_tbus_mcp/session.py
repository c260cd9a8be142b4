"""Long-lived router session: handshake, heartbeat and reconnect supervision.

State machine::

    DISCONNECTED --start()--> CONNECTING --open ok--> CONNECTED
         ^                        |                      |
         |                    open failed           error / close
         |                        v                      v
         +----- reconnect_delay ---------------------- CLOSING
                (unless stopped)

Everything runs on one asyncio loop. Frame writes share one lock, so the
handshake, heartbeats and commands reach the socket in the order they were
issued, and the handshake always goes first.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Callable, Optional

from .errors import NotConnectedError, TransportError
from .models.config import HEARTBEAT_INTERVAL, RECONNECT_DELAY
from .models.status import DeviceStatus
from .protocol.commands import build_handshake, build_heartbeat
from .transport.base import Transport

logger = logging.getLogger(__name__)


class SessionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    CLOSING = "closing"


SessionStatusHandler = Callable[[DeviceStatus, Optional[str]], None]


class SessionManager:
    """Owns the transport and keeps it connected until ``stop()``.

    Args:
        transport: The link to the router. The session installs its own
            close and error handlers on it.
        name: Prefix for log lines.
        heartbeat_interval: Seconds between heartbeat frames while connected.
        reconnect_delay: Seconds to wait after a failure before reconnecting.
        on_status: Called with each status change and an optional detail.
        handshake: Greeting written after each connect.
        heartbeat: Keep-alive frame written while connected.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        name: str = "router",
        heartbeat_interval: float = HEARTBEAT_INTERVAL,
        reconnect_delay: float = RECONNECT_DELAY,
        on_status: SessionStatusHandler | None = None,
        handshake: bytes | None = None,
        heartbeat: bytes | None = None,
    ) -> None:
        self._transport = transport
        self._name = name
        self._heartbeat_interval = heartbeat_interval
        self._reconnect_delay = reconnect_delay
        self._on_status = on_status
        self._handshake = handshake if handshake is not None else build_handshake()
        self._heartbeat = heartbeat if heartbeat is not None else build_heartbeat()

        self._state = SessionState.DISCONNECTED
        self._stopped = False
        self._write_lock = asyncio.Lock()
        self._connected_event = asyncio.Event()

        self._heartbeat_task: asyncio.Task | None = None
        self._reconnect_timer: asyncio.TimerHandle | None = None
        self._connect_task: asyncio.Task | None = None

        transport.set_handlers(
            on_close=self._on_transport_close,
            on_error=self._on_transport_error,
        )

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._state is SessionState.CONNECTED

    @property
    def stopped(self) -> bool:
        return self._stopped

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_timer is not None or self._connect_task is not None

    @property
    def transport(self) -> Transport:
        return self._transport

    # ─── LIFECYCLE ──────────────────────────────────────────────────────

    async def start(self) -> bool:
        """Connect, send the handshake and start the heartbeat.

        A connect failure is reported and retried after ``reconnect_delay``;
        it is never raised. Calling ``start()`` after ``stop()`` re-arms the
        session. The connect runs as the session's connect task, so a
        ``stop()`` issued meanwhile cancels it.

        Returns:
            True if the session is connected when the call returns.
        """
        if self._state is not SessionState.DISCONNECTED or self.reconnect_pending:
            logger.debug("%s: start() ignored in state %s", self._name, self._state.value)
            return self.connected

        self._stopped = False
        task = asyncio.create_task(self._run_connect())
        self._connect_task = task
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            # cancelled by stop(), not by our caller
            if task.cancelled():
                return False
            raise

    async def stop(self) -> None:
        """Disconnect for good. Idempotent.

        Pending reconnect and heartbeat timers are cancelled before the
        transport is closed.
        """
        if self._stopped:
            return
        self._stopped = True

        if self._reconnect_timer is not None:
            self._reconnect_timer.cancel()
            self._reconnect_timer = None
        task = self._connect_task
        self._connect_task = None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            await asyncio.wait([task])
        self._cancel_heartbeat()

        self._state = SessionState.CLOSING
        await self._transport.close()
        self._state = SessionState.DISCONNECTED
        self._connected_event.clear()

        logger.info("%s: destroying instance", self._name)
        self._report(DeviceStatus.CLOSED)

    async def wait_connected(self, timeout: float | None = None) -> bool:
        """Wait until the session is connected; False on timeout."""
        try:
            await asyncio.wait_for(self._connected_event.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True

    # ─── WRITES ─────────────────────────────────────────────────────────

    async def send(self, data: bytes) -> None:
        """Write one frame to the router.

        Raises:
            NotConnectedError: If the session is not connected.
            TransportError: If the write fails. The session then closes the
                link and schedules a reconnect.
        """
        async with self._write_lock:
            if self._state is not SessionState.CONNECTED:
                raise NotConnectedError(f"{self._name}: not connected")
            try:
                await self._transport.write(data)
                return
            except TransportError as e:
                failure = e

        await self._fail(failure)
        raise failure

    async def _heartbeat_loop(self) -> None:
        while True:
            await asyncio.sleep(self._heartbeat_interval)
            try:
                await self.send(self._heartbeat)
            except TransportError as e:
                logger.debug("%s: heartbeat stopped: %s", self._name, e)
                return
            logger.debug("%s: heartbeat sent", self._name)

    # ─── STATE HANDLING ─────────────────────────────────────────────────

    async def _connect(self) -> bool:
        self._state = SessionState.CONNECTING
        self._report(DeviceStatus.CONNECTING)
        logger.debug("%s: connecting to %s", self._name, self._transport.endpoint)

        try:
            await self._transport.open()
        except TransportError as e:
            logger.error("%s: connection failed: %s", self._name, e)
            self._state = SessionState.DISCONNECTED
            self._report(DeviceStatus.ERROR, str(e))
            self._schedule_reconnect()
            return False

        if self._stopped or self._state is not SessionState.CONNECTING:
            await self._transport.close()
            return False

        async with self._write_lock:
            self._state = SessionState.CONNECTED
            try:
                await self._transport.write(self._handshake)
                failure = None
            except TransportError as e:
                failure = e

        if failure is not None:
            await self._fail(failure)
            return False

        self._heartbeat_task = asyncio.create_task(self._heartbeat_loop())
        self._connected_event.set()
        logger.info("%s: router connected", self._name)
        self._report(DeviceStatus.CONNECTED)
        return True

    async def _fail(self, exc: BaseException) -> None:
        if self._state is not SessionState.CONNECTED:
            return
        logger.error("%s: transport error: %s", self._name, exc)
        self._report(DeviceStatus.ERROR, str(exc))
        self._state = SessionState.CLOSING
        await self._transport.close()
        self._closed()

    def _on_transport_error(self, exc: BaseException) -> None:
        if self._state is not SessionState.CONNECTED:
            return
        logger.error("%s: transport error: %s", self._name, exc)
        self._report(DeviceStatus.ERROR, str(exc))
        self._state = SessionState.CLOSING

    def _on_transport_close(self) -> None:
        if self._state not in (SessionState.CONNECTED, SessionState.CLOSING):
            return
        self._closed()

    def _closed(self) -> None:
        # stop() tears down and reports CLOSED itself
        if self._stopped:
            return
        self._cancel_heartbeat()
        self._connected_event.clear()
        self._state = SessionState.DISCONNECTED
        self._report(DeviceStatus.CLOSED)
        logger.info(
            "%s: connection closed, reconnecting in %ss", self._name, self._reconnect_delay
        )
        self._schedule_reconnect()

    def _cancel_heartbeat(self) -> None:
        task = self._heartbeat_task
        self._heartbeat_task = None
        if task is not None and task is not asyncio.current_task():
            task.cancel()

    def _schedule_reconnect(self) -> None:
        if self._stopped or self._reconnect_timer is not None:
            return
        loop = asyncio.get_running_loop()
        self._reconnect_timer = loop.call_later(self._reconnect_delay, self._begin_reconnect)

    def _begin_reconnect(self) -> None:
        self._reconnect_timer = None
        if self._stopped or self._state is not SessionState.DISCONNECTED:
            return
        if self._connect_task is not None:
            return
        self._connect_task = asyncio.create_task(self._run_connect())

    async def _run_connect(self) -> bool:
        try:
            return await self._connect()
        finally:
            if self._connect_task is asyncio.current_task():
                self._connect_task = None

    def _report(self, status: DeviceStatus, detail: str | None = None) -> None:
        if self._on_status is None:
            return
        try:
            self._on_status(status, detail)
        except Exception:
            logger.exception("%s: status handler failed", self._name)
