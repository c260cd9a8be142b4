"""Direct TCP connection to an NK-IPS gateway.

The router never has to answer for a crosspoint to take effect, so inbound
bytes are read only to notice when the peer goes away and are otherwise
discarded.
"""

from __future__ import annotations

import asyncio
import logging
import socket

from ..errors import NotConnectedError, TransportError
from ..models.config import CONNECT_TIMEOUT, DEFAULT_PORT
from .base import Transport

logger = logging.getLogger(__name__)

READ_CHUNK = 1024


class TcpTransport(Transport):
    """Manages the TCP socket to the router.

    Usage::

        transport = TcpTransport("10.0.0.20")
        transport.set_handlers(on_close=..., on_error=...)
        await transport.open()
        await transport.write(frame_bytes)
        await transport.close()
    """

    def __init__(
        self,
        host: str,
        port: int = DEFAULT_PORT,
        connect_timeout: float = CONNECT_TIMEOUT,
    ) -> None:
        super().__init__()
        self._host = host
        self._port = port
        self._connect_timeout = connect_timeout
        self._writer: asyncio.StreamWriter | None = None
        self._watcher: asyncio.Task | None = None
        self._opening = False
        # bumped by close() so an open that finishes afterwards is discarded
        self._generation = 0

    @property
    def endpoint(self) -> str:
        return f"{self._host}:{self._port}"

    @property
    def is_open(self) -> bool:
        return self._writer is not None and not self._writer.is_closing()

    async def open(self) -> None:
        """Open the socket with keep-alive on and no idle timeout.

        Raises:
            TransportError: If the connection cannot be established, another
                open is already in progress, or ``close()`` was called while
                connecting.
        """
        if self.is_open:
            return
        if self._opening:
            raise TransportError(f"Connection to {self.endpoint} is already being opened")

        self._opening = True
        generation = self._generation
        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(self._host, self._port),
                timeout=self._connect_timeout,
            )
        except asyncio.TimeoutError as e:
            raise TransportError(
                f"Timed out connecting to {self.endpoint} after {self._connect_timeout}s"
            ) from e
        except OSError as e:
            raise TransportError(f"Could not connect to {self.endpoint}: {e}") from e
        finally:
            self._opening = False

        if generation != self._generation:
            writer.close()
            raise TransportError(f"Connection to {self.endpoint} closed while opening")

        sock = writer.get_extra_info("socket")
        if sock is not None:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)

        self._writer = writer
        self._watcher = asyncio.create_task(self._watch(reader))
        logger.debug("TCP connection open to %s", self.endpoint)

    async def _watch(self, reader: asyncio.StreamReader) -> None:
        error: OSError | None = None
        try:
            while True:
                data = await reader.read(READ_CHUNK)
                if not data:
                    break
                logger.debug("Discarding %d bytes from %s", len(data), self.endpoint)
        except OSError as e:
            error = e

        self._release()
        if error is not None:
            self._notify_error(error)
        self._notify_close()

    def _release(self) -> None:
        writer = self._writer
        self._writer = None
        self._watcher = None
        if writer is not None:
            writer.close()

    async def write(self, data: bytes) -> None:
        """Write ``data`` and wait for the socket buffer to drain.

        Raises:
            NotConnectedError: If the socket is not open.
            TransportError: If the write fails.
        """
        if not self.is_open:
            raise NotConnectedError(f"Not connected to {self.endpoint}")

        try:
            self._writer.write(data)
            await self._writer.drain()
        except OSError as e:
            raise TransportError(f"Write to {self.endpoint} failed: {e}") from e

    async def close(self) -> None:
        """Close the socket without notifying the close handler."""
        self._generation += 1
        watcher = self._watcher
        writer = self._writer
        self._watcher = None
        self._writer = None

        if watcher is not None and watcher is not asyncio.current_task():
            watcher.cancel()

        if writer is None:
            return
        try:
            writer.close()
            await writer.wait_closed()
        except OSError as e:
            logger.warning("Error closing connection to %s: %s", self.endpoint, e)
        finally:
            logger.debug("TCP connection to %s closed", self.endpoint)
