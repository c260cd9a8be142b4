"""Transport that hands the byte stream to a host-supplied link.

For hosts that already own the connection to the gateway (a shared
connection pool, a serial-to-IP bridge, a test double). The factory is called
with the transport on every ``open()`` and returns the link to write to. The
link reports its own loss by calling ``link_failed(exc)`` or
``link_closed()`` on the transport.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Protocol

from ..errors import NotConnectedError, TransportError
from .base import Transport

logger = logging.getLogger(__name__)


class Link(Protocol):
    async def write(self, data: bytes) -> None:
        ...

    async def close(self) -> None:
        ...


LinkFactory = Callable[["DelegatedTransport"], Awaitable[Link]]


class DelegatedTransport(Transport):
    def __init__(self, link_factory: LinkFactory, name: str = "delegated") -> None:
        super().__init__()
        self._link_factory = link_factory
        self._name = name
        self._link: Link | None = None

    @property
    def endpoint(self) -> str:
        return self._name

    @property
    def is_open(self) -> bool:
        return self._link is not None

    async def open(self) -> None:
        if self._link is not None:
            return
        try:
            self._link = await self._link_factory(self)
        except TransportError:
            raise
        except Exception as e:
            raise TransportError(f"Could not open link {self._name}: {e}") from e

    async def write(self, data: bytes) -> None:
        if self._link is None:
            raise NotConnectedError(f"Link {self._name} is not open")
        try:
            await self._link.write(data)
        except TransportError:
            raise
        except Exception as e:
            raise TransportError(f"Write to link {self._name} failed: {e}") from e

    async def close(self) -> None:
        link = self._link
        self._link = None
        if link is None:
            return
        try:
            await link.close()
        except Exception as e:
            logger.warning("Error closing link %s: %s", self._name, e)

    def link_closed(self) -> None:
        """Called by the link when it drops."""
        if self._link is None:
            return
        self._link = None
        self._notify_close()

    def link_failed(self, exc: BaseException) -> None:
        """Called by the link when it fails; implies ``link_closed()``."""
        if self._link is None:
            return
        self._notify_error(exc)
        self.link_closed()
