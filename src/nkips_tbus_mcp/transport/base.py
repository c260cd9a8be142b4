"""Transport interface shared by the direct TCP and delegated variants."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Optional

CloseHandler = Callable[[], None]
ErrorHandler = Callable[[BaseException], None]


class Transport(ABC):
    """A byte pipe to the router.

    ``open``/``write``/``close`` are coroutines. When the link drops on its
    own the transport calls ``on_error`` (if there was an error) and then
    ``on_close``; a ``close()`` requested by the owner triggers neither.
    """

    def __init__(self) -> None:
        self._on_close: Optional[CloseHandler] = None
        self._on_error: Optional[ErrorHandler] = None

    def set_handlers(
        self,
        on_close: Optional[CloseHandler] = None,
        on_error: Optional[ErrorHandler] = None,
    ) -> None:
        self._on_close = on_close
        self._on_error = on_error

    def _notify_error(self, exc: BaseException) -> None:
        if self._on_error is not None:
            self._on_error(exc)

    def _notify_close(self) -> None:
        if self._on_close is not None:
            self._on_close()

    @property
    @abstractmethod
    def is_open(self) -> bool:
        ...

    @property
    def endpoint(self) -> str:
        return type(self).__name__

    @abstractmethod
    async def open(self) -> None:
        """Connect. Raises ``TransportError`` on failure."""

    @abstractmethod
    async def write(self, data: bytes) -> None:
        """Write ``data``. Raises ``TransportError`` on failure."""

    @abstractmethod
    async def close(self) -> None:
        """Release the link. Safe to call when already closed."""
