"""Shared fixtures: in-memory transports, a status recorder and a virtual clock."""

from __future__ import annotations

import asyncio
import math

import pytest
import pytest_asyncio

from nkips_tbus_mcp.errors import NotConnectedError, TransportError
from nkips_tbus_mcp.transport.base import Transport


class FakeTransport(Transport):
    """Records opens and writes; tests drop the link with ``drop()``."""

    def __init__(self, fail_opens: int = 0, fail_writes: int = 0) -> None:
        super().__init__()
        self.opens = 0
        self.closes = 0
        self.writes: list[bytes] = []
        self.fail_opens = fail_opens
        self.fail_writes = fail_writes
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    async def open(self) -> None:
        self.opens += 1
        if self.fail_opens:
            self.fail_opens -= 1
            raise TransportError("connection refused")
        self._open = True

    async def write(self, data: bytes) -> None:
        if not self._open:
            raise NotConnectedError("closed")
        if self.fail_writes:
            self.fail_writes -= 1
            raise TransportError("broken pipe")
        self.writes.append(bytes(data))

    async def close(self) -> None:
        self.closes += 1
        self._open = False

    def drop(self, exc: BaseException | None = None) -> None:
        """Simulate the peer closing the connection."""
        self._open = False
        if exc is not None:
            self._notify_error(exc)
        self._notify_close()


class GatedTransport(FakeTransport):
    """FakeTransport whose open() and close() wait for the test to release them."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.open_gate = asyncio.Event()
        self.close_gate = asyncio.Event()
        self.close_gate.set()
        self.opening = 0
        self.max_opening = 0

    async def open(self) -> None:
        self.opening += 1
        self.max_opening = max(self.max_opening, self.opening)
        try:
            await self.open_gate.wait()
        finally:
            self.opening -= 1
        await super().open()

    async def close(self) -> None:
        await self.close_gate.wait()
        await super().close()


class VirtualClock:
    """Replaces the event loop clock; timers fire only when the test advances it.

    While installed, tests must not await anything that only a timer can
    complete: use ``advance()`` or ``settle()`` instead.
    """

    def __init__(self, now: float) -> None:
        self.now = now

    def time(self) -> float:
        return self.now

    async def settle(self, rounds: int = 20) -> None:
        for _ in range(rounds):
            await asyncio.sleep(0)

    async def advance(self, seconds: float, step: float = 0.5) -> None:
        end = self.now + seconds
        while self.now < end:
            self.now = min(self.now + step, end)
            await self.settle()


class StatusRecorder:
    def __init__(self) -> None:
        self.events: list[tuple] = []

    def __call__(self, *args) -> None:
        self.events.append(args)

    @property
    def statuses(self) -> list:
        return [event[-2] for event in self.events]


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def recorder() -> StatusRecorder:
    return StatusRecorder()


@pytest.fixture
def make_transport():
    return FakeTransport


@pytest.fixture
def gated_transport() -> GatedTransport:
    return GatedTransport()


@pytest_asyncio.fixture
async def clock(monkeypatch) -> VirtualClock:
    loop = asyncio.get_running_loop()
    # whole seconds keep the half-second steps exact
    virtual = VirtualClock(float(math.ceil(loop.time())))
    monkeypatch.setattr(loop, "time", virtual.time)
    return virtual
