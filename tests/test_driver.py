"""Tests for RouterDriver dispatch and lifecycle."""

import logging

import pytest

from nkips_tbus_mcp.driver import RouterDriver, crosspoint
from nkips_tbus_mcp.models.commands import (
    CommitStaged,
    CrosspointCommand,
    DirectCrosspoint,
    StageDestination,
    StageLevel,
    StageSource,
)
from nkips_tbus_mcp.models.config import RouterConfig
from nkips_tbus_mcp.models.status import DeviceStatus
from nkips_tbus_mcp.protocol.commands import Level
from nkips_tbus_mcp.protocol.framing import HANDSHAKE_FRAME, build_frame, parse_frame
from nkips_tbus_mcp.session import SessionState
from nkips_tbus_mcp.transport.tcp_connection import TcpTransport


def _config(**overrides):
    values = dict(
        host="nk-ips.test",
        address=254,
        sources=16,
        destinations=16,
        device_id="nk1",
        heartbeat_interval=60.0,
        reconnect_delay=60.0,
    )
    values.update(overrides)
    return RouterConfig(**values)


def _frames(transport):
    return [w for w in transport.writes if w != HANDSHAKE_FRAME]


@pytest.mark.asyncio
async def test_default_transport_is_tcp():
    d = RouterDriver(_config(port=5001))
    assert isinstance(d.session.transport, TcpTransport)
    assert d.session.transport.endpoint == "nk-ips.test:5001"
    assert d.status is DeviceStatus.CLOSED


@pytest.mark.asyncio
async def test_start_reports_status_with_device_id(transport, recorder):
    d = RouterDriver(_config(), transport=transport, on_status=recorder)

    assert await d.start()

    assert recorder.events == [
        ("nk1", DeviceStatus.CONNECTING, None),
        ("nk1", DeviceStatus.CONNECTED, None),
    ]
    assert d.status is DeviceStatus.CONNECTED
    assert d.state is SessionState.CONNECTED

    await d.stop()
    assert recorder.events[-1] == ("nk1", DeviceStatus.CLOSED, None)
    assert d.status is DeviceStatus.CLOSED


@pytest.mark.asyncio
async def test_direct_crosspoint_sends_canonical_frame(transport, recorder):
    d = RouterDriver(_config(), transport=transport, on_status=recorder)
    await d.start()

    sent = await d.dispatch(DirectCrosspoint(Level.SDI_VIDEO, 5, 10))

    assert sent is True
    assert _frames(transport) == [build_frame(254, 2, 5, 10)]
    await d.stop()


@pytest.mark.asyncio
async def test_staging_sends_nothing_until_commit(transport, recorder):
    d = RouterDriver(_config(), transport=transport, on_status=recorder)
    await d.start()

    assert await d.dispatch(StageSource("panel", 10)) is False
    assert await d.dispatch(StageLevel("panel", Level.SDI_VIDEO)) is False
    assert await d.dispatch(StageDestination("panel", 5)) is False
    assert _frames(transport) == []

    assert await d.dispatch(CommitStaged("panel")) is True
    assert _frames(transport) == [build_frame(254, 2, 5, 10)]
    await d.stop()


@pytest.mark.asyncio
async def test_commit_repeats_staged_selection(transport, recorder):
    d = RouterDriver(_config(), transport=transport, on_status=recorder)
    await d.start()
    await d.dispatch(StageLevel("p", Level.ANALOG_VIDEO))
    await d.dispatch(StageDestination("p", 2))
    await d.dispatch(StageSource("p", 3))

    await d.dispatch(CommitStaged("p"))
    await d.dispatch(StageSource("p", 4))
    await d.dispatch(CommitStaged("p"))

    parsed = [parse_frame(f) for f in _frames(transport)]
    assert [(p.level, p.destination, p.source) for p in parsed] == [(16, 1, 2), (16, 1, 3)]
    await d.stop()


@pytest.mark.asyncio
@pytest.mark.parametrize("staged, message", [
    ((), "No Level Selected"),
    ((StageLevel("p", Level.SDI_VIDEO),), "No Destination Selected"),
    ((StageLevel("p", Level.SDI_VIDEO), StageDestination("p", 1)), "No Source Selected"),
    ((StageSource("p", 1), StageDestination("p", 1)), "No Level Selected"),
])
async def test_incomplete_commit_warns(transport, recorder, caplog, staged, message):
    d = RouterDriver(_config(), transport=transport, on_status=recorder)
    await d.start()
    for command in staged:
        await d.dispatch(command)

    with caplog.at_level(logging.WARNING):
        sent = await d.dispatch(CommitStaged("p"))

    assert sent is False
    assert _frames(transport) == []
    assert message in caplog.text
    await d.stop()


@pytest.mark.asyncio
async def test_clear_on_take(transport, recorder):
    d = RouterDriver(_config(clear_on_take=True), transport=transport, on_status=recorder)
    await d.start()
    for command in (StageLevel("p", 1), StageDestination("p", 1), StageSource("p", 1)):
        await d.dispatch(command)

    assert await d.dispatch(CommitStaged("p")) is True
    assert await d.dispatch(CommitStaged("p")) is False
    await d.stop()


@pytest.mark.asyncio
async def test_dispatch_while_disconnected_is_absorbed(transport, recorder, caplog):
    d = RouterDriver(_config(), transport=transport, on_status=recorder)

    sent = await d.dispatch(DirectCrosspoint(Level.SDI_VIDEO, 1, 1))

    assert sent is False
    assert transport.writes == []
    assert "not sent" in caplog.text


@pytest.mark.asyncio
async def test_write_failure_is_absorbed(make_transport, recorder):
    transport = make_transport()
    d = RouterDriver(_config(), transport=transport, on_status=recorder)
    await d.start()
    transport.fail_writes = 1

    assert await d.dispatch(DirectCrosspoint(Level.SDI_VIDEO, 1, 1)) is False
    assert d.status is DeviceStatus.CLOSED
    assert ("nk1", DeviceStatus.ERROR, "broken pipe") in recorder.events
    await d.stop()


@pytest.mark.asyncio
async def test_out_of_range_values_raise(transport, recorder):
    d = RouterDriver(_config(), transport=transport, on_status=recorder)
    await d.start()

    with pytest.raises(ValueError):
        await d.dispatch(DirectCrosspoint(Level.SDI_VIDEO, 0, 1))
    with pytest.raises(ValueError):
        await d.dispatch(StageLevel("p", 3))
    assert _frames(transport) == []
    await d.stop()


@pytest.mark.asyncio
async def test_unknown_command_type(transport, recorder):
    d = RouterDriver(_config(), transport=transport, on_status=recorder)
    with pytest.raises(TypeError):
        await d.dispatch(CrosspointCommand(Level.SDI_VIDEO, 1, 1))
    with pytest.raises(TypeError):
        await d.dispatch("XPT")


@pytest.mark.asyncio
async def test_crosspoint_logs_destination_label(transport, recorder, caplog):
    config = _config(labels="dst,5,PGM,Program")
    d = RouterDriver(config, transport=transport, on_status=recorder)
    await d.start()

    with caplog.at_level(logging.INFO):
        await d.dispatch(crosspoint("SDI Video", 5, 10))

    assert "CrossPoint 5 (PGM - Program) Updated" in caplog.text
    await d.stop()


def test_crosspoint_helper():
    assert crosspoint("2", 5, 10) == DirectCrosspoint(Level.SDI_VIDEO, 5, 10)


def test_levels_catalog():
    levels = RouterDriver.levels()
    assert len(levels) == 8
    assert levels[1] == {"id": 2, "label": "SDI Video"}
