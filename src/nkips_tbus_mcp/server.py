"""MCP server entry point for Ross Video Carbonite NK-IPS routers.

Exposes crosspoint tools, resources and prompts via the Model Context
Protocol using the official Python MCP SDK with stdio transport.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any

from mcp.server.fastmcp import FastMCP

from .driver import RouterDriver
from .models.commands import (
    CommitStaged,
    DirectCrosspoint,
    StageDestination,
    StageLevel,
    StageSource,
)
from .models.config import (
    DEFAULT_ADDRESS,
    DEFAULT_PORT,
    MAX_PORTS,
    MIN_PORTS,
    RouterConfig,
)
from .models.status import DeviceStatus
from .protocol.commands import Level

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "nkips-tbus",
    instructions="MCP server for Ross Video Carbonite NK-IPS routers (T-Bus over TCP)",
)

# Global driver state
_driver: RouterDriver | None = None
_status_records: dict[str, dict[str, Any]] = {}

DEFAULT_CONTROLLER = "mcp"


def _record_status(device_id: str, status: DeviceStatus, detail: str | None) -> None:
    """Status sink: keep the latest status per device in memory."""
    _status_records[device_id] = {"status": status.value, "detail": detail}


def _get_driver() -> RouterDriver:
    """Get the active driver, raising if there is none."""
    if _driver is None:
        raise RuntimeError(
            "No router configured. Use the 'connect' tool first."
        )
    return _driver


def _env(name: str, default: Any = None) -> Any:
    return os.environ.get(f"NKIPS_{name}", default)


def _check_index(name: str, value: int, limit: int) -> str | None:
    if not 1 <= value <= limit:
        return f"{name} must be 1-{limit}, got {value}"
    return None


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
async def connect(
    host: str | None = None,
    address: int | None = None,
    sources: int | None = None,
    destinations: int | None = None,
    port: int | None = None,
    labels: str | None = None,
    label: str = "",
) -> dict[str, Any]:
    """Connect to an NK-IPS gateway and keep the session alive.

    Arguments left out fall back to the NKIPS_HOST, NKIPS_ADDRESS,
    NKIPS_SOURCES, NKIPS_DESTINATIONS, NKIPS_PORT and NKIPS_LABELS
    environment variables.

    Args:
        host: Gateway hostname or IP address.
        address: T-Bus address of the NK-IPS, not the router behind it (1-255).
        sources: Number of router sources (16-144).
        destinations: Number of router destinations (16-144).
        port: TCP port (default 5000).
        labels: Optional label block, one "src|dst, number, label[, description]" per line.
        label: Display name used in logs.
    """
    global _driver
    if _driver is not None and _driver.connected:
        return {
            "connected": True,
            "message": "Already connected",
            "device_id": _driver.config.device_id,
        }

    try:
        config = RouterConfig.from_dict({
            "host": host or _env("HOST"),
            "address": address if address is not None else _env("ADDRESS", DEFAULT_ADDRESS),
            "sources": sources if sources is not None else _env("SOURCES", MIN_PORTS),
            "destinations": (
                destinations if destinations is not None else _env("DESTINATIONS", MIN_PORTS)
            ),
            "port": port if port is not None else _env("PORT", DEFAULT_PORT),
            "labels": labels if labels is not None else _env("LABELS", ""),
            "label": label,
        })
    except (TypeError, ValueError) as e:
        return {"error": f"Invalid configuration: {e}"}

    if _driver is not None:
        await _driver.stop()

    _driver = RouterDriver(config, on_status=_record_status)
    connected = await _driver.start()

    result: dict[str, Any] = {
        "connected": connected,
        "device_id": config.device_id,
        "status": _driver.status.value,
    }
    if not connected:
        result["message"] = (
            f"Not connected yet ({_driver.status_detail or 'no response'}); "
            f"retrying every {config.reconnect_delay:g}s"
        )
    return result


@mcp.tool()
async def disconnect() -> dict[str, bool]:
    """Close the session to the router and stop reconnecting."""
    global _driver
    if _driver is None:
        return {"disconnected": True}
    await _driver.stop()
    _driver = None
    return {"disconnected": True}


@mcp.tool()
def get_status() -> dict[str, Any]:
    """Report the session state, the last status and its detail."""
    if _driver is None:
        return {"configured": False, "connected": False}
    return {
        "configured": True,
        "connected": _driver.connected,
        "device_id": _driver.config.device_id,
        "state": _driver.state.value,
        "status": _driver.status.value,
        "detail": _driver.status_detail,
    }


# ─── CATALOG TOOLS ───────────────────────────────────────────────────

@mcp.tool()
def list_levels() -> dict[str, Any]:
    """List the eight signal levels with their ids."""
    return {"levels": RouterDriver.levels()}


@mcp.tool()
def list_labels() -> dict[str, Any]:
    """List source and destination labels of the configured router."""
    driver = _get_driver()
    return driver.labels.to_dict()


# ─── CROSSPOINT TOOLS ────────────────────────────────────────────────

@mcp.tool()
async def crosspoint(level: str, destination: int, source: int) -> dict[str, Any]:
    """Route a source to a destination on one level immediately.

    Args:
        level: Level label (e.g. "SDI Video") or id (1, 2, 4 ... 128).
        destination: Destination number, 1-based.
        source: Source number, 1-based.
    """
    driver = _get_driver()
    try:
        lvl = Level.parse(level)
    except ValueError as e:
        return {"error": str(e)}
    error = _check_index("Destination", destination, driver.config.destinations) or _check_index(
        "Source", source, driver.config.sources
    )
    if error:
        return {"error": error}

    sent = await driver.dispatch(DirectCrosspoint(lvl, destination, source))
    return {
        "sent": sent,
        "level": lvl.label,
        "destination": destination,
        "source": source,
    }


@mcp.tool()
async def select_level(level: str, controller: str = DEFAULT_CONTROLLER) -> dict[str, Any]:
    """Stage the level of a multi-stage crosspoint.

    Args:
        level: Level label or id.
        controller: Id of the control surface building the selection.
    """
    driver = _get_driver()
    try:
        lvl = Level.parse(level)
    except ValueError as e:
        return {"error": str(e)}
    await driver.dispatch(StageLevel(controller, lvl))
    return {"controller": controller, "level": lvl.label}


@mcp.tool()
async def select_destination(
    destination: int, controller: str = DEFAULT_CONTROLLER
) -> dict[str, Any]:
    """Stage the destination of a multi-stage crosspoint.

    Args:
        destination: Destination number, 1-based.
        controller: Id of the control surface building the selection.
    """
    driver = _get_driver()
    error = _check_index("Destination", destination, driver.config.destinations)
    if error:
        return {"error": error}
    await driver.dispatch(StageDestination(controller, destination))
    return {"controller": controller, "destination": destination}


@mcp.tool()
async def select_source(source: int, controller: str = DEFAULT_CONTROLLER) -> dict[str, Any]:
    """Stage the source of a multi-stage crosspoint.

    Args:
        source: Source number, 1-based.
        controller: Id of the control surface building the selection.
    """
    driver = _get_driver()
    error = _check_index("Source", source, driver.config.sources)
    if error:
        return {"error": error}
    await driver.dispatch(StageSource(controller, source))
    return {"controller": controller, "source": source}


@mcp.tool()
async def take(controller: str = DEFAULT_CONTROLLER) -> dict[str, Any]:
    """Send the crosspoint staged by ``controller``.

    Args:
        controller: Id of the control surface whose selection to take.
    """
    driver = _get_driver()
    entry = driver.staging.get(controller)
    sent = await driver.dispatch(CommitStaged(controller))
    result: dict[str, Any] = {"sent": sent, "controller": controller}
    if entry is not None:
        result["staged"] = {
            "level": entry.level.label if entry.level is not None else None,
            "destination": entry.destination,
            "source": entry.source,
        }
    return result


# ─── MCP RESOURCES ───────────────────────────────────────────────────

@mcp.resource("nkips://device/status")
def resource_device_status() -> str:
    """Connection state and the last status reported per device."""
    connected = _driver is not None and _driver.connected
    return json.dumps({"connected": connected, "devices": _status_records})


@mcp.resource("nkips://catalog/levels")
def resource_levels() -> str:
    """The eight router levels with ids."""
    levels = RouterDriver.levels()
    return json.dumps({"levels": levels, "count": len(levels)})


# ─── MCP PROMPTS ─────────────────────────────────────────────────────

@mcp.prompt()
def route_signal(request: str) -> str:
    """Guide the AI to turn a routing request into crosspoint calls.

    Args:
        request: What should be routed, e.g. "camera 3 to the program monitor".
    """
    return f"""Route the following on the NK-IPS router: {request}

Steps:
- Use list_labels to find the source and destination numbers by name
- Use list_levels to pick the level; video requests usually mean SDI Video
- Use crosspoint for a single take, one call per level
- Router sizes are {MIN_PORTS}-{MAX_PORTS} sources and destinations; numbers are 1-based

Report which crosspoints were sent."""


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=logging.INFO)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
