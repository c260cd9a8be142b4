"""Router configuration and source/destination labels.

Labels come from a free-text block, one entry per line::

    # kind, number, label[, description]
    src, 1, CAM 1, Studio camera
    dst, 3, MON A

``kind`` is ``src``/``source``/``input`` or ``dst``/``destination``/``output``.
Numbers are 1-based. Blank lines and ``#`` comments are ignored.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, fields
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_PORT = 5000
DEFAULT_ADDRESS = 254
HEARTBEAT_INTERVAL = 10.0
RECONNECT_DELAY = 10.0
CONNECT_TIMEOUT = 5.0
MIN_PORTS = 16
MAX_PORTS = 144

SOURCE_KINDS = {"src", "source", "input", "in"}
DESTINATION_KINDS = {"dst", "dest", "destination", "output", "out"}


@dataclass
class PortLabel:
    """Name of one source or destination."""

    label: str
    description: str = ""

    def display(self) -> str:
        if self.description:
            return f"{self.label} - {self.description}"
        return self.label


@dataclass
class RouterLabels:
    """Source (input) and destination (output) names, indexed from 1."""

    inputs: list[PortLabel] = field(default_factory=list)
    outputs: list[PortLabel] = field(default_factory=list)

    @classmethod
    def defaults(cls, sources: int, destinations: int) -> RouterLabels:
        return cls(
            inputs=[PortLabel(f"Source {n}") for n in range(1, sources + 1)],
            outputs=[PortLabel(f"Destination {n}") for n in range(1, destinations + 1)],
        )

    @classmethod
    def parse(cls, text: str | None, sources: int, destinations: int) -> RouterLabels:
        """Parse a label block over the default names.

        Malformed lines and out-of-range numbers are logged and skipped.
        """
        labels = cls.defaults(sources, destinations)
        if not text:
            return labels

        for line_no, raw in enumerate(text.splitlines(), start=1):
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            parts = [p.strip() for p in line.split(",", 3)]
            if len(parts) < 3:
                logger.warning("Label line %d ignored: %r", line_no, raw)
                continue

            kind = parts[0].lower()
            if kind in SOURCE_KINDS:
                table = labels.inputs
            elif kind in DESTINATION_KINDS:
                table = labels.outputs
            else:
                logger.warning("Label line %d has unknown kind %r", line_no, parts[0])
                continue

            try:
                number = int(parts[1])
            except ValueError:
                logger.warning("Label line %d has bad number %r", line_no, parts[1])
                continue
            if not 1 <= number <= len(table):
                logger.warning("Label line %d: %d is out of range 1-%d", line_no, number, len(table))
                continue

            description = parts[3] if len(parts) > 3 else ""
            table[number - 1] = PortLabel(parts[2], description)

        return labels

    def source(self, number: int) -> PortLabel:
        return self.inputs[number - 1]

    def destination(self, number: int) -> PortLabel:
        return self.outputs[number - 1]

    def to_dict(self) -> dict[str, list[dict[str, Any]]]:
        return {
            "sources": [
                {"id": n, "label": p.display()} for n, p in enumerate(self.inputs, start=1)
            ],
            "destinations": [
                {"id": n, "label": p.display()} for n, p in enumerate(self.outputs, start=1)
            ],
        }


@dataclass
class RouterConfig:
    """Connection target and matrix shape for one NK-IPS gateway."""

    host: str
    address: int = DEFAULT_ADDRESS
    sources: int = MIN_PORTS
    destinations: int = MIN_PORTS
    port: int = DEFAULT_PORT
    device_id: str = ""
    label: str = ""
    labels: str = ""
    heartbeat_interval: float = HEARTBEAT_INTERVAL
    reconnect_delay: float = RECONNECT_DELAY
    connect_timeout: float = CONNECT_TIMEOUT
    clear_on_take: bool = False
    max_controllers: int = 256

    def __post_init__(self) -> None:
        if not self.host or not self.host.strip():
            raise ValueError("Host is required")
        self.host = self.host.strip()
        if not 1 <= self.address <= 255:
            raise ValueError(f"T-Bus address must be 1-255, got {self.address}")
        if not 1 <= self.port <= 65535:
            raise ValueError(f"Port must be 1-65535, got {self.port}")
        if not MIN_PORTS <= self.sources <= MAX_PORTS:
            raise ValueError(f"Sources must be {MIN_PORTS}-{MAX_PORTS}, got {self.sources}")
        if not MIN_PORTS <= self.destinations <= MAX_PORTS:
            raise ValueError(
                f"Destinations must be {MIN_PORTS}-{MAX_PORTS}, got {self.destinations}"
            )
        for name in ("heartbeat_interval", "reconnect_delay", "connect_timeout"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if self.max_controllers < 1:
            raise ValueError("max_controllers must be at least 1")
        if not self.device_id:
            self.device_id = f"{self.host}:{self.port}/{self.address}"

    @property
    def display_name(self) -> str:
        """``device_id (label)``, the prefix used in log lines."""
        return f"{self.device_id} ({self.label})" if self.label else self.device_id

    def parsed_labels(self) -> RouterLabels:
        return RouterLabels.parse(self.labels, self.sources, self.destinations)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RouterConfig:
        """Build a config from a mapping, ignoring unknown keys.

        Numeric fields may arrive as strings from a form or environment.
        """
        known = {f.name: f for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            if key not in known or value is None:
                continue
            default = known[key].default
            if isinstance(default, bool):
                if isinstance(value, str):
                    value = value.strip().lower() in ("1", "true", "yes", "on")
                else:
                    value = bool(value)
            elif isinstance(default, int):
                value = int(value)
            elif isinstance(default, float):
                value = float(value)
            kwargs[key] = value
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
