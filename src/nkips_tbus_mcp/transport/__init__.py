"""Transports: direct TCP socket or a host-supplied link."""

from .base import Transport
from .delegated import DelegatedTransport
from .tcp_connection import TcpTransport
