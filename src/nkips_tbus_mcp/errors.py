"""Exception types raised by the session and transport layers."""

from __future__ import annotations


class RouterError(Exception):
    """Base class for router driver errors."""


class TransportError(RouterError, ConnectionError):
    """The TCP link failed to open, write, or stay up."""


class NotConnectedError(TransportError):
    """A frame was sent while the session was not connected."""
