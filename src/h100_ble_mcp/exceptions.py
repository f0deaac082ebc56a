"""Exceptions raised by the H-100 client."""

from __future__ import annotations


class H100Error(Exception):
    """Base class for all H-100 errors."""


class TransportUnavailableError(H100Error, ConnectionError):
    """No connected transport to talk to the device."""


class SendError(H100Error, IOError):
    """The transport rejected an outbound write."""


class DecodeError(H100Error, ValueError):
    """A protocol frame is inconsistent with its declared length."""
