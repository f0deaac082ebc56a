"""Transports carrying frames to and from the device."""

from .base import Transport
