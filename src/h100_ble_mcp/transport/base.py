"""Transport interface consumed by the protocol engine."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional

logger = logging.getLogger(__name__)

FrameHandler = Callable[[bytes], None]
DisconnectHandler = Callable[[], None]


class Transport(ABC):
    """A byte pipe to one device.

    Implementations deliver every inbound notification, in order, to the
    frame handler and call the disconnect handler once when the link drops.
    """

    def __init__(self) -> None:
        self._frame_handler: Optional[FrameHandler] = None
        self._disconnect_handler: Optional[DisconnectHandler] = None

    @property
    @abstractmethod
    def connected(self) -> bool:
        """Whether the transport can currently send."""

    @abstractmethod
    async def send(self, data: bytes, *, response: bool = False) -> bool:
        """Write ``data`` to the device.

        Args:
            data: Bytes to write.
            response: Request a write-with-response where the link supports it.

        Returns:
            True if the write was accepted, False otherwise.
        """

    def set_frame_handler(self, handler: Optional[FrameHandler]) -> None:
        self._frame_handler = handler

    def set_disconnect_handler(self, handler: Optional[DisconnectHandler]) -> None:
        self._disconnect_handler = handler

    def _dispatch_frame(self, data: bytes) -> None:
        if self._frame_handler is None:
            logger.debug("Dropping %d-byte frame: no handler", len(data))
            return
        self._frame_handler(bytes(data))

    def _dispatch_disconnect(self) -> None:
        if self._disconnect_handler is not None:
            self._disconnect_handler()
