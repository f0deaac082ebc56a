"""Glue between one transport and one protocol engine.

Transport callbacks only enqueue events. A single consumer task feeds them to
the pagination controller, so frames and the disconnect notification are
processed strictly in arrival order, one at a time.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from .engine.pagination import PaginationController
from .engine.session import FetchSession
from .exceptions import SendError, TransportUnavailableError
from .models.record import MeasurementRecord
from .models.traffic import TrafficLog
from .protocol.commands import build_text
from .transport.base import Transport

logger = logging.getLogger(__name__)

_DISCONNECTED = None


class DeviceLink:
    """Saved-data fetching and text exchange with one connected device.

    Usage::

        link = DeviceLink(transport)
        link.start()
        session = await link.fetch_saved_data(timeout=30)
        await link.send_text("hello")
        await link.stop()
    """

    def __init__(self, transport: Transport, traffic_log_size: int = 500) -> None:
        self._transport = transport
        self._traffic = TrafficLog(maxlen=traffic_log_size)
        self._controller = PaginationController(transport, self._traffic)
        self._queue: asyncio.Queue[Optional[bytes]] = asyncio.Queue()
        self._consumer: asyncio.Task | None = None

        transport.set_frame_handler(self._queue.put_nowait)
        transport.set_disconnect_handler(self._on_disconnected)

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def controller(self) -> PaginationController:
        return self._controller

    @property
    def session(self) -> FetchSession:
        return self._controller.session

    @property
    def records(self) -> tuple[MeasurementRecord, ...]:
        return self._controller.session.records

    @property
    def traffic(self) -> TrafficLog:
        return self._traffic

    @property
    def running(self) -> bool:
        return self._consumer is not None and not self._consumer.done()

    def start(self) -> None:
        """Start consuming inbound frames. Must be called from a running loop."""
        if self.running:
            return
        self._consumer = asyncio.get_running_loop().create_task(self._consume())

    async def stop(self) -> None:
        """Stop consuming frames and detach from the transport.

        A fetch still in progress fails with ``FetchError.DISCONNECTED``.
        """
        self._transport.set_frame_handler(None)
        self._transport.set_disconnect_handler(None)
        if self._consumer is not None:
            self._consumer.cancel()
            try:
                await self._consumer
            except asyncio.CancelledError:
                pass
            self._consumer = None
        if self._controller.session.in_progress:
            self._traffic.info("Device disconnected.")
            self._controller.handle_disconnect()

    async def drain(self) -> None:
        """Wait until every frame received so far has been processed."""
        await self._queue.join()

    def _on_disconnected(self) -> None:
        self._queue.put_nowait(_DISCONNECTED)

    async def _consume(self) -> None:
        while True:
            item = await self._queue.get()
            try:
                if item is _DISCONNECTED:
                    self._traffic.info("Device disconnected.")
                    self._controller.handle_disconnect()
                else:
                    await self._controller.feed(item)
            finally:
                self._queue.task_done()

    async def fetch_saved_data(
        self,
        timeout: float | None = None,
        restart: bool = False,
    ) -> FetchSession:
        """Run a complete saved-data fetch and return its session.

        Args:
            timeout: Seconds to wait for the transfer to finish. On timeout
                the fetch is cancelled and the partial session returned.
            restart: Abort a fetch already in flight instead of joining it.

        If a fetch is already running and ``restart`` is False, this waits
        for that fetch instead of starting another one.
        """
        if self._controller.session.in_progress and not restart:
            logger.info("Fetch already running, waiting for it")
            return await self._controller.wait_finished(timeout)
        await self._controller.start_fetch(restart=restart)
        return await self._controller.wait_finished(timeout)

    async def send_text(self, text: str) -> None:
        """Send a free-text message to the device.

        Raises:
            ValueError: If the message is blank.
            TransportUnavailableError: If the transport is not connected.
            SendError: If the write fails.
        """
        data = build_text(text)
        if not self._transport.connected:
            raise TransportUnavailableError("Not connected to device")
        if not await self._transport.send(data, response=True):
            raise SendError("Failed to send message.")
        self._traffic.text_out(text)
