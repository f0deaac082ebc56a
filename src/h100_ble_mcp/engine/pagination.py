"""Saved-data pagination state machine.

The controller is fed inbound frames one at a time and decides, after each
saved-data page, whether to request the next page or to finish::

    IDLE --start_fetch--> AWAITING_PAGE --page, more--> AWAITING_PAGE
                               |
                               +--page, end of transfer--> COMPLETE
                               +--send failure / malformed page /
                                  disconnect / cancel--> FAILED

COMPLETE and FAILED behave like IDLE for the next ``start_fetch``. Only one
fetch is in flight at a time.
"""

from __future__ import annotations

import asyncio
import logging

from ..exceptions import DecodeError, H100Error
from ..models.traffic import TrafficLog
from ..protocol.commands import build_next_page, build_start_fetch
from ..protocol.parser import (
    CompletionReason,
    FrameResult,
    PageResult,
    decode_frame,
)
from ..transport.base import Transport
from .session import FetchError, FetchSession, FetchState

logger = logging.getLogger(__name__)


class PaginationController:
    """Drives one saved-data fetch at a time over a transport."""

    def __init__(
        self,
        transport: Transport | None = None,
        traffic: TrafficLog | None = None,
    ) -> None:
        self._transport = transport
        self._traffic = traffic if traffic is not None else TrafficLog()
        self._session = FetchSession()
        self._generation = 0
        self._finished = asyncio.Event()

    @property
    def transport(self) -> Transport | None:
        return self._transport

    @transport.setter
    def transport(self, transport: Transport | None) -> None:
        self._transport = transport

    @property
    def session(self) -> FetchSession:
        return self._session

    @property
    def traffic(self) -> TrafficLog:
        return self._traffic

    @property
    def state(self) -> FetchState:
        return self._session.state

    # ─── caller actions ────────────────────────────────────────────────

    async def start_fetch(self, restart: bool = False) -> bool:
        """Begin a new fetch, discarding the records of the previous one.

        Args:
            restart: Cancel a fetch that is still in flight instead of
                rejecting the request.

        Returns:
            True if the start request was sent, False if the fetch was
            rejected or failed immediately.
        """
        if self._session.in_progress:
            if not restart:
                logger.warning("Fetch already in progress, start request ignored")
                return False
            self.cancel()

        self._generation += 1
        self._session = FetchSession(
            generation=self._generation,
            state=FetchState.AWAITING_PAGE,
        )
        self._finished = asyncio.Event()

        if self._transport is None or not self._transport.connected:
            self._fail(FetchError.TRANSPORT_UNAVAILABLE, "No connected transport")
            return False

        logger.info("Starting saved-data fetch #%d", self._generation)
        self._traffic.info("Requesting saved data...")
        return await self._send(build_start_fetch(), self._generation)

    def cancel(self, reason: FetchError = FetchError.CANCELLED) -> bool:
        """Abort the in-flight fetch, keeping the records received so far."""
        if not self._session.in_progress:
            return False
        self._fail(reason, f"Fetch {reason.value}")
        return True

    def handle_disconnect(self) -> None:
        """Transport dropped: fail any fetch that is still waiting."""
        if self._session.in_progress:
            self._fail(FetchError.DISCONNECTED, "Transport disconnected")

    async def wait_finished(self, timeout: float | None = None) -> FetchSession:
        """Wait until the current fetch completes or fails.

        On timeout the fetch is cancelled with ``FetchError.TIMEOUT``.
        """
        session = self._session
        finished = self._finished
        if not session.in_progress:
            return session
        try:
            await asyncio.wait_for(finished.wait(), timeout)
        except asyncio.TimeoutError:
            if self._session is session:
                self.cancel(FetchError.TIMEOUT)
        return session

    # ─── inbound frames ────────────────────────────────────────────────

    async def feed(self, data: bytes) -> FrameResult | None:
        """Process one inbound frame.

        Raw traffic goes to the traffic log. Saved-data pages advance the
        state machine. Malformed pages fail the current fetch.

        Returns:
            The classification/decoding result, or ``None`` if the frame was
            ignored or malformed.
        """
        try:
            result = decode_frame(data)
        except DecodeError as e:
            logger.warning("Malformed saved-data frame: %s", e)
            if self._session.in_progress:
                self._fail(FetchError.MALFORMED_FRAME, str(e))
            return None

        if result is None:
            return None

        if result.raw is not None:
            logger.debug("Received: %s", result.raw)
            self._traffic.raw_in(result.raw.hex, result.raw.text)
            return result

        await self._handle_page(result.page)
        return result

    async def _handle_page(self, page: PageResult) -> None:
        session = self._session
        if not session.in_progress:
            logger.info(
                "Ignoring saved-data page while %s: %r", session.state.value, page
            )
            return

        session.pages += 1
        session.append(page.records)
        logger.debug("Page %d of fetch #%d: %r", session.pages, session.generation, page)

        if page.reason is CompletionReason.EMPTY_PAGE:
            self._traffic.info("Received empty data packet. Fetch complete.")
            self._complete(page.reason)
            return

        self._traffic.info(f"Received {len(page.records)} data records.")
        if page.end_of_transfer:
            self._traffic.info("All data received.")
            self._complete(page.reason)
        else:
            await self._send(build_next_page(), session.generation)

    # ─── transitions ───────────────────────────────────────────────────

    async def _send(self, data: bytes, generation: int) -> bool:
        detail = ""
        try:
            ok = await self._transport.send(data)
        except (H100Error, OSError) as e:
            ok = False
            detail = str(e)

        if ok:
            self._traffic.command(data)

        if generation != self._session.generation or not self._session.in_progress:
            # The fetch ended (disconnect, cancel) while the write was pending.
            return False

        if not ok:
            logger.warning("Failed to send command %s: %s", data.hex(" "), detail)
            self._fail(FetchError.SEND_FAILED, detail or "Failed to send command.")
            return False

        return True

    def _complete(self, reason: CompletionReason) -> None:
        session = self._session
        session.state = FetchState.COMPLETE
        session.completion = reason
        logger.info(
            "Fetch #%d complete (%s): %d records in %d pages",
            session.generation, reason.value, session.record_count, session.pages,
        )
        self._finished.set()

    def _fail(self, error: FetchError, detail: str) -> None:
        session = self._session
        session.state = FetchState.FAILED
        session.error = error
        session.error_detail = detail
        logger.warning(
            "Fetch #%d failed (%s): %s; keeping %d records",
            session.generation, error.value, detail, session.record_count,
        )
        self._traffic.info(f"Fetch failed: {detail}")
        self._finished.set()
