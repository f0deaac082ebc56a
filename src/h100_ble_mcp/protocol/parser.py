"""Saved-data page decoding."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from ..exceptions import DecodeError
from ..models.record import MeasurementRecord, RECORD_SIZE
from .framing import (
    HEADER_SIZE,
    DataPageFrame,
    RawFrame,
    classify_frame,
)

# A page with fewer slots than this is the last one, sentinel or not.
RECORDS_PER_FULL_PAGE = 50
SENTINEL_FRUIT_INDEX = 0


class CompletionReason(str, Enum):
    """Why a transfer ended."""

    NONE = "none"
    TERMINATOR = "terminator"
    SHORT_PAGE = "short_page"
    EMPTY_PAGE = "empty_page"


@dataclass
class PageResult:
    """Decoded content of one saved-data page."""

    records: list[MeasurementRecord] = field(default_factory=list)
    end_of_transfer: bool = False
    reason: CompletionReason = CompletionReason.NONE
    slot_count: int = 0

    def __repr__(self) -> str:
        return (
            f"PageResult(records={len(self.records)}, slots={self.slot_count}, "
            f"end_of_transfer={self.end_of_transfer}, reason={self.reason.value})"
        )


@dataclass
class FrameResult:
    """Outcome of classifying and decoding one inbound frame.

    Exactly one of ``page`` and ``raw`` is set.
    """

    page: PageResult | None = None
    raw: RawFrame | None = None


def decode_page(data: bytes) -> PageResult:
    """Decode a saved-data reply frame into records.

    Args:
        data: The full reply frame, header included.

    Returns:
        A ``PageResult``. ``end_of_transfer`` is set when the page is empty,
        when a sentinel slot is hit, or when the page holds fewer than
        ``RECORDS_PER_FULL_PAGE`` slots.

    Raises:
        DecodeError: If the frame is shorter than its header or than its
            declared payload length.
    """
    if len(data) < HEADER_SIZE:
        raise DecodeError(
            f"Saved-data frame too short for header: {len(data)} bytes"
        )

    payload_length = int.from_bytes(data[2:4], "little")
    if payload_length == 0:
        return PageResult(end_of_transfer=True, reason=CompletionReason.EMPTY_PAGE)

    available = len(data) - HEADER_SIZE
    if available < payload_length:
        raise DecodeError(
            f"Declared payload length {payload_length} exceeds "
            f"{available} available bytes"
        )

    slot_count = payload_length // RECORD_SIZE
    result = PageResult(slot_count=slot_count)
    # Partial trailing slots are never read.
    slots = memoryview(data)[: HEADER_SIZE + slot_count * RECORD_SIZE]

    for i in range(slot_count):
        offset = HEADER_SIZE + i * RECORD_SIZE
        if slots[offset] == SENTINEL_FRUIT_INDEX:
            result.end_of_transfer = True
            result.reason = CompletionReason.TERMINATOR
            break
        result.records.append(MeasurementRecord.from_bytes(slots, offset))

    if not result.end_of_transfer and slot_count < RECORDS_PER_FULL_PAGE:
        result.end_of_transfer = True
        result.reason = CompletionReason.SHORT_PAGE

    return result


def decode_frame(data: bytes) -> FrameResult | None:
    """Classify an inbound frame and decode it if it is a saved-data page.

    Returns ``None`` for frames too short to classify.

    Raises:
        DecodeError: For malformed saved-data frames.
    """
    frame = classify_frame(data)
    if frame is None:
        return None
    if isinstance(frame, DataPageFrame):
        return FrameResult(page=decode_page(frame.data))
    return FrameResult(raw=frame)
