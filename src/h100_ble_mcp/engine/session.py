"""Caller-visible state of one saved-data fetch."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from ..models.record import MeasurementRecord
from ..protocol.parser import CompletionReason


class FetchState(str, Enum):
    IDLE = "idle"
    AWAITING_PAGE = "awaiting_page"
    COMPLETE = "complete"
    FAILED = "failed"


class FetchError(str, Enum):
    NONE = "none"
    TRANSPORT_UNAVAILABLE = "transport_unavailable"
    SEND_FAILED = "send_failed"
    MALFORMED_FRAME = "malformed_frame"
    DISCONNECTED = "disconnected"
    CANCELLED = "cancelled"
    TIMEOUT = "timeout"


@dataclass
class FetchSession:
    """Aggregate of one multi-page retrieval.

    Records only ever grow during a fetch. A new session replaces the old one
    when a fetch is started.
    """

    generation: int = 0
    state: FetchState = FetchState.IDLE
    completion: CompletionReason = CompletionReason.NONE
    error: FetchError = FetchError.NONE
    error_detail: str = ""
    pages: int = 0
    _records: list[MeasurementRecord] = field(default_factory=list, repr=False)

    @property
    def records(self) -> tuple[MeasurementRecord, ...]:
        return tuple(self._records)

    @property
    def record_count(self) -> int:
        return len(self._records)

    @property
    def in_progress(self) -> bool:
        return self.state is FetchState.AWAITING_PAGE

    def append(self, records: list[MeasurementRecord]) -> None:
        self._records.extend(records)

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "in_progress": self.in_progress,
            "completion": self.completion.value,
            "error": self.error.value,
            "error_detail": self.error_detail,
            "pages": self.pages,
            "record_count": self.record_count,
        }
