"""Bounded, display-oriented log of traffic exchanged with the device."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from ..protocol.framing import format_hex


class TrafficKind(str, Enum):
    CMD = "CMD"    # binary protocol command sent
    OUT = "OUT"    # free text sent
    IN = "IN"      # unstructured inbound traffic
    INFO = "INFO"  # engine event


@dataclass(frozen=True)
class TrafficEntry:
    kind: TrafficKind
    message: str
    time: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.message}"

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "time": self.time.isoformat(),
        }


class TrafficLog:
    """Append-only ring of the most recent traffic entries."""

    def __init__(self, maxlen: int = 500) -> None:
        self._entries: deque[TrafficEntry] = deque(maxlen=maxlen)

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, kind: TrafficKind, message: str) -> TrafficEntry:
        entry = TrafficEntry(kind=kind, message=message)
        self._entries.append(entry)
        return entry

    def command(self, data: bytes) -> TrafficEntry:
        return self.add(TrafficKind.CMD, format_hex(data))

    def text_out(self, text: str) -> TrafficEntry:
        return self.add(TrafficKind.OUT, text)

    def raw_in(self, hex_text: str, text: str) -> TrafficEntry:
        return self.add(TrafficKind.IN, f"{hex_text} ({text})")

    def info(self, message: str) -> TrafficEntry:
        return self.add(TrafficKind.INFO, message)

    def entries(self, limit: int | None = None) -> list[TrafficEntry]:
        """Return the newest ``limit`` entries, oldest first."""
        items = list(self._entries)
        if limit is not None:
            items = items[-limit:] if limit > 0 else []
        return items

    def clear(self) -> None:
        self._entries.clear()
