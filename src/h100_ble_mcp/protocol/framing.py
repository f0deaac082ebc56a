"""Inbound notification classifier.

Protocol reply layout::

    +------+--------+-----------------+------------------------+
    | SOM  | Opcode | Length (LE u16) |        Payload         |
    | 0xAE | 1 byte | 2 bytes         | ``Length`` bytes       |
    +------+--------+-----------------+------------------------+

Only the saved-data reply (opcode 0xDA) is interpreted. Anything else the
device sends (debug text, echoes, other opcodes) is passed through as raw
traffic for display.
"""

from __future__ import annotations

from dataclasses import dataclass

START_OF_MESSAGE = 0xAE
SAVE_DATA_REPLY = 0xDA
HEADER_SIZE = 4  # SOM + opcode + u16 length
MIN_FRAME_SIZE = 2


def format_hex(data: bytes) -> str:
    """Render bytes as upper-case, space separated hex (``AE 5A 00 00``)."""
    return data.hex(" ").upper()


@dataclass(frozen=True)
class DataPageFrame:
    """A saved-data reply carrying one page of records."""

    data: bytes

    @property
    def payload_length(self) -> int:
        """Declared payload length, or 0 if the length field is truncated."""
        if len(self.data) < HEADER_SIZE:
            return 0
        return int.from_bytes(self.data[2:4], "little")

    def __repr__(self) -> str:
        return (
            f"DataPageFrame(payload_length={self.payload_length}, "
            f"size={len(self.data)})"
        )


@dataclass(frozen=True)
class RawFrame:
    """Unstructured traffic: kept for display only."""

    data: bytes

    @property
    def text(self) -> str:
        return self.data.decode("utf-8", errors="replace")

    @property
    def hex(self) -> str:
        return format_hex(self.data)

    def __repr__(self) -> str:
        return f"RawFrame({self.hex} ({self.text!r}))"


ClassifiedFrame = DataPageFrame | RawFrame


def is_data_page(data: bytes) -> bool:
    """True if the header bytes mark a saved-data reply."""
    return (
        len(data) >= MIN_FRAME_SIZE
        and data[0] == START_OF_MESSAGE
        and data[1] == SAVE_DATA_REPLY
    )


def classify_frame(data: bytes) -> ClassifiedFrame | None:
    """Classify one inbound notification.

    Args:
        data: Raw notification bytes as delivered by the transport.

    Returns:
        ``None`` for frames shorter than two bytes, a ``DataPageFrame`` for
        saved-data replies, otherwise a ``RawFrame``.
    """
    data = bytes(data)
    if len(data) < MIN_FRAME_SIZE:
        return None
    if is_data_page(data):
        return DataPageFrame(data=data)
    return RawFrame(data=data)
