"""Opcode constants and outbound command builders.

Binary commands are fixed 4-byte frames with an empty payload::

    +------+--------+-----------------+
    | SOM  | Opcode | Length (LE u16) |
    | 0xAE | 1 byte | 0x00 0x00       |
    +------+--------+-----------------+

Free text bypasses the framed protocol entirely and is written as-is.
"""

from __future__ import annotations

from enum import IntEnum

from .framing import SAVE_DATA_REPLY, START_OF_MESSAGE


class Command(IntEnum):
    """Opcodes used by the saved-data protocol."""

    SAVE_DATA_REQUEST = 0x5A
    SAVE_DATA_NEXT = 0x5B
    SAVE_DATA_REPLY = SAVE_DATA_REPLY


TEXT_ENCODING = "utf-8"


def build_command(command: Command) -> bytes:
    """Build a payload-less command frame."""
    return bytes([START_OF_MESSAGE, command.value, 0x00, 0x00])


def build_start_fetch() -> bytes:
    """Build the request that starts a saved-data transfer (``AE 5A 00 00``)."""
    return build_command(Command.SAVE_DATA_REQUEST)


def build_next_page() -> bytes:
    """Build the request for the next saved-data page (``AE 5B 00 00``)."""
    return build_command(Command.SAVE_DATA_NEXT)


def build_text(text: str) -> bytes:
    """Encode a free-text message for the device.

    Args:
        text: Message to send. Must contain something besides whitespace.

    Raises:
        ValueError: If the text is empty or blank.
    """
    if not text or not text.strip():
        raise ValueError("Text message must not be empty")
    return text.encode(TEXT_ENCODING)
