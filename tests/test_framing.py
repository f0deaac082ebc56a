"""Tests for inbound frame classification."""

from h100_ble_mcp.protocol.framing import (
    DataPageFrame,
    RawFrame,
    classify_frame,
    format_hex,
)


def test_short_frames_are_ignored():
    """Frames under two bytes produce no classification."""
    assert classify_frame(b"") is None
    assert classify_frame(b"\xAE") is None


def test_saved_data_reply_is_data_page():
    """SOM 0xAE followed by opcode 0xDA is a data page."""
    frame = classify_frame(bytes([0xAE, 0xDA, 0x2B, 0x00]) + bytes(43))
    assert isinstance(frame, DataPageFrame)
    assert frame.payload_length == 43


def test_header_only_two_bytes_is_still_data_page():
    """The classifier only needs the first two bytes."""
    frame = classify_frame(bytes([0xAE, 0xDA]))
    assert isinstance(frame, DataPageFrame)
    assert frame.payload_length == 0


def test_other_opcode_is_raw():
    """A frame with the SOM but another opcode is passed through."""
    frame = classify_frame(bytes([0xAE, 0x5A, 0x00, 0x00]))
    assert isinstance(frame, RawFrame)


def test_text_is_raw_with_text_and_hex():
    """Plain text is exposed both decoded and as hex."""
    frame = classify_frame(b"OK\r\n")
    assert isinstance(frame, RawFrame)
    assert frame.text == "OK\r\n"
    assert frame.hex == "4F 4B 0D 0A"


def test_raw_invalid_utf8_is_replaced():
    """Undecodable bytes do not raise."""
    frame = classify_frame(b"\xff\xfeA")
    assert isinstance(frame, RawFrame)
    assert frame.text.endswith("A")
    assert "�" in frame.text


def test_bytearray_input_is_accepted():
    """Transports hand over bytearrays; classification copies them."""
    frame = classify_frame(bytearray(b"hi"))
    assert isinstance(frame, RawFrame)
    assert frame.data == b"hi"


def test_format_hex():
    assert format_hex(bytes([0xAE, 0x5B, 0x00, 0x00])) == "AE 5B 00 00"


def test_frame_repr():
    r = repr(classify_frame(b"hi"))
    assert "68 69" in r
