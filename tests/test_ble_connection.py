"""Tests for the BLE UART transport with the bleak client mocked."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from bleak.exc import BleakError

from h100_ble_mcp.exceptions import SendError, TransportUnavailableError
from h100_ble_mcp.transport import ble_connection
from h100_ble_mcp.transport.ble_connection import (
    BleUartConnection,
    UART_NOTIFY_CHAR_UUID,
    UART_WRITE_CHAR_UUID,
    is_h100_name,
)


@pytest.mark.parametrize("name, expected", [
    ("H100", True),
    ("H1234P", True),
    ("H9876p-01", True),
    ("H1234X", False),
    ("H100X", False),
    ("X1234P", False),
    ("", False),
    (None, False),
])
def test_is_h100_name(name, expected):
    assert is_h100_name(name) is expected


def _mock_client():
    client = MagicMock()
    client.is_connected = True
    client.connect = AsyncMock()
    client.disconnect = AsyncMock()
    client.start_notify = AsyncMock()
    client.stop_notify = AsyncMock()
    client.write_gatt_char = AsyncMock()
    return client


def _open(client, device_name="H100"):
    device = MagicMock()
    device.name = device_name
    device.address = "AA:BB:CC:DD:EE:FF"

    scanner = MagicMock()
    scanner.find_device_by_filter = AsyncMock(return_value=device)
    scanner.find_device_by_address = AsyncMock(return_value=device)

    conn = BleUartConnection()
    with patch.object(ble_connection, "BleakScanner", scanner), \
            patch.object(ble_connection, "BleakClient", return_value=client) as client_cls:
        info = asyncio.run(conn.open())
    return conn, info, client_cls


def test_open_subscribes_to_notifications():
    client = _mock_client()
    conn, info, client_cls = _open(client)
    assert conn.connected
    assert info.name == "H100"
    assert info.address == "AA:BB:CC:DD:EE:FF"
    client.start_notify.assert_awaited_once()
    assert client.start_notify.await_args.args[0] == UART_NOTIFY_CHAR_UUID
    assert client_cls.call_args.kwargs["disconnected_callback"] is not None


def test_open_device_not_found():
    scanner = MagicMock()
    scanner.find_device_by_filter = AsyncMock(return_value=None)
    with patch.object(ble_connection, "BleakScanner", scanner):
        with pytest.raises(TransportUnavailableError):
            asyncio.run(BleUartConnection().open())


def test_open_connect_failure():
    client = _mock_client()
    client.connect.side_effect = BleakError("timeout")
    with pytest.raises(TransportUnavailableError):
        _open(client)
    client.disconnect.assert_awaited()


def test_send_writes_to_uart_characteristic():
    client = _mock_client()
    conn, _, _ = _open(client)
    assert asyncio.run(conn.send(b"\xAE\x5A\x00\x00")) is True
    client.write_gatt_char.assert_awaited_once_with(
        UART_WRITE_CHAR_UUID, b"\xAE\x5A\x00\x00", response=False
    )


def test_send_failure_returns_false():
    client = _mock_client()
    client.write_gatt_char.side_effect = BleakError("gone")
    conn, _, _ = _open(client)
    assert asyncio.run(conn.send(b"x")) is False
    with pytest.raises(SendError):
        asyncio.run(conn.write(b"x"))


def test_send_when_not_connected():
    conn = BleUartConnection()
    assert asyncio.run(conn.send(b"x")) is False
    with pytest.raises(TransportUnavailableError):
        asyncio.run(conn.write(b"x"))


def test_notifications_reach_frame_handler():
    client = _mock_client()
    conn, _, _ = _open(client)
    received = []
    conn.set_frame_handler(received.append)
    conn._on_notify(None, bytearray(b"\xAE\xDA\x00\x00"))
    assert received == [b"\xAE\xDA\x00\x00"]


def test_unexpected_disconnect_notifies_once():
    client = _mock_client()
    conn, _, _ = _open(client)
    calls = []
    conn.set_disconnect_handler(lambda: calls.append(True))
    conn._on_disconnected(client)
    assert calls == [True]
    assert not conn.connected


def test_close_does_not_report_disconnect():
    client = _mock_client()
    conn, _, _ = _open(client)
    calls = []
    conn.set_disconnect_handler(lambda: calls.append(True))

    async def close():
        await conn.close()
        conn._on_disconnected(client)

    asyncio.run(close())
    client.disconnect.assert_awaited()
    assert calls == []
    assert not conn.connected
