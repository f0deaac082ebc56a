"""BLE connection to an H-100 device over the Nordic UART Service.

The device exposes the NUS service; we write to the RX characteristic
(client to device) and subscribe to notifications on the TX characteristic
(device to client). Each notification is one inbound frame.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from bleak import BleakClient, BleakScanner
from bleak.backends.device import BLEDevice
from bleak.backends.scanner import AdvertisementData
from bleak.exc import BleakError

from ..exceptions import SendError, TransportUnavailableError
from .base import Transport

logger = logging.getLogger(__name__)

UART_SERVICE_UUID = "6e400001-b5a3-f393-e0a9-e50e24dcca9e"
UART_WRITE_CHAR_UUID = "6e400002-b5a3-f393-e0a9-e50e24dcca9e"   # client -> device
UART_NOTIFY_CHAR_UUID = "6e400003-b5a3-f393-e0a9-e50e24dcca9e"  # device -> client

DEFAULT_DEVICE_NAME = "H100"
SCAN_TIMEOUT_S = 10.0


def is_h100_name(name: str | None) -> bool:
    """Match ``H100`` exactly, or ``H....P...``: an H-prefixed name whose
    sixth character is ``P``."""
    if not name:
        return False
    if name == DEFAULT_DEVICE_NAME:
        return True
    return len(name) >= 6 and name.startswith("H") and name[5].upper() == "P"


@dataclass
class DeviceInfo:
    """Identification of the connected peripheral."""

    address: str = ""
    name: str = ""


class BleUartConnection(Transport):
    """Manages the BLE link to an H-100 device.

    Usage::

        conn = BleUartConnection()
        await conn.open()
        conn.set_frame_handler(on_frame)
        await conn.send(command_bytes)
        await conn.close()
    """

    def __init__(
        self,
        address: str | None = None,
        name: str | None = None,
        scan_timeout: float = SCAN_TIMEOUT_S,
    ) -> None:
        super().__init__()
        self._address = address
        self._name = name
        self._scan_timeout = scan_timeout
        self._client: BleakClient | None = None
        self._connected = False
        self._closing = False
        self._device_info = DeviceInfo(address=address or "", name=name or "")

    @property
    def connected(self) -> bool:
        return self._connected and self._client is not None and self._client.is_connected

    @property
    def device_info(self) -> DeviceInfo:
        return self._device_info

    def _matches(self, device: BLEDevice, adv: AdvertisementData) -> bool:
        name = device.name or adv.local_name
        if self._name is not None:
            return name == self._name
        return is_h100_name(name)

    async def _find_device(self) -> BLEDevice:
        if self._address:
            device = await BleakScanner.find_device_by_address(
                self._address, timeout=self._scan_timeout
            )
        else:
            device = await BleakScanner.find_device_by_filter(
                self._matches, timeout=self._scan_timeout
            )
        if device is None:
            target = self._address or self._name or "H100 / H....P"
            raise TransportUnavailableError(f"No device matching {target!r} found")
        return device

    async def open(self) -> DeviceInfo:
        """Scan for the device, connect and subscribe to notifications.

        Returns:
            DeviceInfo for the connected peripheral.

        Raises:
            TransportUnavailableError: If the device cannot be found, or the
                connection or UART service setup fails.
        """
        device = await self._find_device()
        client = BleakClient(device, disconnected_callback=self._on_disconnected)
        try:
            await client.connect()
            await client.start_notify(UART_NOTIFY_CHAR_UUID, self._on_notify)
        except BleakError as e:
            try:
                await client.disconnect()
            except BleakError as disconnect_error:
                logger.debug("Cleanup disconnect failed: %s", disconnect_error)
            raise TransportUnavailableError(
                f"Could not connect to {device.name or device.address}. "
                f"Ensure the device is powered and advertising. "
                f"Last error: {e}"
            ) from e

        self._client = client
        self._connected = True
        self._closing = False
        self._device_info = DeviceInfo(
            address=device.address,
            name=device.name or device.address,
        )
        logger.info(
            "Connected to %s (%s)", self._device_info.name, self._device_info.address
        )
        return self._device_info

    async def close(self) -> None:
        """Close the BLE connection."""
        if self._client is None:
            return

        self._closing = True
        try:
            if self._client.is_connected:
                await self._client.stop_notify(UART_NOTIFY_CHAR_UUID)
                await self._client.disconnect()
        except BleakError as e:
            logger.warning("Error closing device: %s", e)
        finally:
            self._client = None
            self._connected = False
            logger.info("Disconnected")

    async def write(self, data: bytes, response: bool = False) -> None:
        """Write raw bytes to the UART write characteristic.

        Raises:
            TransportUnavailableError: If not connected.
            SendError: If the write fails.
        """
        if not self.connected:
            raise TransportUnavailableError("Not connected to device")
        try:
            await self._client.write_gatt_char(
                UART_WRITE_CHAR_UUID, data, response=response
            )
        except BleakError as e:
            raise SendError(f"Write of {len(data)} bytes failed: {e}") from e

    async def send(self, data: bytes, *, response: bool = False) -> bool:
        try:
            await self.write(data, response=response)
        except (SendError, TransportUnavailableError) as e:
            logger.warning("Send failed: %s", e)
            return False
        return True

    def _on_notify(self, _sender, data: bytearray) -> None:
        logger.debug("Notification: %s", data.hex(" "))
        self._dispatch_frame(bytes(data))

    def _on_disconnected(self, _client: BleakClient) -> None:
        was_connected = self._connected
        self._connected = False
        if self._closing:
            return
        if was_connected:
            logger.info("Device disconnected")
        self._dispatch_disconnect()
