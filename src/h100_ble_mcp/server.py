"""MCP server entry point for H-100 devices.

Exposes tools and resources via the Model Context Protocol using the
official Python MCP SDK with stdio transport.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from mcp.server.fastmcp import FastMCP

from .config import settings
from .exceptions import H100Error, TransportUnavailableError
from .link import DeviceLink
from .models.file_formats import EXPORT_FORMATS, export_records as _export_records
from .transport.ble_connection import BleUartConnection

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "h100-ble",
    instructions="MCP server for reading saved measurement data from H-100 devices over BLE",
)

# Global connection state
_connection: BleUartConnection | None = None
_link: DeviceLink | None = None


def _get_link() -> DeviceLink:
    """Get the active device link, raising if not connected."""
    if _link is None or _connection is None or not _connection.connected:
        raise TransportUnavailableError(
            "Not connected to device. Use the 'connect' tool first."
        )
    return _link


async def _close() -> None:
    global _connection, _link
    if _link is not None:
        await _link.stop()
    if _connection is not None:
        await _connection.close()
    _link = None
    _connection = None


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
async def connect(address: str | None = None, name: str | None = None) -> dict[str, Any]:
    """Connect to an H-100 device over BLE (Nordic UART Service).

    Without arguments, scans for a device named "H100" or an H-prefixed
    name whose sixth character is "P".

    Args:
        address: Optional BLE address to connect to directly.
        name: Optional exact advertised device name.
    """
    global _connection, _link
    if _connection is not None and _connection.connected:
        return {
            "connected": True,
            "message": "Already connected",
            "device": _connection.device_info.name,
        }

    await _close()
    connection = BleUartConnection(
        address=address or settings.ble.address,
        name=name or settings.ble.device_name,
        scan_timeout=settings.ble.scan_timeout_seconds,
    )
    try:
        info = await connection.open()
    except TransportUnavailableError as e:
        return {"connected": False, "error": str(e)}

    _connection = connection
    _link = DeviceLink(connection, traffic_log_size=settings.log.traffic_log_size)
    _link.start()

    return {"connected": True, "device": info.name, "address": info.address}


@mcp.tool()
async def disconnect() -> dict[str, bool]:
    """Close the BLE connection to the device."""
    await _close()
    return {"disconnected": True}


@mcp.tool()
def get_connection_status() -> dict[str, Any]:
    """Report the connection and saved-data fetch status."""
    result: dict[str, Any] = {
        "connected": _connection is not None and _connection.connected,
    }
    if _connection is not None:
        result["device"] = _connection.device_info.name
        result["address"] = _connection.device_info.address
    if _link is not None:
        result["fetch"] = _link.session.to_dict()
    return result


# ─── SAVED DATA TOOLS ─────────────────────────────────────────────────

@mcp.tool()
async def fetch_saved_data(
    timeout: float | None = None,
    restart: bool = False,
) -> dict[str, Any]:
    """Download all saved measurement records from the device.

    Requests pages until the device signals the end of the transfer.
    Records received before a failure are kept.

    Args:
        timeout: Seconds to wait for the transfer (default from config).
        restart: Abort a fetch that is still running and start over.
    """
    try:
        link = _get_link()
    except TransportUnavailableError as e:
        return {"error": str(e)}

    session = await link.fetch_saved_data(
        timeout=timeout or settings.fetch.fetch_timeout_seconds,
        restart=restart,
    )
    result = session.to_dict()
    if session.error_detail:
        result["message"] = session.error_detail
    return result


@mcp.tool()
def get_saved_records(offset: int = 0, limit: int = 100) -> dict[str, Any]:
    """Return records from the most recent fetch.

    Args:
        offset: Index of the first record to return.
        limit: Maximum number of records (1-1000).
    """
    if _link is None:
        return {"error": "No data fetched yet"}
    if offset < 0 or not 1 <= limit <= 1000:
        return {"error": "offset must be >= 0 and limit 1-1000"}

    records = _link.records
    page = records[offset : offset + limit]
    return {
        "total": len(records),
        "offset": offset,
        "records": [r.to_dict() for r in page],
        "state": _link.session.state.value,
    }


@mcp.tool()
def export_records(output_path: str, format: str = "csv") -> dict[str, Any]:
    """Export the fetched records to a file.

    Args:
        output_path: Destination file path.
        format: "csv" or "json".
    """
    if _link is None or not _link.records:
        return {"error": "No records to export"}
    if format not in EXPORT_FORMATS:
        return {"error": f"Unknown format '{format}'. Valid: {list(EXPORT_FORMATS)}"}

    path = _export_records(_link.records, output_path, format)
    return {"exported": True, "path": str(path), "record_count": len(_link.records)}


# ─── TEXT TOOLS ───────────────────────────────────────────────────────

@mcp.tool()
async def send_text(message: str) -> dict[str, Any]:
    """Send a free-text message to the device (UTF-8, no framing).

    Args:
        message: Text to send.
    """
    try:
        link = _get_link()
        await link.send_text(message)
    except (H100Error, ValueError) as e:
        return {"sent": False, "error": str(e)}
    return {"sent": True, "message": message}


@mcp.tool()
def get_traffic_log(limit: int = 50) -> dict[str, Any]:
    """Return the most recent entries of the traffic log.

    Entries are tagged CMD (protocol command), OUT (text sent),
    IN (unstructured data received) or INFO (fetch events).

    Args:
        limit: Number of entries to return.
    """
    if _link is None:
        return {"entries": []}
    return {"entries": [str(e) for e in _link.traffic.entries(limit)]}


# ─── RESOURCES ────────────────────────────────────────────────────────

@mcp.resource("h100://session/status")
def resource_session_status() -> str:
    """Current fetch status as JSON."""
    return json.dumps(get_connection_status(), indent=2)


@mcp.resource("h100://session/records")
def resource_session_records() -> str:
    """All records from the most recent fetch as JSON."""
    if _link is None:
        return "[]"
    return json.dumps([r.to_dict() for r in _link.records], indent=2)


@mcp.resource("h100://traffic/log")
def resource_traffic_log() -> str:
    """Full traffic log as JSON."""
    if _link is None:
        return "[]"
    return json.dumps([e.to_dict() for e in _link.traffic.entries()], indent=2)


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=settings.log.level)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
