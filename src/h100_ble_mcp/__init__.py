"""Saved-data retrieval and text exchange with H-100 devices over BLE."""

__version__ = "0.1.0"
