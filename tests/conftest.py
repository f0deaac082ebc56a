"""Shared fixtures: record/page factories and an in-memory transport."""

from __future__ import annotations

import pytest

from h100_ble_mcp.models.record import MeasurementRecord, RECORD_SIZE
from h100_ble_mcp.transport.base import Transport


class FakeTransport(Transport):
    """Records outbound writes and lets tests inject inbound frames."""

    def __init__(self, connected: bool = True) -> None:
        super().__init__()
        self.is_connected = connected
        self.sent: list[bytes] = []
        self.responses: list[bool] = []
        self.fail_sends = False
        self.raise_on_send: Exception | None = None
        self.on_send = None

    @property
    def connected(self) -> bool:
        return self.is_connected

    async def send(self, data: bytes, *, response: bool = False) -> bool:
        if self.raise_on_send is not None:
            raise self.raise_on_send
        if self.fail_sends:
            return False
        self.sent.append(bytes(data))
        self.responses.append(response)
        if self.on_send is not None:
            self.on_send(bytes(data))
        return True

    def deliver(self, data: bytes) -> None:
        self._dispatch_frame(data)

    def drop(self) -> None:
        self.is_connected = False
        self._dispatch_disconnect()


def make_record(**overrides) -> MeasurementRecord:
    fields = dict(
        fruit_index=3,
        year=2024,
        month=6,
        day=15,
        hour=10,
        minute=30,
        second=0,
        temperature=21.5,
        tree_no=7,
        defect_code=0,
        calc_result=[1.0, 2.0, 3.0, 4.0, 5.0],
    )
    fields.update(overrides)
    return MeasurementRecord(**fields)


def build_page(
    records: list[MeasurementRecord],
    sentinel: bool = False,
    trailing: bytes = b"",
    declared_length: int | None = None,
) -> bytes:
    """Build a saved-data reply frame (AE DA len payload)."""
    payload = b"".join(r.to_bytes() for r in records)
    if sentinel:
        payload += bytes(RECORD_SIZE)
    payload += trailing
    length = len(payload) if declared_length is None else declared_length
    return bytes([0xAE, 0xDA]) + length.to_bytes(2, "little") + payload


def full_page(count: int = 50, start_tree: int = 0) -> bytes:
    return build_page([make_record(tree_no=start_tree + i) for i in range(count)])


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()
