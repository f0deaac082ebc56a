"""Measurement record model: one 43-byte saved-data slot.

Layout (offsets relative to slot start, multi-byte fields little-endian)::

    +-------+----------------------+------+------+------+------+------+----------------+
    | Fruit | Y  M  D  h  m  s     | Temp | ---- | Tree | ---- | Def. | Results x5     |
    | u8    | 6 x u8               | f32  | 4 B  | u16  | 4 B  | u16  | 5 x f32        |
    | 0     | 1..6                 | 7    | 11   | 15   | 17   | 21   | 23..42         |
    +-------+----------------------+------+------+------+------+------+----------------+

A fruit index of zero marks the sentinel slot that terminates the record
list. Bytes 11-14 and 17-20 are not interpreted.
"""

from __future__ import annotations

import itertools
import struct
from dataclasses import dataclass, field
from datetime import datetime
from typing import ClassVar

RECORD_SIZE = 43
YEAR_EPOCH = 2000
RESULT_COUNT = 5

OFF_FRUIT_INDEX = 0
OFF_TIMESTAMP = 1     # 6 bytes: year offset, month, day, hour, minute, second
OFF_TEMPERATURE = 7   # f32
OFF_TREE_NO = 15      # u16
OFF_DEFECT_CODE = 21  # u16
OFF_CALC_RESULT = 23  # 5 x f32

_F32 = struct.Struct("<f")
_U16 = struct.Struct("<H")
_RESULTS = struct.Struct(f"<{RESULT_COUNT}f")

_record_ids = itertools.count(1)


def next_record_id() -> int:
    """Return a fresh local record id (display correlation only)."""
    return next(_record_ids)


@dataclass
class MeasurementRecord:
    """A single saved measurement decoded from the device."""

    SIZE: ClassVar[int] = RECORD_SIZE

    fruit_index: int
    year: int
    month: int
    day: int
    hour: int
    minute: int
    second: int
    temperature: float
    tree_no: int
    defect_code: int
    calc_result: list[float] = field(default_factory=lambda: [0.0] * RESULT_COUNT)
    id: int = field(default_factory=next_record_id)

    @property
    def timestamp(self) -> datetime | None:
        """The record time, or ``None`` if the stored fields are not a valid date."""
        try:
            return datetime(
                self.year, self.month, self.day,
                self.hour, self.minute, self.second,
            )
        except ValueError:
            return None

    @classmethod
    def from_bytes(cls, data: bytes, offset: int = 0) -> MeasurementRecord:
        """Decode one slot starting at ``offset``.

        The caller is responsible for checking the fruit index first: a
        sentinel slot decodes fine but is not a real record.

        Raises:
            ValueError: If fewer than 43 bytes are available at ``offset``.
        """
        if offset < 0 or len(data) - offset < RECORD_SIZE:
            raise ValueError(
                f"Record slot needs {RECORD_SIZE} bytes at offset {offset}, "
                f"only {max(len(data) - offset, 0)} available"
            )
        ts = data[offset + OFF_TIMESTAMP : offset + OFF_TIMESTAMP + 6]
        return cls(
            fruit_index=data[offset + OFF_FRUIT_INDEX],
            year=ts[0] + YEAR_EPOCH,
            month=ts[1],
            day=ts[2],
            hour=ts[3],
            minute=ts[4],
            second=ts[5],
            temperature=_F32.unpack_from(data, offset + OFF_TEMPERATURE)[0],
            tree_no=_U16.unpack_from(data, offset + OFF_TREE_NO)[0],
            defect_code=_U16.unpack_from(data, offset + OFF_DEFECT_CODE)[0],
            calc_result=list(_RESULTS.unpack_from(data, offset + OFF_CALC_RESULT)),
        )

    def to_bytes(self) -> bytes:
        """Serialize to a 43-byte slot. Uninterpreted bytes are zero."""
        if len(self.calc_result) != RESULT_COUNT:
            raise ValueError(
                f"calc_result must hold {RESULT_COUNT} values, "
                f"got {len(self.calc_result)}"
            )
        buf = bytearray(RECORD_SIZE)
        buf[OFF_FRUIT_INDEX] = self.fruit_index & 0xFF
        buf[OFF_TIMESTAMP : OFF_TIMESTAMP + 6] = bytes([
            (self.year - YEAR_EPOCH) & 0xFF,
            self.month & 0xFF,
            self.day & 0xFF,
            self.hour & 0xFF,
            self.minute & 0xFF,
            self.second & 0xFF,
        ])
        _F32.pack_into(buf, OFF_TEMPERATURE, self.temperature)
        _U16.pack_into(buf, OFF_TREE_NO, self.tree_no & 0xFFFF)
        _U16.pack_into(buf, OFF_DEFECT_CODE, self.defect_code & 0xFFFF)
        _RESULTS.pack_into(buf, OFF_CALC_RESULT, *self.calc_result)
        return bytes(buf)

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        ts = self.timestamp
        return {
            "id": self.id,
            "timestamp": ts.isoformat() if ts else None,
            "fruit_index": self.fruit_index,
            "temperature": self.temperature,
            "tree_no": self.tree_no,
            "defect_code": self.defect_code,
            "calc_result": list(self.calc_result),
        }

    @classmethod
    def from_dict(cls, data: dict) -> MeasurementRecord:
        """Rebuild a record from :meth:`to_dict` output.

        Records without a valid timestamp come back with all time fields zero.
        """
        raw = data.get("timestamp")
        ts = datetime.fromisoformat(raw) if raw else None
        kwargs = {}
        if "id" in data:
            kwargs["id"] = int(data["id"])
        return cls(
            fruit_index=int(data["fruit_index"]),
            year=ts.year if ts else YEAR_EPOCH,
            month=ts.month if ts else 0,
            day=ts.day if ts else 0,
            hour=ts.hour if ts else 0,
            minute=ts.minute if ts else 0,
            second=ts.second if ts else 0,
            temperature=float(data["temperature"]),
            tree_no=int(data["tree_no"]),
            defect_code=int(data["defect_code"]),
            calc_result=[float(v) for v in data["calc_result"]],
            **kwargs,
        )

    def __repr__(self) -> str:
        ts = self.timestamp
        return (
            f"MeasurementRecord(id={self.id}, "
            f"timestamp={ts.isoformat(' ') if ts else 'invalid'}, "
            f"tree_no={self.tree_no}, temperature={self.temperature:.2f})"
        )
