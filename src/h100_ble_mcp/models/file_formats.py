"""Export handlers for fetched measurement records.

.csv  : one row per record, columns as in the device's data table
.json : list of :meth:`MeasurementRecord.to_dict` objects
"""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Iterable

from .record import MeasurementRecord, RESULT_COUNT

CSV_COLUMNS = [
    "id",
    "timestamp",
    "fruit_index",
    "temperature",
    "tree_no",
    "defect_code",
    *[f"result_{i}" for i in range(1, RESULT_COUNT + 1)],
]

EXPORT_FORMATS = ("csv", "json")


def export_csv(records: Iterable[MeasurementRecord], path: str | Path) -> Path:
    """Write records to a CSV file with a header row.

    Invalid timestamps are written as empty cells.

    Returns:
        The path written to.
    """
    path = Path(path)
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(CSV_COLUMNS)
        for record in records:
            ts = record.timestamp
            writer.writerow([
                record.id,
                ts.isoformat() if ts else "",
                record.fruit_index,
                record.temperature,
                record.tree_no,
                record.defect_code,
                *record.calc_result,
            ])
    return path


def export_json(records: Iterable[MeasurementRecord], path: str | Path) -> Path:
    """Write records to a JSON array.

    Returns:
        The path written to.
    """
    path = Path(path)
    data = [record.to_dict() for record in records]
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return path


def import_json(path: str | Path) -> list[MeasurementRecord]:
    """Load records previously written by :func:`export_json`.

    Raises:
        ValueError: If the file does not hold a JSON array.
    """
    path = Path(path)
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ValueError(f"Expected a JSON array of records in {path}")
    return [MeasurementRecord.from_dict(item) for item in data]


def export_records(
    records: Iterable[MeasurementRecord],
    path: str | Path,
    fmt: str = "csv",
) -> Path:
    """Export records in ``fmt`` (csv or json)."""
    if fmt == "csv":
        return export_csv(records, path)
    if fmt == "json":
        return export_json(records, path)
    raise ValueError(f"Unknown export format '{fmt}'. Valid: {list(EXPORT_FORMATS)}")
