"""CSV export of stored records."""

from __future__ import annotations

from pathlib import Path

from horizon_scraper.common.constants import RECORD_FIELDS
from horizon_scraper.common.fs import write_csv
from horizon_scraper.pipeline.sink import SqliteSink


def _serialize_row(row: dict) -> dict:
    return {key: "" if row.get(key) is None else row[key] for key in RECORD_FIELDS}


def write_records_csv(sink: SqliteSink, out_path: Path) -> int:
    return write_csv(out_path, RECORD_FIELDS, (_serialize_row(row) for row in sink.iter_records()))
