"""SQLite persistence keyed on council_reference."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from types import TracebackType
from typing import Iterator, Mapping

from horizon_scraper.common.constants import RECORD_FIELDS, RECORDS_TABLE, UNIQUE_KEYS
from horizon_scraper.common.fs import ensure_dir
from horizon_scraper.common.models import NormalizedRecord


class SqliteSink:
    """Upserts records into a single table, one row per unique key.

    Each save is committed immediately so a later failure never loses
    records that were already reported as saved.
    """

    def __init__(
        self,
        path: Path,
        *,
        table: str = RECORDS_TABLE,
        unique_keys: tuple[str, ...] = UNIQUE_KEYS,
    ) -> None:
        self.path = Path(path)
        self.table = table
        self.unique_keys = unique_keys
        ensure_dir(self.path.parent)
        self.conn = sqlite3.connect(self.path)
        self.conn.row_factory = sqlite3.Row
        self._create_table()

    def _create_table(self) -> None:
        columns = ", ".join(f'"{name}" TEXT' for name in RECORD_FIELDS)
        keys = ", ".join(f'"{name}"' for name in self.unique_keys)
        with self.conn:
            self.conn.execute(f'CREATE TABLE IF NOT EXISTS "{self.table}" ({columns}, UNIQUE ({keys}))')

    def save(self, record: NormalizedRecord | Mapping[str, str]) -> None:
        row = record.to_dict() if isinstance(record, NormalizedRecord) else dict(record)
        columns = ", ".join(f'"{name}"' for name in RECORD_FIELDS)
        placeholders = ", ".join(f":{name}" for name in RECORD_FIELDS)
        keys = ", ".join(f'"{name}"' for name in self.unique_keys)
        updates = ", ".join(
            f'"{name}" = excluded."{name}"' for name in RECORD_FIELDS if name not in self.unique_keys
        )
        with self.conn:
            self.conn.execute(
                f'INSERT INTO "{self.table}" ({columns}) VALUES ({placeholders}) '
                f"ON CONFLICT ({keys}) DO UPDATE SET {updates}",
                {name: row.get(name) for name in RECORD_FIELDS},
            )

    def count(self) -> int:
        return self.conn.execute(f'SELECT COUNT(*) FROM "{self.table}"').fetchone()[0]

    def iter_records(self) -> Iterator[dict[str, str]]:
        order = ", ".join(f'"{name}"' for name in self.unique_keys)
        for row in self.conn.execute(f'SELECT * FROM "{self.table}" ORDER BY {order}'):
            yield dict(row)

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> "SqliteSink":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
