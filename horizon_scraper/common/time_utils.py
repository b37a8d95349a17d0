"""Date helpers for run metadata."""

from __future__ import annotations

from datetime import date, datetime, timezone


def today_iso() -> str:
    # Portal dates are local to the authority, so the scrape date is too.
    return date.today().isoformat()


def parse_run_date(value: str | None) -> str:
    if not value:
        return today_iso()
    parsed = date.fromisoformat(value)
    return parsed.isoformat()


def utc_timestamp_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat(timespec="milliseconds")


def generate_run_id() -> str:
    now = datetime.now(tz=timezone.utc)
    return now.strftime("run-%Y%m%dT%H%M%S%fZ")
