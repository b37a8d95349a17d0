"""Run report aggregation."""

from __future__ import annotations

from pathlib import Path

from horizon_scraper.common.fs import write_json


def write_run_summary(data_dir: Path, run_id: str, run_date: str, results: dict[str, dict]) -> Path:
    totals = {"records_saved": 0, "pages_fetched": 0, "rows_skipped": 0}
    error_count = 0

    for result in results.values():
        if result.get("status") != "ok":
            error_count += 1
        stats = result.get("stats") or {}
        totals["records_saved"] += int(result.get("records_saved", 0))
        totals["pages_fetched"] += int(stats.get("pages_fetched", 0))
        totals["rows_skipped"] += int(stats.get("rows_skipped", 0))

    status = "success"
    if error_count and error_count == len(results):
        status = "error"
    elif error_count:
        status = "partial"

    summary_path = data_dir / "out" / "reports" / "run_summary.json"
    payload = {
        "run_id": run_id,
        "run_date": run_date,
        "status": status,
        "authorities": list(results),
        "totals": totals,
        "error_count": error_count,
        "authority_reports": results,
    }
    write_json(summary_path, payload)
    return summary_path
