"""Scrape-and-save orchestration with fail-soft semantics across authorities."""

from __future__ import annotations

import logging
from typing import Mapping

from horizon_scraper.common.config_loader import AuthorityRegistry
from horizon_scraper.common.errors import ScraperError
from horizon_scraper.common.http import HttpOptions
from horizon_scraper.common.logging import log_event
from horizon_scraper.common.models import NormalizedRecord, ScrapeStats
from horizon_scraper.harvest.paginate import scrape_authority
from horizon_scraper.pipeline.sink import SqliteSink


def save_record(sink: SqliteSink, record: NormalizedRecord, logger: logging.Logger | None, **event_fields) -> None:
    log_event(
        logger,
        f"Saving record {record.council_reference}, {record.address}",
        event="RECORD_SAVED",
        status="ok",
        council_reference=record.council_reference,
        address=record.address,
        **event_fields,
    )
    sink.save(record)


def scrape_and_save(
    registry: AuthorityRegistry,
    authority: str,
    sink: SqliteSink,
    *,
    logger: logging.Logger | None = None,
    run_id: str | None = None,
    run_date: str | None = None,
    environ: Mapping[str, str] | None = None,
    options: HttpOptions | None = None,
    stats: ScrapeStats | None = None,
) -> ScrapeStats:
    stats = stats if stats is not None else ScrapeStats()
    records = scrape_authority(
        registry,
        authority,
        run_date=run_date,
        environ=environ,
        options=options,
        logger=logger,
        stats=stats,
    )
    for record in records:
        save_record(sink, record, logger, run_id=run_id, authority=authority)
    return stats


def run_scrape(
    registry: AuthorityRegistry,
    authorities: list[str],
    sink: SqliteSink,
    *,
    logger: logging.Logger | None = None,
    run_id: str | None = None,
    run_date: str | None = None,
    environ: Mapping[str, str] | None = None,
    options: HttpOptions | None = None,
    strict: bool = False,
) -> dict[str, dict]:
    """Scrape each authority in turn; a failure is logged and the next one runs.

    In strict mode the first failure propagates instead.
    """
    results: dict[str, dict] = {}

    for authority in authorities:
        stats = ScrapeStats()
        log_event(logger, f"scrape start for {authority}", run_id=run_id, authority=authority, event="SCRAPE_START", status="ok")
        try:
            scrape_and_save(
                registry,
                authority,
                sink,
                logger=logger,
                run_id=run_id,
                run_date=run_date,
                environ=environ,
                options=options,
                stats=stats,
            )
        except ScraperError as exc:
            results[authority] = {
                "status": "error",
                "error_code": exc.error_code,
                "error": str(exc),
                "records_saved": stats.records_yielded,
                "stats": stats.to_dict(),
            }
            log_event(
                logger,
                f"scrape failed for authority {authority}: {exc}",
                level=logging.ERROR,
                run_id=run_id,
                authority=authority,
                event="SCRAPE_FAIL",
                status="error",
                error_code=exc.error_code,
                rows_out=stats.records_yielded,
            )
            if strict:
                raise
            continue

        results[authority] = {
            "status": "ok",
            "records_saved": stats.records_yielded,
            "stats": stats.to_dict(),
        }
        log_event(
            logger,
            f"scrape end for {authority}",
            run_id=run_id,
            authority=authority,
            event="SCRAPE_END",
            status="ok",
            total=stats.total,
            rows_out=stats.records_yielded,
        )

    return results
