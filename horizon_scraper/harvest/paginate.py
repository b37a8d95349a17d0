"""Paged walk over a portal query, yielding normalised records lazily."""

from __future__ import annotations

import logging
from typing import Iterator, Mapping

from horizon_scraper.common.config_loader import AuthorityRegistry
from horizon_scraper.common.http import HttpOptions
from horizon_scraper.common.logging import log_event
from horizon_scraper.common.models import AuthorityConfig, NormalizedRecord, ScrapeStats
from horizon_scraper.common.time_utils import today_iso
from horizon_scraper.harvest.extract import extract_records, extract_total
from horizon_scraper.harvest.query import QueryRequest
from horizon_scraper.harvest.session import open_session


def page_count(total: int, page_size: int) -> int:
    """Index of the last page to fetch; pages ``0..page_count`` are all fetched.

    When ``total`` is an exact multiple of ``page_size`` the last page is empty.
    """
    return total // page_size


def _query(config: AuthorityConfig, page_index: int) -> QueryRequest:
    return QueryRequest(
        query_string=config.query_string,
        query_name=config.query_name,
        start=page_index * config.page_size,
        page_size=config.page_size,
    )


def scrape(
    config: AuthorityConfig,
    *,
    run_date: str | None = None,
    environ: Mapping[str, str] | None = None,
    options: HttpOptions | None = None,
    logger: logging.Logger | None = None,
    stats: ScrapeStats | None = None,
) -> Iterator[NormalizedRecord]:
    stats = stats if stats is not None else ScrapeStats()
    run_date = run_date or today_iso()

    with open_session(config, environ=environ, options=options, logger=logger) as session:
        first_page = session.fetch(_query(config, 0).to_url())
        stats.pages_fetched += 1

        stats.total = extract_total(first_page)
        stats.page_count = page_count(stats.total, config.page_size)
        log_event(
            logger,
            f"{stats.total} results over {stats.page_count + 1} pages",
            event="QUERY_TOTAL",
            status="ok",
            total=stats.total,
        )

        for index in range(stats.page_count + 1):
            if index == 0:
                page = first_page
            else:
                page = session.fetch(_query(config, index).to_url())
                stats.pages_fetched += 1

            rows_before = stats.records_yielded
            for record in extract_records(
                page,
                config.start_url,
                config.state,
                run_date=run_date,
                logger=logger,
                stats=stats,
            ):
                stats.records_yielded += 1
                yield record

            log_event(
                logger,
                f"page {index} done",
                level=logging.DEBUG,
                event="PAGE_DONE",
                status="ok",
                page=index,
                rows_out=stats.records_yielded - rows_before,
            )


def scrape_authority(
    registry: AuthorityRegistry,
    authority: str,
    **scrape_kwargs,
) -> Iterator[NormalizedRecord]:
    """Look up ``authority`` and scrape it.

    The lookup happens eagerly, so an unknown key raises ConfigurationError
    at call time rather than on first iteration.
    """
    config = registry.get_config(authority)
    return scrape(config, **scrape_kwargs)
