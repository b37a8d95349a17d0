"""Data models used across the scraper."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields

from horizon_scraper.common.constants import DEFAULT_PAGE_SIZE, DEFAULT_QUERY_NAME, DEFAULT_QUERY_STRING


@dataclass(frozen=True)
class AuthorityConfig:
    """Connection and query options for one deployment of the portal."""

    start_url: str
    state: str | None = None
    page_size: int = DEFAULT_PAGE_SIZE
    query_string: str = DEFAULT_QUERY_STRING
    query_name: str = DEFAULT_QUERY_NAME
    australian_proxy: bool = False
    disable_ssl_certificate_check: bool = False

    @classmethod
    def option_names(cls) -> set[str]:
        return {f.name for f in fields(cls)}


@dataclass(frozen=True)
class NormalizedRecord:
    council_reference: str
    address: str
    description: str
    info_url: str
    date_scraped: str
    date_received: str

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


@dataclass
class ScrapeStats:
    """Counters filled in by the pagination driver as it runs."""

    total: int | None = None
    page_count: int | None = None
    pages_fetched: int = 0
    records_yielded: int = 0
    rows_skipped: int = 0

    def to_dict(self) -> dict:
        return asdict(self)
