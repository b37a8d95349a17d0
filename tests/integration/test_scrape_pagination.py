from __future__ import annotations

from urllib.parse import parse_qs, urlparse

import pytest
import requests

from horizon_scraper.common.config_loader import AuthorityRegistry
from horizon_scraper.common.errors import ConfigurationError, DateParseError, NetworkError
from horizon_scraper.common.models import AuthorityConfig, ScrapeStats
from horizon_scraper.harvest.paginate import page_count, scrape, scrape_authority

START_URL = "https://mycouncil.example.com.au/Horizon/logonGuest.aw?domain=horizondap_test#/home"


class FakeResponse:
    def __init__(self, url: str, content: bytes = b"", status_code: int = 200):
        self.status_code = status_code
        self.url = url
        self.content = content


class FakePortal:
    """Serves a fixed number of account-schema rows, ``pageSize`` at a time."""

    def __init__(self, total: int, *, bad_date_at: int | None = None, fail_start: int | None = None):
        self.total = total
        self.bad_date_at = bad_date_at
        self.fail_start = fail_start
        self.query_starts: list[int] = []
        self.handshakes = 0

    def row(self, index: int) -> str:
        lodged = "not a date" if index == self.bad_date_at else "05/10/2026"
        return (
            f'<row><AccountNumber org_value="DA-{index}"/>'
            f'<Property org_value="{index} Main St, Springvale"/>'
            f'<Description org_value="Application {index}"/>'
            f'<Lodged org_value="{lodged}"/></row>'
        )

    def page(self, start: int, page_size: int) -> bytes:
        rows = "".join(self.row(i) for i in range(start, min(start + page_size, self.total)))
        return (
            "<run_query_action_return><run_query_action_success><dataset>"
            f"<total>{self.total}</total>{rows}"
            "</dataset></run_query_action_success></run_query_action_return>"
        ).encode("utf-8")

    def request(self, method, url, **_kwargs):
        assert method == "GET"
        if "logonGuest.aw" in url:
            self.handshakes += 1
            return FakeResponse(url)
        params = parse_qs(urlparse(url).query)
        assert params["actionType"] == ["run_query_action"]
        assert params["take"] == ["50"]
        assert params["skip"] == ["0"]
        start = int(params["start"][0])
        self.query_starts.append(start)
        if start == self.fail_start:
            return FakeResponse(url, b"", status_code=500)
        return FakeResponse(url, self.page(start, int(params["pageSize"][0])))


@pytest.fixture
def portal_factory(monkeypatch):
    def _install(total: int, **kwargs) -> FakePortal:
        portal = FakePortal(total, **kwargs)
        monkeypatch.setattr(requests.Session, "request", lambda _session, **kwargs: portal.request(**kwargs))
        return portal

    return _install


@pytest.mark.parametrize(
    ("total", "page_size", "expected"),
    [(0, 50, 0), (49, 50, 0), (50, 50, 1), (100, 50, 2), (101, 50, 2), (742, 500, 1)],
)
def test_page_count(total, page_size, expected):
    assert page_count(total, page_size) == expected


@pytest.mark.integration
def test_single_page_when_total_within_page_size(portal_factory):
    portal = portal_factory(total=30)
    stats = ScrapeStats()

    records = list(scrape(AuthorityConfig(start_url=START_URL, state="NSW", page_size=50), run_date="2026-10-18", stats=stats))

    assert portal.handshakes == 1
    assert portal.query_starts == [0]
    assert len(records) == 30
    assert stats.pages_fetched == 1
    assert records[0].to_dict() == {
        "council_reference": "DA-0",
        "address": "0 Main St NSW",
        "description": "Application 0",
        "info_url": START_URL,
        "date_scraped": "2026-10-18",
        "date_received": "2026-10-05",
    }


@pytest.mark.integration
def test_exact_multiple_fetches_trailing_empty_page(portal_factory):
    portal = portal_factory(total=100)
    stats = ScrapeStats()

    records = list(scrape(AuthorityConfig(start_url=START_URL, page_size=50), run_date="2026-10-18", stats=stats))

    assert portal.query_starts == [0, 50, 100]
    assert stats.page_count == 2
    assert stats.pages_fetched == 3
    assert [r.council_reference for r in records] == [f"DA-{i}" for i in range(100)]


@pytest.mark.integration
def test_remainder_page_is_fetched(portal_factory):
    portal = portal_factory(total=120)

    records = list(scrape(AuthorityConfig(start_url=START_URL, page_size=50), run_date="2026-10-18"))

    assert portal.query_starts == [0, 50, 100]
    assert len(records) == 120
    assert records[-1].council_reference == "DA-119"


@pytest.mark.integration
def test_scrape_is_lazy(portal_factory):
    portal = portal_factory(total=120)

    records = scrape(AuthorityConfig(start_url=START_URL, page_size=50), run_date="2026-10-18")
    assert portal.handshakes == 0

    first = next(records)
    assert first.council_reference == "DA-0"
    assert portal.query_starts == [0]
    records.close()


@pytest.mark.integration
def test_network_failure_aborts_after_earlier_pages(portal_factory):
    portal_factory(total=120, fail_start=100)
    seen = []

    with pytest.raises(NetworkError):
        for record in scrape(AuthorityConfig(start_url=START_URL, page_size=50), run_date="2026-10-18"):
            seen.append(record.council_reference)

    assert len(seen) == 100


@pytest.mark.integration
def test_bad_lodged_date_aborts_scrape(portal_factory):
    portal = portal_factory(total=120, bad_date_at=60)
    seen = []

    with pytest.raises(DateParseError):
        for record in scrape(AuthorityConfig(start_url=START_URL, page_size=50), run_date="2026-10-18"):
            seen.append(record.council_reference)

    assert seen[-1] == "DA-59"
    assert portal.query_starts == [0, 50]


@pytest.mark.integration
def test_unknown_authority_fails_before_network(portal_factory):
    portal = portal_factory(total=10)
    registry = AuthorityRegistry({"cowra": AuthorityConfig(start_url=START_URL)})

    with pytest.raises(ConfigurationError):
        scrape_authority(registry, "narromine")

    assert portal.handshakes == 0
    assert portal.query_starts == []
