from __future__ import annotations

from pathlib import Path
from urllib.parse import parse_qs, urlparse

import pytest
import requests

from horizon_scraper.cli import parse_args, run_command
from horizon_scraper.common.constants import EXIT_HARD_FAIL, EXIT_PARTIAL, EXIT_SUCCESS
from horizon_scraper.common.fs import read_json
from horizon_scraper.pipeline.sink import SqliteSink

ENTRY_PAGE = b"""<?xml version="1.0" encoding="UTF-8"?>
<run_query_action_return><run_query_action_success><dataset>
<total>2</total>
<row><EntryAccount org_value="10.2026.1"/><PropertyDescription org_value="1 Brisbane St, Cowra"/>
<Details org_value="Dwelling"/><Lodged org_value="2026-10-02"/></row>
<row><EntryAccount org_value="10.2026.2"/><PropertyDescription org_value="2 Kendal St, Cowra"/>
<Details org_value="Pool"/><Lodged org_value="2026-10-03"/></row>
</dataset></run_query_action_success></run_query_action_return>
"""


class FakeResponse:
    def __init__(self, url: str, content: bytes = b"", status_code: int = 200):
        self.status_code = status_code
        self.url = url
        self.content = content


def _write_config(config_dir: Path) -> None:
    config_dir.mkdir()
    (config_dir / "authorities.yml").write_text(
        """cowra:
  start_url: "https://cowra.example/Horizon/logonGuest.aw?domain=horizondap_cowra#/home"
  state: NSW
broken:
  start_url: "https://broken.example/Horizon/logonGuest.aw?domain=horizondap#/home"
""",
        encoding="utf-8",
    )


@pytest.fixture
def fake_portals(monkeypatch):
    def fake_request(_session, method, url, **_kwargs):
        if "logonGuest.aw" in url:
            return FakeResponse(url)
        if urlparse(url).netloc == "broken.example":
            return FakeResponse(url, b"<html>maintenance", status_code=200)
        assert parse_qs(urlparse(url).query)["start"] == ["0"]
        return FakeResponse(url, ENTRY_PAGE)

    monkeypatch.setattr(requests.Session, "request", fake_request)


def _args(tmp_path: Path, *extra: str):
    return parse_args(
        [
            *extra,
            "--config-dir",
            str(tmp_path / "config"),
            "--data-dir",
            str(tmp_path / "data"),
            "--run-date",
            "2026-10-18",
            "--run-id",
            "run-test",
        ]
    )


@pytest.mark.integration
def test_cli_scrape_saves_records_and_summary(tmp_path: Path, fake_portals):
    _write_config(tmp_path / "config")

    exit_code = run_command(_args(tmp_path, "scrape", "--authority", "cowra"))

    assert exit_code == EXIT_SUCCESS
    with SqliteSink(tmp_path / "data" / "data.sqlite") as sink:
        rows = list(sink.iter_records())
    assert [(row["council_reference"], row["address"]) for row in rows] == [
        ("10.2026.1", "1 Brisbane St NSW"),
        ("10.2026.2", "2 Kendal St NSW"),
    ]
    assert rows[0]["date_scraped"] == "2026-10-18"

    summary = read_json(tmp_path / "data" / "out" / "reports" / "run_summary.json")
    assert summary["status"] == "success"
    assert summary["totals"]["records_saved"] == 2

    log_lines = (tmp_path / "data" / "run_meta" / "run-test.log.jsonl").read_text(encoding="utf-8")
    assert "Saving record 10.2026.1, 1 Brisbane St NSW" in log_lines


@pytest.mark.integration
def test_cli_scrape_all_is_partial_when_one_authority_fails(tmp_path: Path, fake_portals):
    _write_config(tmp_path / "config")

    exit_code = run_command(_args(tmp_path, "scrape"))

    assert exit_code == EXIT_PARTIAL
    summary = read_json(tmp_path / "data" / "out" / "reports" / "run_summary.json")
    assert summary["status"] == "partial"
    assert summary["authority_reports"]["cowra"]["status"] == "ok"
    assert summary["authority_reports"]["broken"]["error_code"] == "PARSE_ERROR"


@pytest.mark.integration
def test_cli_scrape_strict_stops_on_failure(tmp_path: Path, fake_portals):
    _write_config(tmp_path / "config")

    assert run_command(_args(tmp_path, "scrape", "--authority", "broken", "--strict")) == EXIT_HARD_FAIL


@pytest.mark.integration
def test_cli_unknown_authority_is_hard_failure(tmp_path: Path, monkeypatch):
    _write_config(tmp_path / "config")

    def no_network(*_args, **_kwargs):
        raise AssertionError("no request expected")

    monkeypatch.setattr(requests.Session, "request", no_network)

    assert run_command(_args(tmp_path, "scrape", "--authority", "narromine")) == EXIT_HARD_FAIL


@pytest.mark.integration
def test_cli_export_writes_csv(tmp_path: Path, fake_portals):
    _write_config(tmp_path / "config")
    run_command(_args(tmp_path, "scrape", "--authority", "cowra"))

    exit_code = run_command(_args(tmp_path, "export"))

    assert exit_code == EXIT_SUCCESS
    lines = (tmp_path / "data" / "out" / "records.csv").read_text(encoding="utf-8").splitlines()
    assert lines[0] == "council_reference,address,description,info_url,date_scraped,date_received"
    assert len(lines) == 3
