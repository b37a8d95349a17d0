"""Parsing of run_query_action responses into normalised records."""

from __future__ import annotations

import enum
import logging
from datetime import datetime
from typing import Iterator

from dateutil import parser as date_parser
from lxml import etree

from horizon_scraper.common.constants import TOTAL_XPATH
from horizon_scraper.common.errors import DateParseError, ParseError, TotalCountError
from horizon_scraper.common.logging import log_event
from horizon_scraper.common.models import NormalizedRecord, ScrapeStats
from horizon_scraper.common.time_utils import today_iso


class RowSchema(enum.Enum):
    """The two known row vocabularies: (reference, address, description) tags."""

    ACCOUNT = ("AccountNumber", "Property", "Description")
    ENTRY = ("EntryAccount", "PropertyDescription", "Details")

    @property
    def reference_tag(self) -> str:
        return self.value[0]

    @property
    def address_tag(self) -> str:
        return self.value[1]

    @property
    def description_tag(self) -> str:
        return self.value[2]

    @classmethod
    def detect(cls, root: etree._Element) -> "RowSchema":
        if next(root.iter(cls.ACCOUNT.reference_tag), None) is not None:
            return cls.ACCOUNT
        return cls.ENTRY


def parse_xml(page: bytes) -> etree._Element:
    try:
        return etree.fromstring(page.lstrip())
    except etree.XMLSyntaxError as exc:
        raise ParseError(f"Response is not well-formed XML: {exc}") from exc


def extract_total(page: bytes) -> int:
    root = parse_xml(page)
    nodes = root.xpath(TOTAL_XPATH)
    if not nodes:
        raise ParseError(f"Response has no {TOTAL_XPATH} node")
    text = (nodes[0].text or "").strip()
    try:
        return int(text)
    except ValueError:
        raise TotalCountError(f"Result total is not an integer: {text!r}") from None


def extract_field(row: etree._Element, tag: str) -> str | None:
    node = row.find(f".//{tag}")
    if node is None:
        return None
    value = node.get("org_value")
    if value is None:
        return None
    return value.strip()


def parse_lodged_date(text: str | None) -> str:
    if not text:
        raise DateParseError(f"Lodged date is missing or empty: {text!r}")
    try:
        return datetime.fromisoformat(text).date().isoformat()
    except ValueError:
        pass
    # Portals are Australian, so 01/04/2023 is the first of April.
    try:
        return date_parser.parse(text, dayfirst=True).date().isoformat()
    except (ValueError, OverflowError) as exc:
        raise DateParseError(f"Unrecognised lodged date: {text!r}") from exc


def format_address(raw_address: str | None, state: str | None) -> str:
    address = (raw_address or "").split(", ")[0]
    if address and state:
        address = f"{address} {state}"
    return address


def extract_records(
    page: bytes,
    info_url: str,
    state: str | None,
    *,
    run_date: str | None = None,
    logger: logging.Logger | None = None,
    stats: ScrapeStats | None = None,
) -> Iterator[NormalizedRecord]:
    root = parse_xml(page)
    schema = RowSchema.detect(root)
    date_scraped = run_date or today_iso()

    for index, row in enumerate(root.iter("row")):
        council_reference = extract_field(row, schema.reference_tag)
        if not council_reference:
            log_event(
                logger,
                f"Skipping row {index} without {schema.reference_tag}",
                level=logging.WARNING,
                event="ROW_SKIPPED",
                status="warning",
            )
            if stats is not None:
                stats.rows_skipped += 1
            continue

        yield NormalizedRecord(
            council_reference=council_reference,
            address=format_address(extract_field(row, schema.address_tag), state),
            description=extract_field(row, schema.description_tag) or "",
            info_url=info_url,
            date_scraped=date_scraped,
            date_received=parse_lodged_date(extract_field(row, "Lodged")),
        )
