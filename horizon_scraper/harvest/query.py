"""Query URL construction for the portal's run_query_action endpoint."""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlencode

from horizon_scraper.common.constants import QUERY_ACTION_PATH, QUERY_ACTION_TYPE, QUERY_TAKE


def build_query_url(
    query_string: str,
    query_name: str,
    take: int,
    start: int,
    page_size: int,
    skip: int = 0,
) -> str:
    params = {
        "actionType": QUERY_ACTION_TYPE,
        "query_string": query_string,
        "query_name": query_name,
        "take": take,
        "skip": skip,
        "start": start,
        "pageSize": page_size,
    }
    return f"{QUERY_ACTION_PATH}?{urlencode(params)}"


@dataclass(frozen=True)
class QueryRequest:
    query_string: str
    query_name: str
    start: int
    page_size: int
    take: int = QUERY_TAKE
    skip: int = 0

    def to_url(self) -> str:
        return build_query_url(
            query_string=self.query_string,
            query_name=self.query_name,
            take=self.take,
            start=self.start,
            page_size=self.page_size,
            skip=self.skip,
        )
