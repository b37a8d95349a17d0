"""Guest session bootstrap and in-session page fetches."""

from __future__ import annotations

import logging
import os
from types import TracebackType
from typing import Mapping
from urllib.parse import urljoin

from horizon_scraper.common.constants import AUSTRALIAN_PROXY_ENV
from horizon_scraper.common.errors import ConfigurationError
from horizon_scraper.common.http import HttpClient, HttpOptions
from horizon_scraper.common.logging import log_event
from horizon_scraper.common.models import AuthorityConfig


def resolve_proxy(config: AuthorityConfig, environ: Mapping[str, str] | None = None) -> str | None:
    if not config.australian_proxy:
        return None
    env = os.environ if environ is None else environ
    proxy = (env.get(AUSTRALIAN_PROXY_ENV) or "").strip()
    if not proxy:
        raise ConfigurationError(
            f"{AUSTRALIAN_PROXY_ENV} must be set to scrape {config.start_url} through the Australian proxy"
        )
    return proxy


class PortalSession:
    """One logical portal session: cookies from the guest logon are kept for every fetch."""

    def __init__(self, client: HttpClient, start_url: str) -> None:
        self.client = client
        self.start_url = start_url
        self.base_url = start_url

    def open(self) -> "PortalSession":
        # The body is not needed; the logon only sets session state.
        response = self.client.get(self.start_url)
        self.base_url = response.url or self.start_url
        return self

    def fetch(self, url: str) -> bytes:
        return self.client.get_bytes(urljoin(self.base_url, url))

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "PortalSession":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


def open_session(
    config: AuthorityConfig,
    *,
    environ: Mapping[str, str] | None = None,
    options: HttpOptions | None = None,
    logger: logging.Logger | None = None,
) -> PortalSession:
    proxy = resolve_proxy(config, environ)
    if config.disable_ssl_certificate_check:
        log_event(
            logger,
            f"TLS certificate verification disabled for {config.start_url}",
            level=logging.WARNING,
            event="TLS_VERIFY_DISABLED",
            status="warning",
        )

    client = HttpClient(options=options, verify=not config.disable_ssl_certificate_check, proxy=proxy)
    session = PortalSession(client, config.start_url)
    try:
        return session.open()
    except Exception:
        session.close()
        raise
