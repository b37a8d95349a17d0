"""HTTP client with timeouts, optional retries, and per-host throttling."""

from __future__ import annotations

import time
import warnings
from dataclasses import dataclass, field
from types import TracebackType
from urllib.parse import urlparse

import requests
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential_jitter
from urllib3.exceptions import InsecureRequestWarning

from horizon_scraper.common.constants import USER_AGENT
from horizon_scraper.common.errors import NetworkError, RetryableNetworkError

RETRYABLE_STATUS_CODES = {408, 425, 429, 500, 502, 503, 504}


@dataclass(frozen=True)
class TimeoutConfig:
    connect: float = 20.0
    read: float = 120.0


@dataclass(frozen=True)
class RetryConfig:
    # One attempt means failures surface immediately.
    max_attempts: int = 1
    multiplier: float = 1.0
    max_wait: float = 30.0
    jitter: float = 1.0


@dataclass(frozen=True)
class HttpOptions:
    timeout: TimeoutConfig = field(default_factory=TimeoutConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    min_request_interval: float | None = None


class HostThrottle:
    """Keeps at least ``min_interval`` seconds between requests to the same host."""

    def __init__(self, min_interval: float) -> None:
        self.min_interval = min_interval
        self.last_request_at: dict[str, float] = {}

    def wait(self, host: str) -> None:
        last = self.last_request_at.get(host)
        if last is not None:
            remaining = self.min_interval - (time.monotonic() - last)
            if remaining > 0:
                time.sleep(remaining)
        self.last_request_at[host] = time.monotonic()


class HttpClient:
    def __init__(
        self,
        *,
        options: HttpOptions | None = None,
        verify: bool = True,
        proxy: str | None = None,
    ) -> None:
        self.options = options or HttpOptions()
        self.verify = verify
        self.proxies = {"http": proxy, "https": proxy} if proxy else None
        self.session = requests.Session()
        self.throttle = None
        if self.options.min_request_interval:
            self.throttle = HostThrottle(self.options.min_request_interval)

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _raise_for_status_or_retry(self, response: requests.Response, url: str) -> None:
        status = response.status_code
        if status in RETRYABLE_STATUS_CODES:
            raise RetryableNetworkError(f"Retryable HTTP status {status} from {url}")
        if status >= 400:
            raise NetworkError(f"HTTP status {status} from {url}")

    def _request(self, method: str, url: str) -> requests.Response:
        timeout = self.options.timeout
        if self.throttle is not None:
            self.throttle.wait(urlparse(url).netloc)

        try:
            with warnings.catch_warnings():
                # TLS_VERIFY_DISABLED is logged once per session instead.
                if not self.verify:
                    warnings.simplefilter("ignore", InsecureRequestWarning)
                response = self.session.request(
                    method=method,
                    url=url,
                    headers={"User-Agent": USER_AGENT},
                    timeout=(timeout.connect, timeout.read),
                    verify=self.verify,
                    proxies=self.proxies,
                )
        except (requests.ConnectionError, requests.Timeout) as exc:
            raise RetryableNetworkError(f"Request to {url} failed: {exc}") from exc
        except requests.RequestException as exc:
            raise NetworkError(f"Request to {url} failed: {exc}") from exc

        self._raise_for_status_or_retry(response, url)
        return response

    def request(self, method: str, url: str) -> requests.Response:
        retry_cfg = self.options.retry

        @retry(
            stop=stop_after_attempt(retry_cfg.max_attempts),
            wait=wait_exponential_jitter(
                initial=retry_cfg.multiplier,
                max=retry_cfg.max_wait,
                jitter=retry_cfg.jitter,
            ),
            retry=retry_if_exception_type(RetryableNetworkError),
            reraise=True,
        )
        def _wrapped() -> requests.Response:
            return self._request(method, url)

        return _wrapped()

    def get(self, url: str) -> requests.Response:
        return self.request("GET", url)

    def get_bytes(self, url: str) -> bytes:
        return self.get(url).content
