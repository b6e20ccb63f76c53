"""HTTP client with bounded timeouts, retry/backoff and request metrics."""
from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from . import config

logger = logging.getLogger(__name__)


class StoreError(RuntimeError):
    """The remote store answered, but not with something usable."""


@dataclass
class RequestMetrics:
    network_rpc: int = 0
    network_query: int = 0
    strategy_failures: int = 0
    failed_strategies: List[str] = field(default_factory=list)

    @property
    def network_total(self) -> int:
        return self.network_rpc + self.network_query

    def inc_network(self, kind: str) -> None:
        if kind == "rpc":
            self.network_rpc += 1
        elif kind == "query":
            self.network_query += 1
        else:
            raise ValueError(f"Unknown request kind: {kind}")

    def record_strategy_failure(self, name: str) -> None:
        self.strategy_failures += 1
        self.failed_strategies.append(name)


class HttpClient:
    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: Optional[float] = None,
        retry_max: Optional[int] = None,
        backoff_base: float = config.HTTP_BACKOFF_BASE,
        backoff_max: float = config.HTTP_BACKOFF_MAX,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout if timeout is not None else config.HTTP_TIMEOUT_SECONDS
        self.retry_max = max(1, retry_max if retry_max is not None else config.HTTP_RETRY_MAX)
        self.backoff_base = backoff_base
        self.backoff_max = backoff_max
        self.session = requests.Session()

    def _headers(self) -> Dict[str, str]:
        return {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

    def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self._request("GET", path, params=params)

    def post_json(self, path: str, body: Dict[str, Any]) -> Any:
        return self._request("POST", path, json=body)

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self.base_url}{path}"
        for attempt in range(1, self.retry_max + 1):
            try:
                resp = self.session.request(
                    method, url, headers=self._headers(), timeout=self.timeout, **kwargs
                )
            except requests.RequestException:
                if attempt >= self.retry_max:
                    raise
                self._sleep_backoff(attempt)
                continue

            status = resp.status_code
            if 200 <= status < 300:
                try:
                    return resp.json()
                except ValueError as exc:
                    logger.error("Non-JSON response from %s", url)
                    raise StoreError(f"Non-JSON response from {url}") from exc

            if status in (429, 500, 502, 503, 504):
                logger.warning("HTTP %s from %s (attempt %s)", status, url, attempt)
                if attempt >= self.retry_max:
                    resp.raise_for_status()
                if not self._sleep_retry_after(resp):
                    self._sleep_backoff(attempt)
                continue

            # Non-retryable
            logger.warning("HTTP %s from %s", status, url)
            resp.raise_for_status()
            raise StoreError(f"Unexpected HTTP {status} from {url}")

        raise StoreError(f"HTTP retries exhausted for {url}")

    def _sleep_backoff(self, attempt: int) -> None:
        base = min(self.backoff_base * (2 ** (attempt - 1)), self.backoff_max)
        jitter = random.uniform(0, self.backoff_base)
        time.sleep(base + jitter)

    def _sleep_retry_after(self, resp: requests.Response) -> bool:
        retry_after = resp.headers.get("Retry-After")
        if not retry_after:
            return False
        try:
            delay = float(retry_after)
        except ValueError:
            return False
        delay = max(0.0, min(delay, self.backoff_max))
        time.sleep(delay)
        return True
