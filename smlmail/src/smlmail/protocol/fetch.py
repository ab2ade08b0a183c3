"""HTTP fetcher backed by :mod:`requests`."""
from __future__ import annotations

from typing import Optional

import requests

from ..config import HttpConfig
from ..errors import NetworkFetchError
from ..utils.logging import JsonLogger, get_logger
from .hosts import FetchedResource


class RequestsFetcher:
    """Blocking GET requests with a fixed timeout and user agent."""

    def __init__(
        self,
        config: Optional[HttpConfig] = None,
        *,
        session: Optional[requests.Session] = None,
        logger: Optional[JsonLogger] = None,
    ) -> None:
        self._config = config or HttpConfig()
        self._session = session or requests.Session()
        self._session.headers["User-Agent"] = self._config.user_agent
        self._logger = logger or get_logger("smlmail.fetch")

    def fetch(self, url: str) -> str:
        response = self._get(url)
        return response.text

    def fetch_binary(self, url: str) -> FetchedResource:
        response = self._get(url)
        content_type = response.headers.get("Content-Type", "application/octet-stream")
        return FetchedResource(
            content=response.content,
            content_type=content_type.split(";")[0].strip().lower(),
        )

    def _get(self, url: str) -> requests.Response:
        try:
            response = self._session.get(url, timeout=self._config.timeout_s)
        except requests.RequestException as exc:
            self._logger.warning("fetch_failed", url=url, error=str(exc))
            raise NetworkFetchError(url, str(exc)) from exc
        if response.status_code >= 400:
            self._logger.warning("fetch_http_error", url=url, status=response.status_code)
            raise NetworkFetchError(url, f"HTTP {response.status_code}")
        self._logger.debug("fetched", url=url, status=response.status_code, size=len(response.content))
        return response
