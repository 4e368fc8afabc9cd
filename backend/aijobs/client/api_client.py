"""HTTP client for the scrape lifecycle API."""

import logging
from typing import Any

import httpx

from aijobs.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

API_PREFIX = "/api/v1"


class NetworkError(Exception):
    """Transport failure or non-2xx reply from the API."""


class ScrapeApiClient:

    def __init__(
        self,
        base_url: str | None = None,
        client: httpx.Client | None = None,
        timeout: float = 30,
    ):
        self.client = client or httpx.Client(
            base_url=base_url or settings.api_base_url,
            timeout=timeout,
        )

    def start_scrape(self, source_url: str, company: str | None = None) -> dict[str, Any]:
        body = {"source_url": source_url}
        if company:
            body["company"] = company
        return self._request("POST", "/scrape", json=body)

    def get_status(self, company_key: str) -> dict[str, Any]:
        return self._request("GET", "/scrape-status", params={"company": company_key})

    def clear_status(self, company_key: str) -> dict[str, Any]:
        return self._request("DELETE", "/scrape-status", params={"company": company_key})

    def get_summary(self, company_key: str) -> dict[str, Any]:
        return self._request("GET", "/summary", params={"company": company_key})

    def _request(self, method: str, path: str, **kwargs) -> dict[str, Any]:
        logger.debug(f"{method} {path} {kwargs.get('params') or ''}")
        try:
            resp = self.client.request(method, f"{API_PREFIX}{path}", **kwargs)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPError as e:
            raise NetworkError(f"{method} {path} failed: {e}") from e
        except ValueError as e:
            raise NetworkError(f"{method} {path} returned invalid JSON: {e}") from e

    def close(self) -> None:
        self.client.close()
