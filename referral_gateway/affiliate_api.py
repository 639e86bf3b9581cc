from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Final, Literal

import requests

from .config import AffiliateApiConfig

log: Final = logging.getLogger("academy-gateway")


FetchStatus = Literal["ok", "http_error", "transport_error", "decode_error"]


@dataclass(slots=True)
class PageFetchResult:
    """Return object describing the result of a single page request."""

    page: int
    status: FetchStatus
    payload: Any = None
    status_code: int | None = None
    exception: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"


class AffiliateApiClient:
    """Fetch one page of the affiliate directory per call.

    Never raises for upstream problems: HTTP errors, transport failures and
    undecodable bodies all come back as a :class:`PageFetchResult`.
    """

    def __init__(self, config: AffiliateApiConfig) -> None:
        self._config = config

    def _headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "Cookie": self._config.session_cookie,
        }

    def _get(self, page: int) -> requests.Response:
        return requests.get(
            self._config.base_url,
            params={"page": page, "pageSize": self._config.page_size},
            headers=self._headers(),
            timeout=self._config.timeout_seconds,
        )

    async def fetch_page(self, page: int) -> PageFetchResult:
        if page < 1:
            raise ValueError(f"page must be >= 1, got {page}")

        try:
            resp = await asyncio.to_thread(self._get, page)
        except requests.RequestException as exc:
            log.error("Affiliate API transport error on page %d: %s", page, exc)
            return PageFetchResult(page=page, status="transport_error", exception=exc)

        if not 200 <= resp.status_code < 300:
            log.error(
                "Affiliate API returned HTTP %s for page %d", resp.status_code, page
            )
            return PageFetchResult(
                page=page, status="http_error", status_code=resp.status_code
            )

        try:
            payload = resp.json()
        except ValueError as exc:
            log.error("Affiliate API page %d is not valid JSON: %s", page, exc)
            return PageFetchResult(
                page=page,
                status="decode_error",
                status_code=resp.status_code,
                exception=exc,
            )

        log.debug("Fetched affiliate page %d", page)
        return PageFetchResult(
            page=page, status="ok", payload=payload, status_code=resp.status_code
        )
