from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from referral_gateway.affiliate_api import PageFetchResult


@pytest.fixture
def make_items():
    """Return a builder for ``count`` upstream affiliate dicts."""

    def build(count: int, prefix: str = "user", start: int = 0) -> list[dict]:
        return [
            {"username": f"{prefix}{i}", "referralCode": f"CODE{i}"}
            for i in range(start, start + count)
        ]

    return build


@pytest.fixture
def paged_fetcher():
    """Build an AsyncMock fetcher that serves the given payloads as pages 1..N.

    Entries that are already ``PageFetchResult`` objects are returned as-is so
    tests can inject failures on a specific page.
    """

    def factory(*payloads):
        async def fetch_page(page: int) -> PageFetchResult:
            entry = payloads[page - 1]
            if isinstance(entry, PageFetchResult):
                return entry
            return PageFetchResult(
                page=page, status="ok", payload=entry, status_code=200
            )

        fetcher = AsyncMock()
        fetcher.fetch_page.side_effect = fetch_page
        return fetcher

    return factory
