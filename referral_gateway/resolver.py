from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Final, Literal, Protocol

from .affiliate_api import PageFetchResult
from .config import DEFAULT_PAGE_SIZE
from .normalization import (
    RECORD_ARRAY_CANDIDATES,
    AffiliatePage,
    AffiliateRecord,
    KeyPath,
    normalize_page,
)

log: Final = logging.getLogger("academy-gateway")

FETCH_FAILED: Final[str] = "failed to fetch data"
INVALID_RESPONSE: Final[str] = "invalid response format"

SearchStatus = Literal["found", "not_found", "error"]
RecordPredicate = Callable[[AffiliateRecord], bool]


class PageFetcher(Protocol):
    async def fetch_page(self, page: int) -> PageFetchResult: ...


@dataclass(slots=True)
class SearchResult:
    """Outcome of a short-circuit search across the directory."""

    status: SearchStatus
    record: AffiliateRecord | None = None
    reason: str | None = None
    pages_fetched: int = 0

    @property
    def found(self) -> bool:
        return self.status == "found"


@dataclass(slots=True)
class PaginationState:
    """Walk bookkeeping for one list/search call. Never shared."""

    page_size: int
    page: int = 1
    seen: int = 0
    declared_total: int | None = None

    def record(self, page: AffiliatePage) -> None:
        self.seen += page.item_count
        if page.total_hint is not None:
            self.declared_total = page.total_hint

    def is_exhausted(self, page: AffiliatePage) -> bool:
        if page.item_count == 0:
            return True
        # a declared total wins over the short-page heuristic
        if self.declared_total is not None:
            return self.seen >= self.declared_total
        return page.item_count < self.page_size

    def advance(self) -> None:
        self.page += 1


def match_display_name(name: str) -> RecordPredicate:
    """Case-insensitive username match. Blank names never match."""
    wanted = name.strip().casefold()

    def predicate(record: AffiliateRecord) -> bool:
        if not wanted or not record.display_name:
            return False
        return record.display_name.strip().casefold() == wanted

    return predicate


def match_referral_code(code: str) -> RecordPredicate:
    """Exact referral-code match. Records without a code never match."""
    wanted = code.strip()

    def predicate(record: AffiliateRecord) -> bool:
        if not wanted or record.referral_code is None:
            return False
        return record.referral_code == wanted

    return predicate


class AffiliateResolver:
    """Drive a :class:`PageFetcher` page by page over the affiliate directory."""

    def __init__(
        self,
        fetcher: PageFetcher,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        record_paths: Iterable[KeyPath] | None = None,
        flatten_nested: bool = False,
    ) -> None:
        self._fetcher = fetcher
        self._page_size = page_size
        self._record_paths = tuple(record_paths or RECORD_ARRAY_CANDIDATES)
        self._flatten_nested = flatten_nested

    def _normalize(self, result: PageFetchResult) -> AffiliatePage:
        return normalize_page(
            result.page,
            result.payload,
            candidates=self._record_paths,
            flatten_nested=self._flatten_nested,
        )

    async def list_all(self) -> list[AffiliateRecord]:
        """Materialize every record, returning partial results on fetch failure."""
        state = PaginationState(page_size=self._page_size)
        records: list[AffiliateRecord] = []

        while True:
            result = await self._fetcher.fetch_page(state.page)
            if not result.ok:
                log.warning(
                    "Stopping affiliate listing at page %d (%s); returning %d records",
                    state.page,
                    result.status,
                    len(records),
                )
                return records

            page = self._normalize(result)
            if not page.shape_valid:
                log.warning(
                    "Affiliate page %d has no record array; ending listing",
                    state.page,
                )
            records.extend(page.records)
            state.record(page)
            if state.is_exhausted(page):
                return records
            state.advance()

    async def search(self, predicate: RecordPredicate) -> SearchResult:
        """Return the first record satisfying *predicate*, fetching no further."""
        state = PaginationState(page_size=self._page_size)

        while True:
            result = await self._fetcher.fetch_page(state.page)
            if not result.ok:
                return SearchResult(
                    status="error", reason=FETCH_FAILED, pages_fetched=state.page
                )

            page = self._normalize(result)
            if not page.shape_valid:
                log.error("Affiliate page %d has an unrecognised shape", state.page)
                return SearchResult(
                    status="error", reason=INVALID_RESPONSE, pages_fetched=state.page
                )

            for record in page.records:
                if predicate(record):
                    return SearchResult(
                        status="found", record=record, pages_fetched=state.page
                    )

            state.record(page)
            if state.is_exhausted(page):
                return SearchResult(status="not_found", pages_fetched=state.page)
            state.advance()
