"""Caller-facing verification and listing operations."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Final, Literal

from .affiliate_api import AffiliateApiClient
from .config import AffiliateApiConfig, MatchMode
from .normalization import AffiliateRecord
from .page_cache import CachedPageFetcher
from .resolver import (
    INVALID_RESPONSE,
    AffiliateResolver,
    PageFetcher,
    match_display_name,
    match_referral_code,
)

log: Final = logging.getLogger("academy-gateway")

FailureReason = Literal[
    "not_found", "fetch_failed", "invalid_response", "empty_identifier"
]


@dataclass(slots=True)
class VerificationResult:
    success: bool
    record: AffiliateRecord | None = None
    reason: FailureReason | None = None


def build_resolver(config: AffiliateApiConfig) -> AffiliateResolver:
    """Wire the API client, optional page cache and resolver from config."""
    fetcher: PageFetcher = AffiliateApiClient(config)
    if config.cache_ttl_seconds and config.cache_ttl_seconds > 0:
        fetcher = CachedPageFetcher(fetcher, config.cache_ttl_seconds)
    return AffiliateResolver(
        fetcher,
        page_size=config.page_size,
        record_paths=config.record_paths,
        flatten_nested=config.flatten_nested,
    )


def normalize_identifier(identifier: str, mode: MatchMode = "username") -> str:
    """Trim user input; referral codes are compared upper-case."""
    identifier = identifier.strip()
    if mode == "referral_code":
        identifier = identifier.upper()
    return identifier


async def verify(
    resolver: AffiliateResolver,
    identifier: str,
    mode: MatchMode = "username",
) -> VerificationResult:
    identifier = normalize_identifier(identifier, mode)
    if not identifier:
        return VerificationResult(success=False, reason="empty_identifier")

    if mode == "referral_code":
        predicate = match_referral_code(identifier)
    else:
        predicate = match_display_name(identifier)

    result = await resolver.search(predicate)
    if result.found:
        log.info(
            "Verified %s on affiliate page %d", identifier, result.pages_fetched
        )
        return VerificationResult(success=True, record=result.record)

    if result.status == "not_found":
        log.info(
            "No affiliate matched %s after %d pages", identifier, result.pages_fetched
        )
        return VerificationResult(success=False, reason="not_found")

    log.error("Verification lookup for %s failed: %s", identifier, result.reason)
    if result.reason == INVALID_RESPONSE:
        return VerificationResult(success=False, reason="invalid_response")
    return VerificationResult(success=False, reason="fetch_failed")


async def list_referrals(resolver: AffiliateResolver) -> list[AffiliateRecord]:
    return await resolver.list_all()
