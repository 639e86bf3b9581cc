"""Configuration helpers for the affiliate gateway."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Final, Literal

DEFAULT_API_URL: Final[str] = "https://api.coinwave.gg/users/me/referrals"
DEFAULT_PAGE_SIZE: Final[int] = 100
DEFAULT_TIMEOUT_SECONDS: Final[float] = 10.0

MatchMode = Literal["username", "referral_code"]
MATCH_MODES: Final[tuple[str, ...]] = ("username", "referral_code")

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def env_bool(name: str, *, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    lowered = raw.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    return default


def env_int(name: str, *, default: int | None = None) -> int | None:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def env_float(name: str, *, default: float | None = None) -> float | None:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def parse_record_paths(raw: str | None) -> tuple[tuple[str, ...], ...] | None:
    """Parse ``"data.affiliates,affiliates"`` into key paths.

    A lone ``.`` stands for the document root. Returns ``None`` when nothing
    usable was given so callers fall back to the built-in candidates.
    """
    if not raw:
        return None
    paths: list[tuple[str, ...]] = []
    for chunk in raw.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        if chunk == ".":
            paths.append(())
            continue
        paths.append(tuple(part for part in chunk.split(".") if part))
    return tuple(paths) or None


@dataclass(frozen=True)
class AffiliateApiConfig:
    session_cookie: str = field(repr=False)
    base_url: str = DEFAULT_API_URL
    page_size: int = DEFAULT_PAGE_SIZE
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    match_mode: MatchMode = "username"
    cache_ttl_seconds: float = 0.0
    flatten_nested: bool = False
    record_paths: tuple[tuple[str, ...], ...] | None = None

    def __post_init__(self) -> None:
        if self.page_size < 1:
            raise ValueError("page_size must be a positive integer")
        if self.timeout_seconds is None or not self.timeout_seconds > 0:
            raise ValueError("timeout_seconds must be greater than zero")
        if self.match_mode not in MATCH_MODES:
            raise ValueError(f"Unknown match mode: {self.match_mode!r}")


def read_affiliate_config() -> AffiliateApiConfig:
    """Load the gateway settings from the environment.

    Called once at start-up; the returned value is immutable.
    """
    match_mode = (os.getenv("AFFILIATE_MATCH_MODE") or "username").strip().lower()
    if match_mode not in MATCH_MODES:
        match_mode = "username"

    page_size = env_int("AFFILIATE_PAGE_SIZE", default=DEFAULT_PAGE_SIZE)
    if page_size is None or page_size < 1:
        page_size = DEFAULT_PAGE_SIZE

    timeout_seconds = env_float(
        "AFFILIATE_TIMEOUT_SECONDS", default=DEFAULT_TIMEOUT_SECONDS
    )
    if timeout_seconds is None or not timeout_seconds > 0:
        timeout_seconds = DEFAULT_TIMEOUT_SECONDS

    return AffiliateApiConfig(
        session_cookie=os.getenv("AFFILIATE_SESSION_COOKIE", ""),
        base_url=os.getenv("AFFILIATE_API_URL") or DEFAULT_API_URL,
        page_size=page_size,
        timeout_seconds=timeout_seconds,
        match_mode=match_mode,  # type: ignore[arg-type]
        cache_ttl_seconds=env_float("AFFILIATE_CACHE_TTL_SECONDS", default=0.0),
        flatten_nested=env_bool("AFFILIATE_FLATTEN_NESTED"),
        record_paths=parse_record_paths(os.getenv("AFFILIATE_RECORD_PATHS")),
    )
