"""Turn loosely-shaped affiliate directory pages into stable records.

The upstream envelope is undocumented and has changed between deployments,
so the record array is located by trying :data:`RECORD_ARRAY_CANDIDATES` in
order. Each candidate is a key path from the document root; the empty path
is the root itself.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Final

KeyPath = tuple[str, ...]

RECORD_ARRAY_CANDIDATES: Final[tuple[KeyPath, ...]] = (
    ("data", "affiliates"),
    ("affiliates",),
    ("data",),
    (),
)

DISPLAY_NAME_FIELDS: Final[tuple[KeyPath, ...]] = (
    ("username",),
    ("name",),
    ("user", "username"),
    ("user", "name"),
)

REFERRAL_CODE_FIELDS: Final[tuple[KeyPath, ...]] = (
    ("referralCode",),
    ("code",),
)

TOTAL_COUNT_FIELDS: Final[tuple[KeyPath, ...]] = (
    ("data", "total"),
    ("data", "totalCount"),
    ("data", "pagination", "total"),
    ("total",),
    ("totalCount",),
    ("pagination", "total"),
)

NESTED_REFERRALS_KEY: Final[str] = "referrals"
CODE_NOT_SET: Final[str] = "not set"

_MISSING = object()


def dig(value: Any, path: KeyPath) -> Any:
    """Follow *path* through nested mappings, returning ``_MISSING`` on a miss."""
    for key in path:
        if not isinstance(value, Mapping) or key not in value:
            return _MISSING
        value = value[key]
    return value


@dataclass(frozen=True, slots=True)
class AffiliateRecord:
    display_name: str
    referral_code: str | None
    raw: Any = field(compare=False, repr=False)

    @property
    def code_label(self) -> str:
        return self.referral_code if self.referral_code is not None else CODE_NOT_SET

    @property
    def email(self) -> str | None:
        for path in (("email",), ("user", "email")):
            value = dig(self.raw, path)
            if isinstance(value, str) and value:
                return value
        return None


@dataclass(frozen=True, slots=True)
class AffiliatePage:
    page_number: int
    records: tuple[AffiliateRecord, ...]
    total_hint: int | None = None
    item_count: int = 0
    shape_valid: bool = True


def find_record_array(
    payload: Any, candidates: Iterable[KeyPath] = RECORD_ARRAY_CANDIDATES
) -> list | None:
    """Return the first candidate that is a list, even an empty one."""
    for path in candidates:
        value = dig(payload, path)
        if isinstance(value, list):
            return value
    return None


def resolve_display_name(item: Any) -> str:
    for path in DISPLAY_NAME_FIELDS:
        value = dig(item, path)
        # whitespace-only counts as empty; the value itself is kept verbatim
        if isinstance(value, str) and value.strip():
            return value
    return ""


def resolve_referral_code(item: Any) -> str | None:
    for path in REFERRAL_CODE_FIELDS:
        value = dig(item, path)
        if value is _MISSING or value is None or value == "":
            continue
        return str(value)
    return None


def resolve_total_hint(payload: Any) -> int | None:
    for path in TOTAL_COUNT_FIELDS:
        value = dig(payload, path)
        # bool is an int subclass; a stray ``"total": true`` is not a count
        if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
            return value
    return None


def to_record(item: Any) -> AffiliateRecord:
    return AffiliateRecord(
        display_name=resolve_display_name(item),
        referral_code=resolve_referral_code(item),
        raw=item,
    )


def _flatten(items: Iterable[Any]) -> Iterable[Any]:
    for item in items:
        yield item
        children = dig(item, (NESTED_REFERRALS_KEY,))
        if isinstance(children, list):
            yield from _flatten(children)


def normalize(
    payload: Any,
    *,
    candidates: Iterable[KeyPath] = RECORD_ARRAY_CANDIDATES,
    flatten_nested: bool = False,
) -> tuple[AffiliateRecord, ...]:
    items = find_record_array(payload, candidates)
    if items is None:
        return ()
    if flatten_nested:
        return tuple(to_record(item) for item in _flatten(items))
    return tuple(to_record(item) for item in items)


def normalize_page(
    page_number: int,
    payload: Any,
    *,
    candidates: Iterable[KeyPath] = RECORD_ARRAY_CANDIDATES,
    flatten_nested: bool = False,
) -> AffiliatePage:
    """Build an :class:`AffiliatePage`, flagging pages with no record array."""
    candidates = tuple(candidates)
    items = find_record_array(payload, candidates)
    if items is None:
        return AffiliatePage(
            page_number=page_number,
            records=(),
            total_hint=resolve_total_hint(payload),
            item_count=0,
            shape_valid=False,
        )

    return AffiliatePage(
        page_number=page_number,
        records=normalize(
            payload, candidates=candidates, flatten_nested=flatten_nested
        ),
        total_hint=resolve_total_hint(payload),
        item_count=len(items),
        shape_valid=True,
    )
