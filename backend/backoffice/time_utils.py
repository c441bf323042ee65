from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


DEFAULT_TITLE_FORMAT = "%d/%m/%Y %H:%M"


def utcnow() -> datetime:
    """Current UTC time without tzinfo, the form stored in every DateTime column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def header_title(now: Optional[datetime] = None, fmt: str = DEFAULT_TITLE_FORMAT) -> str:
    """
    Label for a purchase/sale header, e.g. "19/10/2026 14:05".

    Headers are titled by the moment they were committed; listings search on it.
    """
    return (now or utcnow()).strftime(fmt)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """'2026-10-19T14:05:00Z' for API payloads. Naive values are taken as UTC."""
    if dt is None:
        return None
    aware = dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)
    return aware.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
