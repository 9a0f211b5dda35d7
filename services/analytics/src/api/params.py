"""Query-string time window and interval parsing."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Query
from pydantic import ValidationError
from src.core.config import settings
from src.domain.errors import MalformedRequestError
from src.domain.models import TimeWindow
from src.services.timeseries import MIN_INTERVAL


def parse_timestamp(raw: str, field: str) -> datetime:
    """Parse an RFC3339 timestamp; the offset (or ``Z``) is mandatory."""
    value = raw.strip()
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as e:
        raise MalformedRequestError(f"{field}: not an RFC3339 timestamp: {raw!r}") from e
    if parsed.tzinfo is None:
        raise MalformedRequestError(f"{field}: timestamp must include an offset")
    try:
        return parsed.astimezone(timezone.utc)
    except OverflowError as e:
        raise MalformedRequestError(f"{field}: timestamp out of range: {raw!r}") from e


def parse_window(
    start: Optional[str],
    end: Optional[str],
    default_hours: int,
    now: Optional[datetime] = None,
) -> TimeWindow:
    """Build the query window, defaulting to the last ``default_hours``.

    A lone ``end`` looks back ``default_hours``; a lone ``start`` runs to now.
    """
    now = now or datetime.now(timezone.utc)
    end_at = parse_timestamp(end, "end") if end else now
    if start:
        start_at = parse_timestamp(start, "start")
    else:
        try:
            start_at = end_at - timedelta(hours=default_hours)
        except OverflowError as e:
            raise MalformedRequestError("end: too early for the default window") from e
    try:
        return TimeWindow(start=start_at, end=end_at)
    except (ValidationError, OverflowError) as e:
        raise MalformedRequestError("start must be before end") from e


def time_window(
    start: Optional[str] = Query(None, description="RFC3339 start, default now-24h"),
    end: Optional[str] = Query(None, description="RFC3339 end, default now"),
) -> TimeWindow:
    return parse_window(start, end, settings.default_window_hours)


def parse_interval(raw: Optional[str]) -> Optional[timedelta]:
    """Bucket size in whole minutes; None when omitted (auto-sized later)."""
    if raw is None or not raw.strip():
        return None
    try:
        interval = timedelta(minutes=int(raw.strip()))
    except (ValueError, OverflowError) as e:
        raise MalformedRequestError(f"interval: not a number of minutes: {raw!r}") from e
    if interval < MIN_INTERVAL:
        raise MalformedRequestError(
            f"interval: must be at least {MIN_INTERVAL.seconds // 60} minutes"
        )
    return interval


def series_interval(
    interval: Optional[str] = Query(
        None, description="bucket size in minutes; sized from the window if omitted"
    ),
) -> Optional[timedelta]:
    return parse_interval(interval)
