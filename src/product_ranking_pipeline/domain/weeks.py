"""Week bucketing for ranking snapshots.

Weeks run Monday 00:00:00.000 to Sunday 23:59:59.999 in the timezone of the
datetime passed in (naive datetimes are read as UTC). Week identifiers use the
ISO year and ISO week number, e.g. ``2026-W07``, so sorting identifiers as
strings sorts them chronologically.

Usage example:
    from datetime import UTC, datetime

    from product_ranking_pipeline.domain.weeks import week_identifier, week_start

    now = datetime(2026, 10, 14, 15, 0, tzinfo=UTC)
    assert week_identifier(now) == "2026-W42"
    assert week_start(now).weekday() == 0
"""

from __future__ import annotations

import re
from datetime import UTC, datetime, timedelta

from ..exceptions import WeekIdentifierError

WEEK_SPAN = timedelta(days=6, hours=23, minutes=59, seconds=59, milliseconds=999)

_WEEK_ID_PATTERN = re.compile(r"(\d{4})-W(\d{2})")


def _as_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def week_start(value: datetime) -> datetime:
    """Return Monday 00:00:00.000 of the week containing ``value``."""
    moment = _as_aware(value)
    midnight = moment.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight - timedelta(days=midnight.weekday())


def week_end(value: datetime) -> datetime:
    """Return Sunday 23:59:59.999 of the week containing ``value``."""
    return week_start(value) + WEEK_SPAN


def week_identifier(value: datetime) -> str:
    """Return the sortable ``YYYY-Www`` identifier for the week containing ``value``."""
    iso = _as_aware(value).isocalendar()
    return f"{iso.year:04d}-W{iso.week:02d}"


def previous_week_identifier(value: datetime) -> str:
    """Return the identifier of the week before the one containing ``value``."""
    return week_identifier(_as_aware(value) - timedelta(days=7))


def is_week_identifier(value: str) -> bool:
    return _WEEK_ID_PATTERN.fullmatch(value) is not None


def parse_week_identifier(value: str) -> datetime:
    """Return the UTC Monday 00:00 that starts week ``value``."""
    match = _WEEK_ID_PATTERN.fullmatch(value.strip())
    if match is None:
        raise WeekIdentifierError(value)
    try:
        monday = datetime.fromisocalendar(int(match.group(1)), int(match.group(2)), 1)
    except ValueError as exc:
        raise WeekIdentifierError(value) from exc
    return monday.replace(tzinfo=UTC)
