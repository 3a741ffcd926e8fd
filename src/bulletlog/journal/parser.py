"""Parse ``@date`` mentions out of entry text.

Supported mentions (case-insensitive)::

    @3/15/2026  @3-15-2026   full date (month/day/year)
    @3/15       @march-15    month and day, next occurrence
    @march-2026 @mar-2026    first of that month and year
    @march      @sept        first of that month, next occurrence

"Next occurrence" means this year unless the month has already started
(or passed), in which case next year.
"""

from __future__ import annotations

import re
from datetime import datetime

_MONTHS = {
    "january": 1, "february": 2, "march": 3, "april": 4, "may": 5, "june": 6,
    "july": 7, "august": 8, "september": 9, "october": 10, "november": 11, "december": 12,
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "jun": 6, "jul": 7, "aug": 8,
    "sep": 9, "sept": 9, "oct": 10, "nov": 11, "dec": 12,
}  # fmt: skip

_MENTION_RE = re.compile(r"@([\w/-]+)")
_FULL_DATE_RE = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{4})$")
_MONTH_DAY_RE = re.compile(r"^(\d{1,2})[/-](\d{1,2})$")


def _make_date(year: int, month: int, day: int) -> datetime | None:
    try:
        return datetime(year, month, day)
    except ValueError:
        return None


def _parse_month(text: str) -> int | None:
    if text.isdigit():
        month = int(text)
        return month if 1 <= month <= 12 else None
    return _MONTHS.get(text.lower())


def _next_occurrence_year(month: int, reference: datetime) -> int:
    if month == reference.month:
        return reference.year + 1 if reference.day > 1 else reference.year
    return reference.year + 1 if month < reference.month else reference.year


def parse_mention(mention: str, reference: datetime) -> datetime | None:
    """Resolve one mention body (without the ``@``) to a date, or None."""
    mention = mention.lower().rstrip("-/")

    m = _FULL_DATE_RE.match(mention)
    if m:
        return _make_date(int(m.group(3)), int(m.group(1)), int(m.group(2)))

    m = _MONTH_DAY_RE.match(mention)
    if m:
        month, day = int(m.group(1)), int(m.group(2))
        return _make_date(_next_occurrence_year(month, reference), month, day)

    parts = mention.split("-")
    if len(parts) == 2 and parts[1].isdigit():
        month = _parse_month(parts[0])
        if month is None:
            return None
        number = int(parts[1])
        if len(parts[1]) == 4:
            return _make_date(number, month, 1)
        return _make_date(_next_occurrence_year(month, reference), month, number)

    if len(parts) == 1:
        month = _parse_month(mention)
        if month is not None and not mention.isdigit():
            return _make_date(_next_occurrence_year(month, reference), month, 1)
    return None


def parse_future_date(text: str, reference: datetime | None = None) -> tuple[str, datetime | None]:
    """Extract the first ``@date`` mention from *text* that resolves to a date.

    Mentions that are not dates (``bob@work``) are left in the text.

    Returns:
        (clean_text, scheduled_date). When no mention parses, the text is
        returned unchanged with ``None``.
    """
    reference = reference or datetime.now()
    for match in _MENTION_RE.finditer(text):
        scheduled = parse_mention(match.group(1), reference)
        if scheduled is not None:
            break
    else:
        return text, None

    clean = text[: match.start()] + text[match.end() :]
    clean = re.sub(r"\s{2,}", " ", clean).strip()
    return clean, scheduled
