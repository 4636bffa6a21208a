"""Opening date normalisation for free-text "open since" cells."""

from __future__ import annotations

from datetime import date, datetime

from dateutil import parser as date_parser

# Two defaults that differ in every component. A component that comes out the
# same under both was read from the phrase.
_CONTRAST_DEFAULTS = (datetime(2000, 1, 1), datetime(2004, 12, 28))

_EXTRA_MONTH_NAMES = (
    ("janvier", "januari"),
    ("février", "fevrier", "februari"),
    ("mars", "maart", "mrt"),
    ("avril",),
    ("mai", "mei"),
    ("juin", "juni"),
    ("juillet", "juli"),
    ("août", "aout", "augustus"),
    ("septembre",),
    ("octobre", "oktober", "okt"),
    ("novembre",),
    ("décembre", "decembre"),
)


class OpeningDateParserInfo(date_parser.parserinfo):
    """English month names plus the French and Dutch ones used in the exports."""

    MONTHS = [
        base + extra for base, extra in zip(date_parser.parserinfo.MONTHS, _EXTRA_MONTH_NAMES)
    ]


_PARSER_INFO = OpeningDateParserInfo()


def _fuzzy_parse(phrase: str, default: datetime) -> datetime:
    return date_parser.parse(phrase, parserinfo=_PARSER_INFO, fuzzy=True, default=default)


def parse_opening_date(phrase: str | None, *, today: date | None = None) -> date | None:
    if phrase is None or not phrase.strip():
        return None
    try:
        first, second = (_fuzzy_parse(phrase, default) for default in _CONTRAST_DEFAULTS)
    except (date_parser.ParserError, OverflowError, ValueError):
        return None

    has_year = first.year == second.year and first.year >= 1000
    has_month = first.month == second.month
    # A bare number ("2 years ago", "3 shops") only ever fills the day or a
    # short year.
    if not has_year and not has_month:
        return None

    today = today or date.today()
    year = first.year if has_year else today.year
    month = first.month if has_month else 1
    day = first.day if has_month and first.day == second.day else 1
    try:
        return date(year, month, day)
    except ValueError:
        return None


def normalize_opening_date(phrase: str | None, *, today: date | None = None) -> str | None:
    """Return ``YYYY-MM-DD`` for ``phrase`` or None when it holds no date.

    Missing parts fall back to the first day/month, so "March 2018" becomes
    2018-03-01 and "2019" becomes 2019-01-01. A phrase needs a year or a
    month name to count as a date.
    """
    parsed = parse_opening_date(phrase, today=today)
    if parsed is None:
        return None
    return parsed.isoformat()
