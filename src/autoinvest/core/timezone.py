"""Timezone and calendar-date helpers for the supported markets."""

from datetime import date, datetime
from typing import Union

import pytz
from dateutil import parser as date_parser

from autoinvest.domain.models.enums import Market

MARKET_TIMEZONES: dict[Market, pytz.BaseTzInfo] = {
    Market.US: pytz.timezone("America/New_York"),
    Market.KR: pytz.timezone("Asia/Seoul"),
    Market.GLOBAL: pytz.UTC,
}


def now_utc() -> datetime:
    """Return the current instant in UTC."""
    return datetime.now(pytz.UTC)


def now_in_market(market: Market) -> datetime:
    """Return the current wall-clock time in the market's timezone."""
    return datetime.now(MARKET_TIMEZONES[Market(market)])


def market_today(market: Market) -> date:
    """Return today's calendar date as seen by the market."""
    return now_in_market(market).date()


def parse_iso_date(value: Union[str, date, datetime]) -> date:
    """
    Parse an ISO-ish date string (or pass a date through).

    Datetimes are truncated to their calendar date without conversion.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date_parser.isoparse(value.strip()).date()
