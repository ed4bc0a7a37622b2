"""Trading-calendar protocol and the default weekday calendar."""

import re
from datetime import date, timedelta
from typing import Iterable, Mapping, Optional, Protocol

from dateutil.relativedelta import relativedelta

from autoinvest.core.timezone import market_today
from autoinvest.domain.models.enums import Currency, Frequency, Market

_FREQUENCY_STEPS: dict[Frequency, relativedelta] = {
    Frequency.DAILY: relativedelta(days=1),
    Frequency.WEEKLY: relativedelta(weeks=1),
    Frequency.BIWEEKLY: relativedelta(weeks=2),
    Frequency.MONTHLY: relativedelta(months=1),
    Frequency.QUARTERLY: relativedelta(months=3),
}

# A market is never closed for longer than this many consecutive days.
_SNAP_GUARD_DAYS = 14

_KR_SYMBOL = re.compile(r"^[0-9]{4,6}$")


class TradingCalendar(Protocol):
    """
    Protocol for market calendars.

    All dates are calendar dates in the market's own timezone.
    """

    def is_trading_day(self, day: date, market: Market) -> bool:
        """Return True if the market is open on ``day``."""
        ...

    def next_trading_day(self, day: date, market: Market) -> date:
        """Return ``day`` if it is a trading day, else the next one."""
        ...

    def previous_trading_day(self, day: date, market: Market) -> date:
        """Return ``day`` if it is a trading day, else the previous one."""
        ...

    def advance(self, day: date, frequency: Frequency) -> date:
        """Step ``day`` forward by one calendar period of ``frequency``."""
        ...

    def today(self, market: Market) -> date:
        """Return today's date in the market's timezone."""
        ...


def advance_by_frequency(day: date, frequency: Frequency) -> date:
    """
    Step a date by one frequency period.

    Month-based steps clamp to the end of shorter months (Jan 31 -> Feb 29).
    Raises ValueError for anything outside the Frequency enum.
    """
    return day + _FREQUENCY_STEPS[Frequency(frequency)]


def determine_market(
    market: Optional[Market] = None,
    currency: Optional[str] = None,
    symbol: Optional[str] = None,
) -> Market:
    """Resolve the market for a holding whose market may be unset."""
    if market:
        return Market(market)
    if currency == Currency.KRW.value:
        return Market.KR
    if symbol and _KR_SYMBOL.match(symbol):
        return Market.KR
    return Market.US


class WeekdayTradingCalendar:
    """
    Calendar where every weekday is a trading day except configured holidays.

    GLOBAL uses UTC dates and never has holidays unless configured.
    """

    def __init__(self, holidays: Optional[Mapping[Market, Iterable[date]]] = None):
        self._holidays: dict[Market, frozenset[date]] = {
            Market(m): frozenset(days) for m, days in (holidays or {}).items()
        }

    def is_trading_day(self, day: date, market: Market) -> bool:
        if day.weekday() >= 5:
            return False
        return day not in self._holidays.get(Market(market), frozenset())

    def next_trading_day(self, day: date, market: Market) -> date:
        return self._snap(day, market, timedelta(days=1))

    def previous_trading_day(self, day: date, market: Market) -> date:
        return self._snap(day, market, timedelta(days=-1))

    def advance(self, day: date, frequency: Frequency) -> date:
        return advance_by_frequency(day, frequency)

    def today(self, market: Market) -> date:
        return market_today(market)

    def _snap(self, day: date, market: Market, step: timedelta) -> date:
        current = day
        for _ in range(_SNAP_GUARD_DAYS):
            if self.is_trading_day(current, market):
                return current
            current += step
        return current


def calendar_from_settings(settings) -> WeekdayTradingCalendar:
    """Build the weekday calendar with the configured market holidays."""
    return WeekdayTradingCalendar(
        {
            Market.US: settings.us_holidays,
            Market.KR: settings.kr_holidays,
        }
    )
