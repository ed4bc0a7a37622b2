"""Due-date resolution for recurring auto-invest schedules."""

from datetime import date
from typing import Iterator, Optional

from autoinvest.domain.models import Frequency, Market
from autoinvest.providers.trading_calendar import TradingCalendar

# Bounds every walk so a malformed schedule cannot loop forever.
DEFAULT_ITERATION_CAP = 5000


def iter_trading_dates(
    start: date,
    frequency: Frequency,
    market: Market,
    calendar: TradingCalendar,
    iteration_cap: int = DEFAULT_ITERATION_CAP,
) -> Iterator[date]:
    """
    Yield the schedule's execution dates in ascending order.

    The start is snapped forward to a trading day; each following date is
    one frequency step from the previous *snapped* date, snapped again.
    Unknown frequencies raise ValueError before anything is yielded.
    """
    frequency = Frequency(frequency)
    pointer = calendar.next_trading_day(start, market)
    previous: Optional[date] = None
    for _ in range(iteration_cap):
        if previous is None or pointer > previous:
            yield pointer
            previous = pointer
        pointer = calendar.next_trading_day(calendar.advance(pointer, frequency), market)


def resolve_next_due(
    effective_from: date,
    frequency: Frequency,
    market: Market,
    today: date,
    last_executed: Optional[date],
    calendar: TradingCalendar,
    iteration_cap: int = DEFAULT_ITERATION_CAP,
) -> Optional[date]:
    """
    Return ``today`` if an investment is due today, else None.

    Walks the schedule's trading dates up to ``today`` and keeps the most
    recent one strictly after ``last_executed``. A day missed by an earlier
    sweep therefore never shifts the following cycle, and a day already
    executed is never returned twice.
    """
    frequency = Frequency(frequency)
    if effective_from > today:
        return None

    candidate: Optional[date] = None
    for day in iter_trading_dates(effective_from, frequency, market, calendar, iteration_cap):
        if day > today:
            break
        if last_executed is None or day > last_executed:
            candidate = day

    return candidate if candidate == today else None


def scheduled_trading_dates(
    start: date,
    frequency: Frequency,
    market: Market,
    end: date,
    calendar: TradingCalendar,
    iteration_cap: int = DEFAULT_ITERATION_CAP,
) -> list[date]:
    """List every execution date of a schedule inside ``[start, end]``."""
    dates: list[date] = []
    for day in iter_trading_dates(start, frequency, market, calendar, iteration_cap):
        if day > end:
            break
        dates.append(day)
    return dates
