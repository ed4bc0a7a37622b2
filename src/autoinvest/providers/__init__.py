"""Market collaborators: trading calendar, prices, exchange rates."""

from autoinvest.providers.trading_calendar import (
    TradingCalendar,
    WeekdayTradingCalendar,
    advance_by_frequency,
    calendar_from_settings,
    determine_market,
)
from autoinvest.providers.market_data_provider import PriceProvider, ExchangeRateProvider
from autoinvest.providers.stub_provider import StubPriceProvider, StubExchangeRateProvider

__all__ = [
    "TradingCalendar",
    "WeekdayTradingCalendar",
    "advance_by_frequency",
    "calendar_from_settings",
    "determine_market",
    "PriceProvider",
    "ExchangeRateProvider",
    "StubPriceProvider",
    "StubExchangeRateProvider",
]
