"""Market data service for historical prices and exchange rates."""

import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Optional

from autoinvest.domain.models import Market
from autoinvest.providers.market_data_provider import ExchangeRateProvider, PriceProvider

logger = logging.getLogger(__name__)


def _usable(value) -> Optional[Decimal]:
    """Coerce a provider value to a positive finite Decimal, else None."""
    if value is None:
        return None
    try:
        number = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite() or number <= 0:
        return None
    return number


class MarketDataService:
    """
    Service for fetching historical prices and FX rates.

    Wraps providers with graceful degradation: every lookup is a single
    attempt, and a provider failure or unusable value comes back as None.
    Usable FX rates are cached per (date, from, to) for the service's
    lifetime; a missing rate is asked for again on the next call.
    """

    def __init__(
        self,
        price_provider: PriceProvider,
        fx_provider: ExchangeRateProvider,
    ):
        self._price_provider = price_provider
        self._fx_provider = fx_provider
        self._fx_cache: dict[tuple[date, str, str], Decimal] = {}

    def get_price(
        self,
        symbol: str,
        day: date,
        market: Optional[Market] = None,
        method: str = "auto",
    ) -> Optional[Decimal]:
        """Historical price for ``symbol`` on ``day``, or None."""
        try:
            raw = self._price_provider.get_historical_price(symbol, day, method=method, market=market)
        except Exception as exc:
            logger.warning("Price lookup failed for %s on %s: %s", symbol, day, exc)
            return None

        price = _usable(raw)
        if price is None and raw is not None:
            logger.warning("Discarding unusable price %r for %s on %s", raw, symbol, day)
        return price

    def get_exchange_rate(self, day: date, from_currency: str, to_currency: str) -> Optional[Decimal]:
        """Units of ``to_currency`` per ``from_currency`` on ``day``, or None."""
        from_currency = from_currency.upper()
        to_currency = to_currency.upper()
        if from_currency == to_currency:
            return Decimal("1")

        key = (day, from_currency, to_currency)
        if key in self._fx_cache:
            return self._fx_cache[key]

        try:
            rate = _usable(self._fx_provider.get_historical_exchange_rate(day, from_currency, to_currency))
        except Exception as exc:
            logger.warning(
                "FX lookup failed for %s/%s on %s: %s", from_currency, to_currency, day, exc
            )
            return None

        if rate is not None:
            self._fx_cache[key] = rate
        return rate
