"""Price and exchange-rate provider protocols."""

from datetime import date
from decimal import Decimal
from typing import Optional, Protocol

from autoinvest.domain.models.enums import Market


class PriceProvider(Protocol):
    """
    Protocol for historical price lookups.

    Implementations return None when no price is known for the date; they
    may raise on transport failure (callers degrade, never retry inline).
    """

    def get_historical_price(
        self,
        symbol: str,
        day: date,
        method: str = "auto",
        market: Optional[Market] = None,
    ) -> Optional[Decimal]:
        """Return the price of ``symbol`` on ``day`` (``method`` selects close/open/auto)."""
        ...


class ExchangeRateProvider(Protocol):
    """Protocol for historical FX lookups."""

    def get_historical_exchange_rate(
        self,
        day: date,
        from_currency: str,
        to_currency: str,
    ) -> Optional[Decimal]:
        """Return units of ``to_currency`` per one ``from_currency`` on ``day``."""
        ...
