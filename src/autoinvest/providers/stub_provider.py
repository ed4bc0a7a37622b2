"""Stub price and FX providers for offline/testing use."""

import random
from datetime import date
from decimal import Decimal
from typing import Optional

from autoinvest.domain.models.enums import Market


# Deterministic fake closes for common symbols
_STUB_PRICES: dict[str, Decimal] = {
    "AAPL": Decimal("185.50"),
    "MSFT": Decimal("378.25"),
    "NVDA": Decimal("485.25"),
    "SPY": Decimal("485.25"),
    "QQQ": Decimal("418.75"),
    "VOO": Decimal("445.10"),
    "SCHD": Decimal("76.40"),
    "005930": Decimal("71500"),
    "069500": Decimal("35200"),
}

_STUB_RATES: dict[tuple[str, str], Decimal] = {
    ("USD", "KRW"): Decimal("1325.50"),
    ("KRW", "USD"): Decimal("0.000754"),
}


class StubPriceProvider:
    """
    Stub provider with deterministic prices for offline operation.

    Known symbols get a fixed price on every date; unknown symbols get a
    seeded pseudo-random price that stays stable for the provider's lifetime.
    """

    def __init__(self, seed: int = 42):
        self._rng = random.Random(seed)
        self._generated: dict[str, Decimal] = {}

    def get_historical_price(
        self,
        symbol: str,
        day: date,
        method: str = "auto",
        market: Optional[Market] = None,
    ) -> Optional[Decimal]:
        upper_symbol = symbol.upper()
        if upper_symbol in _STUB_PRICES:
            return _STUB_PRICES[upper_symbol]
        if upper_symbol not in self._generated:
            base_price = Decimal(str(50 + self._rng.random() * 200))
            self._generated[upper_symbol] = base_price.quantize(Decimal("0.01"))
        return self._generated[upper_symbol]


class StubExchangeRateProvider:
    """Stub FX provider with fixed USD/KRW rates."""

    def get_historical_exchange_rate(
        self,
        day: date,
        from_currency: str,
        to_currency: str,
    ) -> Optional[Decimal]:
        return _STUB_RATES.get((from_currency.upper(), to_currency.upper()))
