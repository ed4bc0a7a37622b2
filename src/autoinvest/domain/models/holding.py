"""Holding (position) domain model."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from autoinvest.domain.models.enums import Currency, Frequency, Market


@dataclass
class AutoInvestConfig:
    """Auto-invest settings embedded in a holding."""

    is_active: bool = False
    current_schedule_id: Optional[str] = None
    frequency: Optional[Frequency] = None
    amount: Optional[Decimal] = None
    start_date: Optional[date] = None
    last_executed: Optional[date] = None
    last_updated: Optional[date] = None

    def __post_init__(self) -> None:
        if isinstance(self.frequency, str):
            self.frequency = Frequency(self.frequency)


@dataclass
class Holding:
    """
    A position in one symbol inside an owner's portfolio.

    Shares, average cost, invested capital and the valuation figures are a
    cache of the transaction log. Only the reconciliation fold writes them.
    """

    holding_id: str
    owner_id: str
    portfolio_id: str
    symbol: str
    market: Market = Market.US
    currency: Currency = Currency.USD
    shares: Decimal = field(default_factory=lambda: Decimal("0"))
    average_cost: Decimal = field(default_factory=lambda: Decimal("0"))
    total_invested: Decimal = field(default_factory=lambda: Decimal("0"))
    current_price: Decimal = field(default_factory=lambda: Decimal("0"))
    total_value: Decimal = field(default_factory=lambda: Decimal("0"))
    profit_loss: Decimal = field(default_factory=lambda: Decimal("0"))
    return_rate: Decimal = field(default_factory=lambda: Decimal("0"))
    transaction_count: int = 0
    first_transaction_date: Optional[date] = None
    last_transaction_date: Optional[date] = None
    auto_invest: Optional[AutoInvestConfig] = None
    version: int = 1
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if isinstance(self.market, str):
            self.market = Market(self.market)
        if isinstance(self.currency, str):
            self.currency = Currency(self.currency)

    @property
    def auto_invest_active(self) -> bool:
        return bool(self.auto_invest and self.auto_invest.is_active)
