"""Market valuation of holdings against a live price map."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

from .portfolio import (
    DEFAULT_PROFIT_WINDOWS,
    ZERO,
    Holding,
    Transaction,
    calculate_period_profits,
    get_holdings,
)
from .pricingdata import StockPrice


class PriceSource(Enum):
    """Where the price used to value a holding came from."""

    LIVE = "live"
    CACHED = "cached"
    COST = "cost"


@dataclass(frozen=True)
class HoldingValuation:
    """A holding valued at its current (or fallback) price."""

    holding: Holding
    current_price: Decimal
    price_source: PriceSource
    change: Decimal = ZERO
    change_percent: Decimal = ZERO

    @property
    def symbol(self) -> str:
        return self.holding.symbol

    @property
    def invested(self) -> Decimal:
        return self.holding.quantity * self.holding.avg_price

    @property
    def market_value(self) -> Decimal:
        return self.holding.quantity * self.current_price

    @property
    def unrealized_pnl(self) -> Decimal:
        return (self.current_price - self.holding.avg_price) * self.holding.quantity

    def to_dict(self) -> dict[str, Any]:
        data = self.holding.to_dict()
        data.update({
            "current_price": float(self.current_price),
            "price_source": self.price_source.value,
            "change": float(self.change),
            "change_percent": float(self.change_percent),
            "market_value": float(self.market_value),
            "unrealized_pnl": float(self.unrealized_pnl),
        })
        return data


@dataclass(frozen=True)
class PortfolioValuation:
    """Valued holdings plus portfolio-level totals."""

    holdings: list[HoldingValuation]
    stale_symbols: list[str] = field(default_factory=list)

    @property
    def is_stale(self) -> bool:
        """True when any position still held (long or oversold) was not valued at a live price."""
        return bool(self.stale_symbols)

    @property
    def total_invested(self) -> Decimal:
        return sum((h.invested for h in self.holdings), ZERO)

    @property
    def total_current_value(self) -> Decimal:
        return sum((h.market_value for h in self.holdings), ZERO)

    @property
    def total_unrealized_pnl(self) -> Decimal:
        return self.total_current_value - self.total_invested

    @property
    def total_realized_pnl(self) -> Decimal:
        return sum((h.holding.realized_pnl for h in self.holdings), ZERO)

    @property
    def total_pnl(self) -> Decimal:
        return self.total_unrealized_pnl + self.total_realized_pnl

    def to_dict(self) -> dict[str, Any]:
        return {
            "holdings": [h.to_dict() for h in self.holdings],
            "total_invested": float(self.total_invested),
            "total_current_value": float(self.total_current_value),
            "total_unrealized_pnl": float(self.total_unrealized_pnl),
            "total_realized_pnl": float(self.total_realized_pnl),
            "total_pnl": float(self.total_pnl),
            "is_stale": self.is_stale,
            "stale_symbols": list(self.stale_symbols),
        }


def value_holding(holding: Holding, quote: StockPrice | None) -> HoldingValuation:
    """Value a single holding, falling back to its average price when unpriced."""
    if quote is None or not quote.price:
        return HoldingValuation(
            holding=holding,
            current_price=holding.avg_price,
            price_source=PriceSource.COST,
        )

    return HoldingValuation(
        holding=holding,
        current_price=quote.price,
        price_source=PriceSource.CACHED if quote.is_stale else PriceSource.LIVE,
        change=quote.change,
        change_percent=quote.change_percent,
    )


def value_portfolio(
    holdings: Iterable[Holding],
    prices: dict[str, StockPrice] | None,
) -> PortfolioValuation:
    """
    Value holdings against a live price map.

    A missing or empty price map is not an error: unpriced holdings are valued
    at their average price (zero unrealized P&L) and, when a position is
    still held, listed in ``stale_symbols``. Cached quotes also count as stale.
    Oversold holdings have a zero average price, so they are only meaningful
    with a live quote.

    Args:
        holdings: Projected holdings of one account.
        prices: Mapping of symbol to StockPrice, possibly partial or empty.

    Returns:
        A PortfolioValuation listing per-holding values and totals.
    """
    prices = prices or {}
    valued: list[HoldingValuation] = []
    stale_symbols: list[str] = []

    for holding in holdings:
        valuation = value_holding(holding, prices.get(holding.symbol))
        if holding.quantity != 0 and valuation.price_source is not PriceSource.LIVE:
            stale_symbols.append(holding.symbol)
        valued.append(valuation)

    return PortfolioValuation(holdings=valued, stale_symbols=stale_symbols)


@dataclass(frozen=True)
class AccountSummary:
    """Everything the report and the summary endpoint show for one account."""

    valuation: PortfolioValuation
    period_profits: dict[int, Decimal]

    def to_dict(self) -> dict[str, Any]:
        data = self.valuation.to_dict()
        data["period_profits"] = {str(months): float(profit) for months, profit in self.period_profits.items()}
        return data


def summarize_account(
    transactions: Iterable[Transaction],
    prices: dict[str, StockPrice] | None,
    as_of: date | None = None,
    windows: Iterable[int] = DEFAULT_PROFIT_WINDOWS,
) -> AccountSummary:
    """Value an account's holdings and compute its trailing-window profits."""
    ledger = list(transactions)
    return AccountSummary(
        valuation=value_portfolio(get_holdings(ledger), prices),
        period_profits=calculate_period_profits(ledger, windows, as_of),
    )
