"""
Typed records for Yahoo Finance quote pages.

All records are frozen dataclasses whose defaults are the zero values used
when a field cannot be populated (empty text, ``0.0``, empty tuple). A record
is created fresh by one binding pass and never mutated afterwards; the
assembler combines section records into a `StockRecord` in one merge step.

Display-form values that carry their own unit and are mostly read by humans
(revenue "391.04B", ranges "164.08 - 237.23", dates) are kept as text; ratios,
percentages and per-share figures are floats.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from mxm_quotekraken.common.types import JSONLike
from mxm_quotekraken.extraction.tables import StatementRow, StatementTable


@dataclass(frozen=True)
class Profile:
    name: str = ""
    sector: str = ""
    description: str = ""
    upcoming_events: tuple[str, ...] = ()
    recent_events: tuple[str, ...] = ()


@dataclass(frozen=True)
class NewsItem:
    title: str = ""
    summary: str = ""
    ticker: str = ""
    time: str = ""
    image: str = ""


@dataclass(frozen=True)
class ValuationMetrics:
    """Valuation measures, one display value per period column."""

    periods: tuple[str, ...] = ()
    market_cap: tuple[str, ...] = ()
    enterprise_value: tuple[str, ...] = ()
    trailing_pe: tuple[str, ...] = ()
    forward_pe: tuple[str, ...] = ()
    peg_ratio: tuple[str, ...] = ()
    price_sales: tuple[str, ...] = ()
    price_book: tuple[str, ...] = ()
    enterprise_value_revenue: tuple[str, ...] = ()
    enterprise_value_ebitda: tuple[str, ...] = ()


@dataclass(frozen=True)
class Statistics:
    # Financial highlights
    fiscal_year_end: str = ""
    most_recent_quarter: str = ""
    profit_margin: float = 0.0
    operating_margin: float = 0.0
    return_on_assets: float = 0.0
    return_on_equity: float = 0.0
    revenue: str = ""
    revenue_per_share: float = 0.0
    quarterly_revenue_growth: float = 0.0
    ebitda: str = ""
    net_income_available_to_common: str = ""
    diluted_eps: float = 0.0
    quarterly_earnings_growth: str = ""
    total_cash: str = ""
    total_cash_per_share: float = 0.0
    total_debt: str = ""
    total_debt_equity: float = 0.0
    current_ratio: float = 0.0
    book_value_per_share: float = 0.0
    operating_cash_flow: str = ""
    levered_free_cash_flow: str = ""

    # Trading information
    beta: float = 0.0
    fifty_two_week_range: str = ""
    sp500_52_week_change: float = 0.0
    fifty_two_week_high: float = 0.0
    fifty_two_week_low: float = 0.0
    fifty_day_moving_average: float = 0.0
    two_hundred_day_moving_average: float = 0.0
    avg_volume_3_month: str = ""
    avg_volume_10_day: str = ""
    shares_outstanding: float = 0.0
    implied_shares_outstanding: float = 0.0
    float_shares: float = 0.0
    percent_held_by_insiders: float = 0.0
    percent_held_by_institutions: float = 0.0

    # Dividends & splits
    forward_annual_dividend_rate: float = 0.0
    forward_annual_dividend_yield: float = 0.0
    trailing_annual_dividend_rate: float = 0.0
    trailing_annual_dividend_yield: float = 0.0
    five_year_avg_dividend_yield: float = 0.0
    payout_ratio: float = 0.0
    ex_dividend_date: str = ""
    last_split_factor: str = ""
    last_split_date: str = ""

    valuation: ValuationMetrics = field(default_factory=ValuationMetrics)


@dataclass(frozen=True)
class HistoricalPoint:
    date: str = ""
    open: float = 0.0
    high: float = 0.0
    low: float = 0.0
    close: float = 0.0
    adj_close: float = 0.0
    volume: int = 0


@dataclass(frozen=True)
class Financial:
    income_statement: StatementTable = field(default_factory=StatementTable)
    balance_sheet: StatementTable = field(default_factory=StatementTable)


@dataclass(frozen=True)
class StockRecord:
    symbol: str = ""
    profile: Profile = field(default_factory=Profile)
    news: tuple[NewsItem, ...] = ()
    statistics: Statistics = field(default_factory=Statistics)
    history: tuple[HistoricalPoint, ...] = ()
    financial: Financial = field(default_factory=Financial)


def _jsonable(value: Any) -> JSONLike:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)


def to_json(record: Any) -> JSONLike:
    """Convert a record tree to JSON-friendly dicts and lists."""
    if dataclasses.is_dataclass(record) and not isinstance(record, type):
        return _jsonable(dataclasses.asdict(record))
    return _jsonable(record)


__all__ = [
    "Profile",
    "NewsItem",
    "ValuationMetrics",
    "Statistics",
    "HistoricalPoint",
    "StatementRow",
    "StatementTable",
    "Financial",
    "StockRecord",
    "to_json",
]
