"""
Versioned binding schemas for Yahoo Finance quote pages.

These tables are the single place that encodes page layout: which selector
bucket a field is read from, at which position, and as which value type. When
Yahoo reorders a table, bump the schema ``version`` and fix the positions
here; `SchemaLengthMismatch` warnings at runtime are the signal that this is
needed.

Statistics page
---------------
The financial highlights, trading information and dividends & splits tables
are scraped with one generic cell selector (``s_data``) into a flat list of
44 values. `StatCell` names every position in that list.

The valuation measures table (``v_data``) is scraped row-major: each row is a
label cell followed by `VALUATION_PERIODS` period cells; the header
(``v_period``) is an empty corner cell followed by the period labels.
"""

from __future__ import annotations

from enum import IntEnum
from types import MappingProxyType
from typing import Mapping

from mxm_quotekraken.extraction.normalize import EXTENDED_RULES
from mxm_quotekraken.extraction.schema import (
    CompositeSchema,
    FieldSchema,
    FieldSpec,
    Layout,
    Schema,
    TableSchema,
    ValueType,
)
from mxm_quotekraken.sources.yahoo.models import (
    HistoricalPoint,
    NewsItem,
    Profile,
    Statistics,
    ValuationMetrics,
)
from mxm_quotekraken.sources.yahoo.sections import SectionName

T = ValueType

# ----------------------------------------------------------------------
# Profile
# ----------------------------------------------------------------------

# The quote header repeats the company name in a second <h1>; the first is the
# site banner.
PROFILE_NAME_H1 = 1

PROFILE_SCHEMA = FieldSchema(
    name="profile",
    version="2024.10",
    record_type=Profile,
    fields=(
        FieldSpec("name", T.TEXT, PROFILE_NAME_H1, source="name"),
        FieldSpec("sector", T.TEXT, 0, source="sector"),
        FieldSpec("description", T.TEXT, 0, source="description"),
        FieldSpec("upcoming_events", T.TEXT_LIST, 0, source="upcoming_events"),
        FieldSpec("recent_events", T.TEXT_LIST, 0, source="recent_events"),
    ),
)

# ----------------------------------------------------------------------
# News
# ----------------------------------------------------------------------

NEWS_SCHEMA = FieldSchema(
    name="news",
    version="2024.10",
    record_type=NewsItem,
    layout=Layout.ZIPPED,
    fields=(
        FieldSpec("title", T.TEXT, source="title"),
        FieldSpec("summary", T.TEXT, source="summary"),
        FieldSpec("ticker", T.TEXT, source="ticker"),
        FieldSpec("time", T.TEXT, source="time"),
        FieldSpec("image", T.TEXT, source="image"),
    ),
)

# ----------------------------------------------------------------------
# Statistics
# ----------------------------------------------------------------------


class StatCell(IntEnum):
    # Financial highlights
    FISCAL_YEAR_END = 0
    MOST_RECENT_QUARTER = 1
    PROFIT_MARGIN = 2
    OPERATING_MARGIN = 3
    RETURN_ON_ASSETS = 4
    RETURN_ON_EQUITY = 5
    REVENUE = 6
    REVENUE_PER_SHARE = 7
    QUARTERLY_REVENUE_GROWTH = 8
    EBITDA = 9
    NET_INCOME_AVAILABLE_TO_COMMON = 10
    DILUTED_EPS = 11
    QUARTERLY_EARNINGS_GROWTH = 12
    TOTAL_CASH = 13
    TOTAL_CASH_PER_SHARE = 14
    TOTAL_DEBT = 15
    TOTAL_DEBT_EQUITY = 16
    CURRENT_RATIO = 17
    BOOK_VALUE_PER_SHARE = 18
    OPERATING_CASH_FLOW = 19
    LEVERED_FREE_CASH_FLOW = 20
    # Trading information
    BETA = 21
    FIFTY_TWO_WEEK_RANGE = 22
    SP500_52_WEEK_CHANGE = 23
    FIFTY_TWO_WEEK_HIGH = 24
    FIFTY_TWO_WEEK_LOW = 25
    FIFTY_DAY_MOVING_AVERAGE = 26
    TWO_HUNDRED_DAY_MOVING_AVERAGE = 27
    AVG_VOLUME_3_MONTH = 28
    AVG_VOLUME_10_DAY = 29
    SHARES_OUTSTANDING = 30
    IMPLIED_SHARES_OUTSTANDING = 31
    FLOAT_SHARES = 32
    PERCENT_HELD_BY_INSIDERS = 33
    PERCENT_HELD_BY_INSTITUTIONS = 34
    # Dividends & splits
    FORWARD_ANNUAL_DIVIDEND_RATE = 35
    FORWARD_ANNUAL_DIVIDEND_YIELD = 36
    TRAILING_ANNUAL_DIVIDEND_RATE = 37
    TRAILING_ANNUAL_DIVIDEND_YIELD = 38
    FIVE_YEAR_AVG_DIVIDEND_YIELD = 39
    PAYOUT_RATIO = 40
    EX_DIVIDEND_DATE = 41
    LAST_SPLIT_FACTOR = 42
    LAST_SPLIT_DATE = 43


_STAT_TYPES: Mapping[StatCell, ValueType] = {
    StatCell.FISCAL_YEAR_END: T.TEXT,
    StatCell.MOST_RECENT_QUARTER: T.TEXT,
    StatCell.PROFIT_MARGIN: T.PERCENT_FLOAT,
    StatCell.OPERATING_MARGIN: T.PERCENT_FLOAT,
    StatCell.RETURN_ON_ASSETS: T.PERCENT_FLOAT,
    StatCell.RETURN_ON_EQUITY: T.PERCENT_FLOAT,
    StatCell.REVENUE: T.CURRENCY_TEXT,
    StatCell.REVENUE_PER_SHARE: T.PLAIN_FLOAT,
    StatCell.QUARTERLY_REVENUE_GROWTH: T.PERCENT_FLOAT,
    StatCell.EBITDA: T.CURRENCY_TEXT,
    StatCell.NET_INCOME_AVAILABLE_TO_COMMON: T.CURRENCY_TEXT,
    StatCell.DILUTED_EPS: T.PLAIN_FLOAT,
    StatCell.QUARTERLY_EARNINGS_GROWTH: T.TEXT,
    StatCell.TOTAL_CASH: T.CURRENCY_TEXT,
    StatCell.TOTAL_CASH_PER_SHARE: T.PLAIN_FLOAT,
    StatCell.TOTAL_DEBT: T.CURRENCY_TEXT,
    StatCell.TOTAL_DEBT_EQUITY: T.PERCENT_FLOAT,
    StatCell.CURRENT_RATIO: T.PLAIN_FLOAT,
    StatCell.BOOK_VALUE_PER_SHARE: T.PLAIN_FLOAT,
    StatCell.OPERATING_CASH_FLOW: T.CURRENCY_TEXT,
    StatCell.LEVERED_FREE_CASH_FLOW: T.CURRENCY_TEXT,
    StatCell.BETA: T.PLAIN_FLOAT,
    StatCell.FIFTY_TWO_WEEK_RANGE: T.TEXT,
    StatCell.SP500_52_WEEK_CHANGE: T.PERCENT_FLOAT,
    StatCell.FIFTY_TWO_WEEK_HIGH: T.PLAIN_FLOAT,
    StatCell.FIFTY_TWO_WEEK_LOW: T.PLAIN_FLOAT,
    StatCell.FIFTY_DAY_MOVING_AVERAGE: T.PLAIN_FLOAT,
    StatCell.TWO_HUNDRED_DAY_MOVING_AVERAGE: T.PLAIN_FLOAT,
    StatCell.AVG_VOLUME_3_MONTH: T.TEXT,
    StatCell.AVG_VOLUME_10_DAY: T.TEXT,
    StatCell.SHARES_OUTSTANDING: T.SCALED_FLOAT,
    StatCell.IMPLIED_SHARES_OUTSTANDING: T.SCALED_FLOAT,
    StatCell.FLOAT_SHARES: T.SCALED_FLOAT,
    StatCell.PERCENT_HELD_BY_INSIDERS: T.PERCENT_FLOAT,
    StatCell.PERCENT_HELD_BY_INSTITUTIONS: T.PERCENT_FLOAT,
    StatCell.FORWARD_ANNUAL_DIVIDEND_RATE: T.PLAIN_FLOAT,
    StatCell.FORWARD_ANNUAL_DIVIDEND_YIELD: T.PERCENT_FLOAT,
    StatCell.TRAILING_ANNUAL_DIVIDEND_RATE: T.PLAIN_FLOAT,
    StatCell.TRAILING_ANNUAL_DIVIDEND_YIELD: T.PERCENT_FLOAT,
    StatCell.FIVE_YEAR_AVG_DIVIDEND_YIELD: T.PLAIN_FLOAT,
    StatCell.PAYOUT_RATIO: T.PERCENT_FLOAT,
    StatCell.EX_DIVIDEND_DATE: T.TEXT,
    StatCell.LAST_SPLIT_FACTOR: T.TEXT,
    StatCell.LAST_SPLIT_DATE: T.TEXT,
}

STATISTICS_SCHEMA = FieldSchema(
    name="statistics",
    version="2024.10",
    record_type=Statistics,
    source="s_data",
    fields=tuple(
        FieldSpec(cell.name.lower(), value_type, int(cell))
        for cell, value_type in _STAT_TYPES.items()
    ),
)

VALUATION_PERIODS = 6  # "Current" plus five quarter-ends
_VALUATION_ROW = 1 + VALUATION_PERIODS


class ValuationRow(IntEnum):
    MARKET_CAP = 0
    ENTERPRISE_VALUE = 1
    TRAILING_PE = 2
    FORWARD_PE = 3
    PEG_RATIO = 4
    PRICE_SALES = 5
    PRICE_BOOK = 6
    ENTERPRISE_VALUE_REVENUE = 7
    ENTERPRISE_VALUE_EBITDA = 8


def _valuation_cells(row: ValuationRow) -> FieldSpec:
    # Skip the row's label cell
    return FieldSpec(
        row.name.lower(),
        T.TEXT_LIST,
        row * _VALUATION_ROW + 1,
        span=VALUATION_PERIODS,
    )


VALUATION_SCHEMA = FieldSchema(
    name="valuation",
    version="2024.10",
    record_type=ValuationMetrics,
    source="v_data",
    fields=(
        FieldSpec("periods", T.TEXT_LIST, 1, source="v_period", span=VALUATION_PERIODS),
        *(_valuation_cells(row) for row in ValuationRow),
    ),
)

STATISTICS_COMPOSITE = CompositeSchema(
    root=STATISTICS_SCHEMA,
    parts=MappingProxyType({"valuation": VALUATION_SCHEMA}),
)

# ----------------------------------------------------------------------
# Historical prices
# ----------------------------------------------------------------------


class HistoryColumn(IntEnum):
    DATE = 0
    OPEN = 1
    HIGH = 2
    LOW = 3
    CLOSE = 4
    ADJ_CLOSE = 5
    VOLUME = 6


HISTORY_SCHEMA = FieldSchema(
    name="history",
    version="2024.10",
    record_type=HistoricalPoint,
    source="h_data",
    layout=Layout.ROWS,
    stride=len(HistoryColumn),
    rules=EXTENDED_RULES,
    fields=(
        FieldSpec("date", T.TEXT, HistoryColumn.DATE),
        FieldSpec("open", T.PLAIN_FLOAT, HistoryColumn.OPEN),
        FieldSpec("high", T.PLAIN_FLOAT, HistoryColumn.HIGH),
        FieldSpec("low", T.PLAIN_FLOAT, HistoryColumn.LOW),
        FieldSpec("close", T.PLAIN_FLOAT, HistoryColumn.CLOSE),
        FieldSpec("adj_close", T.PLAIN_FLOAT, HistoryColumn.ADJ_CLOSE),
        FieldSpec("volume", T.INTEGER, HistoryColumn.VOLUME),
    ),
)

# ----------------------------------------------------------------------
# Financial statements
# ----------------------------------------------------------------------

INCOME_STATEMENT_SCHEMA = TableSchema(
    name="income_statement",
    version="2024.10",
    period_source="period",
    label_source="row_label",
    value_source="row_value",
)

BALANCE_SHEET_SCHEMA = TableSchema(
    name="balance_sheet",
    version="2024.10",
    period_source="period",
    label_source="row_label",
    value_source="row_value",
)

DEFAULT_SCHEMAS: Mapping[SectionName, Schema] = MappingProxyType(
    {
        SectionName.PROFILE: PROFILE_SCHEMA,
        SectionName.NEWS: NEWS_SCHEMA,
        SectionName.STATISTICS: STATISTICS_COMPOSITE,
        SectionName.HISTORY: HISTORY_SCHEMA,
        SectionName.FINANCIAL: INCOME_STATEMENT_SCHEMA,
        SectionName.BALANCE_SHEET: BALANCE_SHEET_SCHEMA,
    }
)

__all__ = [
    "PROFILE_SCHEMA",
    "NEWS_SCHEMA",
    "StatCell",
    "STATISTICS_SCHEMA",
    "VALUATION_PERIODS",
    "ValuationRow",
    "VALUATION_SCHEMA",
    "STATISTICS_COMPOSITE",
    "HistoryColumn",
    "HISTORY_SCHEMA",
    "INCOME_STATEMENT_SCHEMA",
    "BALANCE_SHEET_SCHEMA",
    "DEFAULT_SCHEMAS",
]
