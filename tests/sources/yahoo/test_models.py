from __future__ import annotations

import json

from mxm_quotekraken.extraction.diagnostics import BindingWarning, WarningReason
from mxm_quotekraken.sources.yahoo.models import (
    Financial,
    HistoricalPoint,
    NewsItem,
    Profile,
    StatementRow,
    StatementTable,
    Statistics,
    StockRecord,
    to_json,
)


def _record() -> StockRecord:
    return StockRecord(
        symbol="AAPL",
        profile=Profile(name="Apple Inc. (AAPL)", upcoming_events=("Earnings",)),
        news=(NewsItem(title="Apple ships", ticker="AAPL"),),
        statistics=Statistics(profit_margin=0.2397, revenue="391.04B"),
        history=(HistoricalPoint(date="Oct 1, 2024", close=226.21, volume=63285000),),
        financial=Financial(
            income_statement=StatementTable(
                periods=("TTM", "9/30/2024"),
                rows=(StatementRow(label="Total Revenue", values=(391035.0, 391035.0)),),
            )
        ),
    )


def test_defaults_are_zero_values() -> None:
    rec = StockRecord()
    assert rec.symbol == ""
    assert rec.news == ()
    assert rec.statistics.beta == 0.0
    assert rec.statistics.valuation.periods == ()
    assert rec.financial.balance_sheet.rows == ()


def test_to_json_nested_record() -> None:
    out = to_json(_record())

    assert isinstance(out, dict)
    assert out["symbol"] == "AAPL"
    assert out["profile"]["upcoming_events"] == ["Earnings"]
    assert out["news"][0]["ticker"] == "AAPL"
    assert out["statistics"]["profit_margin"] == 0.2397
    assert out["history"][0]["volume"] == 63285000
    income = out["financial"]["income_statement"]
    assert income["periods"] == ["TTM", "9/30/2024"]
    assert income["rows"][0] == {"label": "Total Revenue", "values": [391035.0, 391035.0]}
    # serialisable as is
    json.dumps(out)


def test_to_json_enums_become_values() -> None:
    w = BindingWarning(field="beta", reason=WarningReason.NUMERIC_PARSE_FAILURE, detail="x")
    out = to_json(w)
    assert out == {
        "field": "beta",
        "reason": "NumericParseFailure",
        "detail": "x",
        "section": None,
    }


def test_to_json_plain_values_pass_through() -> None:
    assert to_json(("a", 1)) == ["a", 1]
    assert to_json({"k": (1.5,)}) == {"k": [1.5]}
    assert to_json(None) is None


def test_statement_table_lookup() -> None:
    table = _record().financial.income_statement
    assert table.row("total revenue") is not None
    assert table.series("Total Revenue") == {"TTM": 391035.0, "9/30/2024": 391035.0}
    assert table.series("Basic EPS") == {}
