from __future__ import annotations

import threading
import time
from typing import Any, Callable, cast

import pytest
from _pytest.monkeypatch import MonkeyPatch  # type: ignore[import-not-found]
from omegaconf import DictConfig

from mxm_quotekraken.common.errors import FetchTimeout, HttpStatusError
from mxm_quotekraken.config.config import section_configs
from mxm_quotekraken.extraction.diagnostics import WarningReason
from mxm_quotekraken.sources.yahoo import assembler
from mxm_quotekraken.sources.yahoo.assembler import (
    SectionErrorKind,
    SectionState,
    assemble,
    merge_outcomes,
    run_section,
)
from mxm_quotekraken.sources.yahoo.models import Statistics
from mxm_quotekraken.sources.yahoo.sections import SectionConfig, SectionName

BASE = "https://finance.yahoo.com/quote/AAPL/"

PAGES = {
    SectionName.PROFILE: ("profile/", "profile.html"),
    SectionName.NEWS: ("news/", "news.html"),
    SectionName.STATISTICS: ("key-statistics/", "statistics.html"),
    SectionName.HISTORY: ("history/", "history.html"),
    SectionName.FINANCIAL: ("financials/", "financials.html"),
    SectionName.BALANCE_SHEET: ("balance-sheet/", "balance_sheet.html"),
}


def _url(section: SectionName) -> str:
    return BASE + PAGES[section][0]


@pytest.fixture
def site(yahoo_html: Callable[[str], str]) -> dict[str, Any]:
    """URL -> saved page for every section of AAPL."""
    return {_url(s): yahoo_html(name) for s, (_, name) in PAGES.items()}


# ----- happy path -------------------------------------------------------------


def test_assemble_all_sections(cfg: DictConfig, site: dict[str, Any], fake_fetcher: Any) -> None:
    fetcher = fake_fetcher(site)
    result = assemble(fetcher, "AAPL", section_configs(cfg, "AAPL"))

    assert result.ok
    assert not result.cancelled
    assert result.warnings == ()
    assert set(result.states) == set(SectionName)
    assert all(s is SectionState.BOUND for s in result.states.values())

    rec = result.record
    assert rec.symbol == "AAPL"
    assert rec.profile.sector == "Technology"
    assert len(rec.news) == 3
    assert rec.statistics.profit_margin == pytest.approx(0.2397)
    assert len(rec.history) == 3
    assert rec.financial.income_statement.periods[0] == "TTM"
    assert rec.financial.balance_sheet.row("Total Assets") is not None

    assert sorted(url for url, _ in fetcher.calls) == sorted(site)
    # per-call timeout comes from config
    assert {t for _, t in fetcher.calls} == {15.0}


# ----- failure isolation ------------------------------------------------------


def test_failed_section_keeps_zero_values(
    cfg: DictConfig, site: dict[str, Any], fake_fetcher: Any
) -> None:
    stats_url = _url(SectionName.STATISTICS)
    site[stats_url] = HttpStatusError(stats_url, 503, "Service Unavailable")
    result = assemble(fake_fetcher(site), "AAPL", section_configs(cfg, "AAPL"))

    assert not result.ok
    assert result.record.statistics == Statistics()
    assert result.states[SectionName.STATISTICS] is SectionState.FAILED
    (err,) = result.errors
    assert err.section is SectionName.STATISTICS
    assert err.kind is SectionErrorKind.FETCH
    assert "503" in err.message
    assert isinstance(err.cause, HttpStatusError)

    # every other section is unaffected
    assert result.record.profile.name == "Apple Inc. (AAPL)"
    assert len(result.record.history) == 3
    others = {s: st for s, st in result.states.items() if s is not SectionName.STATISTICS}
    assert set(others.values()) == {SectionState.BOUND}


def test_unexpected_fetcher_exception_is_contained(
    cfg: DictConfig, site: dict[str, Any], fake_fetcher: Any
) -> None:
    news_url = _url(SectionName.NEWS)
    site[news_url] = RuntimeError("boom")
    result = assemble(fake_fetcher(site), "AAPL", section_configs(cfg, "AAPL"))

    (err,) = result.errors
    assert err.section is SectionName.NEWS
    assert err.kind is SectionErrorKind.ERROR
    assert "RuntimeError" in err.message
    assert result.record.news == ()


def test_worker_crash_is_reported_as_failed(fake_fetcher: Any) -> None:
    bogus = SectionConfig(
        section=SectionName.PROFILE,
        url="https://example.test/p",
        selectors={"name": "h1"},
        schema=cast(Any, "not a schema"),
    )
    fetcher = fake_fetcher({"https://example.test/p": "<h1>x</h1>"})
    result = assemble(fetcher, "X", [bogus])

    assert result.states[SectionName.PROFILE] is SectionState.FAILED
    (err,) = result.errors
    assert err.kind is SectionErrorKind.ERROR
    assert "TypeError" in err.message


def test_unrecognised_page_binds_empty_history(
    cfg: DictConfig, site: dict[str, Any], fake_fetcher: Any
) -> None:
    site[_url(SectionName.HISTORY)] = "<html><body><p>Please enable JavaScript</p></body></html>"
    result = assemble(fake_fetcher(site), "AAPL", section_configs(cfg, "AAPL"))

    assert result.ok
    assert result.states[SectionName.HISTORY] is SectionState.BOUND
    assert result.record.history == ()
    # the selector matched nothing, so there is simply no row to bind
    assert result.warnings == ()


def test_duplicate_sections_are_rejected(cfg: DictConfig, fake_fetcher: Any) -> None:
    (profile,) = section_configs(cfg, "AAPL", only=[SectionName.PROFILE])
    with pytest.raises(ValueError, match="duplicate"):
        assemble(fake_fetcher({}), "AAPL", [profile, profile])


def test_no_sections_gives_empty_record(fake_fetcher: Any) -> None:
    result = assemble(fake_fetcher({}), "AAPL", [])
    assert result.ok
    assert result.record.symbol == "AAPL"
    assert result.states == {}


# ----- cancellation and deadline ----------------------------------------------


def test_cancel_before_start(cfg: DictConfig, site: dict[str, Any], fake_fetcher: Any) -> None:
    fetcher = fake_fetcher(site)
    cancel = threading.Event()
    cancel.set()

    result = assemble(fetcher, "AAPL", section_configs(cfg, "AAPL"), cancel=cancel)

    assert result.cancelled
    assert fetcher.calls == []
    assert set(result.states.values()) == {SectionState.CANCELLED}
    assert len(result.errors) == len(SectionName)
    assert all(e.kind is SectionErrorKind.CANCELLED for e in result.errors)


def test_deadline_cancels_slow_section(
    cfg: DictConfig, site: dict[str, Any], fake_fetcher: Any
) -> None:
    slow_url = _url(SectionName.HISTORY)
    fetcher = fake_fetcher(site, slow=(slow_url,))

    result = assemble(fetcher, "AAPL", section_configs(cfg, "AAPL"), deadline=0.5)
    fetcher.gate.set()

    assert result.cancelled
    assert result.states[SectionName.HISTORY] is SectionState.CANCELLED
    assert result.record.history == ()
    (err,) = result.errors
    assert err.kind is SectionErrorKind.CANCELLED
    assert "deadline" in err.message

    fast = [s for s in SectionName if s is not SectionName.HISTORY]
    assert all(result.states[s] is SectionState.BOUND for s in fast)
    assert result.record.statistics.beta == pytest.approx(1.24)


def test_cancel_while_running(cfg: DictConfig, site: dict[str, Any], fake_fetcher: Any) -> None:
    slow_url = _url(SectionName.NEWS)
    fetcher = fake_fetcher(site, slow=(slow_url,))
    cancel = threading.Event()
    timer = threading.Timer(0.2, cancel.set)
    timer.start()
    try:
        result = assemble(fetcher, "AAPL", section_configs(cfg, "AAPL"), cancel=cancel)
    finally:
        timer.cancel()
        fetcher.gate.set()

    assert result.states[SectionName.NEWS] is SectionState.CANCELLED
    assert result.states[SectionName.PROFILE] is SectionState.BOUND


class _CancelAfterFirstFetch(threading.Event):
    """Reports cancelled on the first in-loop check, once the worker has finished."""

    def __init__(self, fetcher: Any) -> None:
        super().__init__()
        self.fetcher = fetcher
        self.checks = 0

    def is_set(self) -> bool:
        self.checks += 1
        if self.checks == 1:
            # the "cancelled before start" check
            return False
        deadline = time.monotonic() + 5.0
        while not self.fetcher.calls and time.monotonic() < deadline:
            time.sleep(0.01)
        # let run_section bind and return
        time.sleep(0.3)
        return True


def test_section_finished_before_cancel_is_kept(
    cfg: DictConfig, site: dict[str, Any], fake_fetcher: Any
) -> None:
    fetcher = fake_fetcher(site)
    configs = section_configs(cfg, "AAPL", only=[SectionName.PROFILE])

    result = assemble(fetcher, "AAPL", configs, cancel=_CancelAfterFirstFetch(fetcher))

    assert result.states == {SectionName.PROFILE: SectionState.BOUND}
    assert result.errors == ()
    assert result.record.profile.name == "Apple Inc. (AAPL)"


# ----- merge ------------------------------------------------------------------


def test_merge_is_order_independent(cfg: DictConfig, site: dict[str, Any], fake_fetcher: Any) -> None:
    stats_url = _url(SectionName.STATISTICS)
    site[stats_url] = FetchTimeout(stats_url, "timed out after 15.0s")
    fetcher = fake_fetcher(site)
    outcomes = [run_section(fetcher, c) for c in section_configs(cfg, "AAPL")]

    forward = merge_outcomes("AAPL", outcomes)
    backward = merge_outcomes("AAPL", list(reversed(outcomes)))

    assert forward == backward
    assert [e.section for e in forward.errors] == [SectionName.STATISTICS]


def test_run_section_reports_fetch_error_kind(fake_fetcher: Any, cfg: DictConfig) -> None:
    (config,) = section_configs(cfg, "AAPL", only=[SectionName.PROFILE])
    outcome = run_section(fake_fetcher({}), config)

    assert outcome.state is SectionState.FAILED
    assert outcome.error is not None
    assert outcome.error.kind is SectionErrorKind.FETCH
    assert outcome.record is None


def test_merged_warnings_carry_section_names(
    cfg: DictConfig, site: dict[str, Any], fake_fetcher: Any
) -> None:
    site[_url(SectionName.NEWS)] = site[_url(SectionName.NEWS)].replace(
        "<h3>Services unit hits record</h3>", ""
    )
    result = assemble(fake_fetcher(site), "AAPL", section_configs(cfg, "AAPL"))

    assert [(w.section, w.reason) for w in result.warnings] == [
        ("news", WarningReason.LIST_LENGTH_MISMATCH)
    ]
    assert len(result.record.news) == 2


def test_run_section_fetches_through_dispatcher(
    cfg: DictConfig, monkeypatch: MonkeyPatch, fake_fetcher: Any
) -> None:
    (config,) = section_configs(cfg, "AAPL", only=[SectionName.PROFILE])
    seen: list[tuple[str, Any, Any]] = []

    def _spy(fetcher: Any, url: str, selectors: Any, *, timeout: Any = None) -> dict[str, list[str]]:
        seen.append((url, dict(selectors), timeout))
        return {"name": ["", "Spy Corp (SPY)"], "sector": ["Finance"]}

    monkeypatch.setattr(assembler, "fetch_and_dispatch", _spy)
    outcome = run_section(fake_fetcher({}), config)

    assert seen == [(config.url, dict(config.selectors), config.timeout)]
    assert outcome.state is SectionState.BOUND
    assert outcome.record.name == "Spy Corp (SPY)"
    assert outcome.record.sector == "Finance"
