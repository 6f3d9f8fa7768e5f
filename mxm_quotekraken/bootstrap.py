"""
Wiring for mxm-quotekraken entry points.

This module turns a loaded config into running collaborators. It performs
**no side effects on import**; scripts and tests call the functions below
explicitly.

Configuration
-------------
The fetcher is configured under ``sources.yahoo.http``:

    sources:
      yahoo:
        http:
          user_agent: "Mozilla/5.0 ..."
          default_timeout: 15.0
          default_headers:
            Accept: "text/html"

Run limits live under ``sources.yahoo.run`` (``deadline_seconds``,
``max_workers``; 0 means "no limit" / "one worker per section").

Usage
-----
    from mxm_quotekraken.bootstrap import fetch_stock
    from mxm_quotekraken.config.config import load_config

    cfg = load_config(overrides=["sources.yahoo.run.deadline_seconds=30"])
    result = fetch_stock(cfg, "AAPL")
    result.record.statistics.profit_margin
"""

from __future__ import annotations

import threading
from typing import Any, Iterable, Mapping, Optional

from omegaconf import DictConfig

from mxm_quotekraken.common.document import DocumentFetcher
from mxm_quotekraken.common.http_adapter import DEFAULT_USER_AGENT, HttpDocumentFetcher
from mxm_quotekraken.config.config import http_view, run_view, section_configs
from mxm_quotekraken.sources.yahoo.assembler import AssemblyResult, assemble
from mxm_quotekraken.sources.yahoo.sections import SectionName


def _coerce_headers(m: Optional[Mapping[str, Any]]) -> Optional[Mapping[str, str]]:
    if m is None:
        return None
    return {str(k): str(v) for k, v in m.items()}


def build_fetcher_from_config(cfg: DictConfig) -> HttpDocumentFetcher:
    """Create the HTTP fetcher described by ``sources.yahoo.http``."""
    http = http_view(cfg)
    user_agent = str(getattr(http, "user_agent", None) or DEFAULT_USER_AGENT)
    default_timeout = float(getattr(http, "default_timeout", 15.0))
    raw_headers = getattr(http, "default_headers", None)
    headers = _coerce_headers(raw_headers if isinstance(raw_headers, Mapping) else None)
    return HttpDocumentFetcher(
        user_agent=user_agent,
        default_timeout=default_timeout,
        default_headers=headers,
    )


def run_limits(cfg: DictConfig) -> tuple[Optional[float], Optional[int]]:
    """(deadline seconds or None, max workers or None) from ``sources.yahoo.run``."""
    run = run_view(cfg)
    deadline = float(run.deadline_seconds or 0)
    workers = int(run.max_workers or 0)
    return (deadline if deadline > 0 else None, workers if workers > 0 else None)


def fetch_stock(
    cfg: DictConfig,
    symbol: str,
    *,
    sections: Optional[Iterable[SectionName]] = None,
    cancel: Optional[threading.Event] = None,
    fetcher: Optional[DocumentFetcher] = None,
) -> AssemblyResult:
    """
    Fetch and bind every enabled section for `symbol`.

    A fetcher is built from config unless one is passed in; a fetcher created
    here is closed before returning.
    """
    configs = section_configs(cfg, symbol, only=sections)
    deadline, max_workers = run_limits(cfg)

    owned: Optional[HttpDocumentFetcher] = None
    if fetcher is None:
        owned = build_fetcher_from_config(cfg)
        fetcher = owned
    try:
        return assemble(
            fetcher,
            symbol,
            configs,
            deadline=deadline,
            cancel=cancel,
            max_workers=max_workers,
        )
    finally:
        if owned is not None:
            owned.close()
