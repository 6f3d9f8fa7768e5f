"""
Record assembly: one fetch + dispatch + bind pass per section, merged once.

Sections are independent. Each runs on its own worker thread and produces an
immutable `SectionOutcome`; nothing is shared between workers. When every
worker has finished (or the deadline passes, or the caller cancels), a single
merge step turns the outcomes into one `StockRecord`.

Section lifecycle::

    PENDING -> FETCHED -> BOUND
    PENDING -> FAILED          (fetch error, recorded as SectionError)
    PENDING -> CANCELLED       (deadline/cancel before the worker finished)

A failing section never aborts the run. Its part of the record keeps zero
values and a `SectionError` explains why. Binding problems are soft and show
up as warnings.

Completion order has no effect on the result: the merge is keyed by section.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping, Optional

from mxm_quotekraken.common.document import DocumentFetcher
from mxm_quotekraken.common.errors import FetchError
from mxm_quotekraken.extraction.diagnostics import BindingWarning
from mxm_quotekraken.extraction.dispatch import fetch_and_dispatch
from mxm_quotekraken.sources.yahoo.models import Financial, StockRecord
from mxm_quotekraken.sources.yahoo.sections import (
    SectionConfig,
    SectionName,
    bind_section,
)

logger = logging.getLogger(__name__)

# How often the coordinator re-checks the cancel event while waiting.
_POLL_SECONDS = 0.05


class SectionState(str, Enum):
    PENDING = "pending"
    FETCHED = "fetched"
    BOUND = "bound"
    FAILED = "failed"
    CANCELLED = "cancelled"


class SectionErrorKind(str, Enum):
    FETCH = "fetch"
    ERROR = "error"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class SectionError:
    section: SectionName
    kind: SectionErrorKind
    message: str
    cause: Optional[BaseException] = field(default=None, compare=False)

    def __str__(self) -> str:
        return f"{self.section.value}: {self.kind.value}: {self.message}"


@dataclass(frozen=True)
class SectionOutcome:
    section: SectionName
    state: SectionState
    record: Any = None
    warnings: tuple[BindingWarning, ...] = ()
    error: Optional[SectionError] = None


@dataclass(frozen=True)
class AssemblyResult:
    record: StockRecord
    errors: tuple[SectionError, ...]
    warnings: tuple[BindingWarning, ...]
    states: Mapping[SectionName, SectionState]
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return not self.errors


# ----------------------------------------------------------------------
# One section
# ----------------------------------------------------------------------


def run_section(fetcher: DocumentFetcher, config: SectionConfig) -> SectionOutcome:
    """
    Fetch, dispatch and bind one section.

    Never raises: fetch failures (and unexpected fetcher errors) become a
    ``FAILED`` outcome carrying a `SectionError`.
    """
    section = config.section
    try:
        extraction = fetch_and_dispatch(
            fetcher, config.url, config.selectors, timeout=config.timeout
        )
    except FetchError as exc:
        logger.debug("Section %s failed to fetch: %s", section.value, exc)
        return SectionOutcome(
            section=section,
            state=SectionState.FAILED,
            error=SectionError(section, SectionErrorKind.FETCH, str(exc), exc),
        )
    except Exception as exc:
        logger.debug("Section %s fetcher error: %r", section.value, exc)
        return SectionOutcome(
            section=section,
            state=SectionState.FAILED,
            error=SectionError(
                section, SectionErrorKind.ERROR, f"{type(exc).__name__}: {exc}", exc
            ),
        )

    logger.debug("Section %s: %s", section.value, SectionState.FETCHED.value)
    record, warnings = bind_section(section, extraction, config.schema)
    logger.debug(
        "Section %s: %s (%d warnings)",
        section.value,
        SectionState.BOUND.value,
        len(warnings),
    )
    return SectionOutcome(
        section=section,
        state=SectionState.BOUND,
        record=record,
        warnings=tuple(warnings),
    )


def _cancelled(section: SectionName, reason: str) -> SectionOutcome:
    return SectionOutcome(
        section=section,
        state=SectionState.CANCELLED,
        error=SectionError(section, SectionErrorKind.CANCELLED, reason),
    )


# ----------------------------------------------------------------------
# Merge
# ----------------------------------------------------------------------


def merge_outcomes(symbol: str, outcomes: Iterable[SectionOutcome]) -> AssemblyResult:
    """
    Combine section outcomes into one `AssemblyResult`.

    The merge is keyed by section name, so the order of `outcomes` does not
    matter. Sections without a bound record keep their zero values. Errors and
    warnings are reported in section declaration order.
    """
    by_section: dict[SectionName, SectionOutcome] = {o.section: o for o in outcomes}

    def bound(section: SectionName) -> Any:
        o = by_section.get(section)
        return o.record if o is not None and o.state is SectionState.BOUND else None

    base = StockRecord()
    profile = bound(SectionName.PROFILE)
    news = bound(SectionName.NEWS)
    statistics = bound(SectionName.STATISTICS)
    history = bound(SectionName.HISTORY)
    income = bound(SectionName.FINANCIAL)
    balance = bound(SectionName.BALANCE_SHEET)

    record = StockRecord(
        symbol=symbol,
        profile=profile if profile is not None else base.profile,
        news=news if news is not None else base.news,
        statistics=statistics if statistics is not None else base.statistics,
        history=history if history is not None else base.history,
        financial=Financial(
            income_statement=(
                income if income is not None else base.financial.income_statement
            ),
            balance_sheet=(
                balance if balance is not None else base.financial.balance_sheet
            ),
        ),
    )

    errors: list[SectionError] = []
    warnings: list[BindingWarning] = []
    states: dict[SectionName, SectionState] = {}
    for section in SectionName:
        o = by_section.get(section)
        if o is None:
            continue
        states[section] = o.state
        if o.error is not None:
            errors.append(o.error)
        warnings.extend(o.warnings)

    return AssemblyResult(
        record=record,
        errors=tuple(errors),
        warnings=tuple(warnings),
        states=states,
        cancelled=any(s is SectionState.CANCELLED for s in states.values()),
    )


# ----------------------------------------------------------------------
# Orchestration
# ----------------------------------------------------------------------


def assemble(
    fetcher: DocumentFetcher,
    symbol: str,
    configs: Iterable[SectionConfig],
    *,
    deadline: Optional[float] = None,
    cancel: Optional[threading.Event] = None,
    max_workers: Optional[int] = None,
) -> AssemblyResult:
    """
    Run every configured section concurrently and merge the results.

    Args:
        fetcher: Document fetcher shared by all workers. Each fetch must be
            bounded by its own timeout.
        symbol: Instrument symbol, copied onto the record.
        configs: One `SectionConfig` per section to run. Duplicate sections
            are rejected.
        deadline: Overall time budget in seconds. Sections still running
            when it expires are abandoned and reported as cancelled.
        cancel: Caller-controlled cancellation signal, same effect as an
            expired deadline.
        max_workers: Worker thread cap; defaults to one per section.

    Returns:
        The merged record plus section errors and binding warnings.
    """
    config_list = list(configs)
    seen: set[SectionName] = set()
    for cfg in config_list:
        if cfg.section in seen:
            raise ValueError(f"duplicate section config: {cfg.section.value}")
        seen.add(cfg.section)

    if not config_list:
        return merge_outcomes(symbol, ())

    if cancel is not None and cancel.is_set():
        logger.debug("Assembly for %s cancelled before start", symbol)
        return merge_outcomes(
            symbol, (_cancelled(c.section, "cancelled before start") for c in config_list)
        )

    workers = max_workers or len(config_list)
    started = time.monotonic()
    expires_at = None if deadline is None else started + deadline

    executor = ThreadPoolExecutor(
        max_workers=workers, thread_name_prefix=f"quotekraken-{symbol}"
    )
    futures: dict[Future[SectionOutcome], SectionName] = {
        executor.submit(run_section, fetcher, cfg): cfg.section for cfg in config_list
    }

    pending: set[Future[SectionOutcome]] = set(futures)
    stop_reason: Optional[str] = None
    try:
        while pending:
            if cancel is not None and cancel.is_set():
                stop_reason = "cancelled"
                break
            timeout: Optional[float] = None
            if expires_at is not None:
                remaining = expires_at - time.monotonic()
                if remaining <= 0:
                    stop_reason = f"deadline of {deadline:.2f}s exceeded"
                    break
                timeout = remaining
            if cancel is not None:
                timeout = _POLL_SECONDS if timeout is None else min(timeout, _POLL_SECONDS)
            _, pending = wait(pending, timeout=timeout, return_when=FIRST_COMPLETED)
    finally:
        # Abandon whatever is still running; never block on it.
        executor.shutdown(wait=False, cancel_futures=True)

    outcomes: list[SectionOutcome] = []
    for future, section in futures.items():
        # A worker may finish between the last wait() and the stop decision.
        if not future.done() or future.cancelled():
            outcomes.append(_cancelled(section, stop_reason or "cancelled"))
            continue
        exc = future.exception()
        if exc is not None:
            logger.error("Section %s crashed: %r", section.value, exc)
            outcomes.append(
                SectionOutcome(
                    section=section,
                    state=SectionState.FAILED,
                    error=SectionError(
                        section, SectionErrorKind.ERROR, f"{type(exc).__name__}: {exc}", exc
                    ),
                )
            )
            continue
        outcomes.append(future.result())

    result = merge_outcomes(symbol, outcomes)
    logger.debug(
        "Assembled %s in %.2fs: %d errors, %d warnings",
        symbol,
        time.monotonic() - started,
        len(result.errors),
        len(result.warnings),
    )
    return result


__all__ = [
    "SectionState",
    "SectionErrorKind",
    "SectionError",
    "SectionOutcome",
    "AssemblyResult",
    "run_section",
    "merge_outcomes",
    "assemble",
]
