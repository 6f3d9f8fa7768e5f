from __future__ import annotations

import threading
from pathlib import Path
from typing import Callable, Iterator, Mapping, Optional, Union

import pytest
from _pytest.monkeypatch import MonkeyPatch  # type: ignore[import-not-found]
from omegaconf import DictConfig

from mxm_quotekraken.common.document import Document
from mxm_quotekraken.common.errors import HttpStatusError
from mxm_quotekraken.config.config import CONFIG_HOME_ENV, load_config

YAHOO_DATA_DIR = Path(__file__).parent / "sources" / "yahoo" / "data"

Page = Union[str, BaseException]


class FakeFetcher:
    """
    In-memory `DocumentFetcher`.

    `pages` maps URL -> HTML (or an exception to raise). Unknown URLs answer
    404. URLs in `slow` block until `gate` is set (or 5s pass), which lets
    tests drive deadlines and cancellation without real sleeps.
    """

    def __init__(
        self,
        pages: Mapping[str, Page],
        *,
        slow: tuple[str, ...] = (),
    ) -> None:
        self.pages = dict(pages)
        self.slow = set(slow)
        self.gate = threading.Event()
        self.calls: list[tuple[str, Optional[float]]] = []
        self._lock = threading.Lock()

    def fetch(self, url: str, *, timeout: Optional[float] = None) -> Document:
        with self._lock:
            self.calls.append((url, timeout))
        if url in self.slow:
            self.gate.wait(5.0)
        page = self.pages.get(url)
        if page is None:
            raise HttpStatusError(url, 404, "Not Found")
        if isinstance(page, BaseException):
            raise page
        return Document(page, url=url)


@pytest.fixture
def fake_fetcher() -> Iterator[Callable[..., FakeFetcher]]:
    """Factory for `FakeFetcher`; slow fetches are released on teardown."""
    made: list[FakeFetcher] = []

    def _make(pages: Mapping[str, Page], **kwargs: tuple[str, ...]) -> FakeFetcher:
        f = FakeFetcher(pages, **kwargs)
        made.append(f)
        return f

    yield _make

    for f in made:
        f.gate.set()


@pytest.fixture
def yahoo_html() -> Callable[[str], str]:
    """Read a saved Yahoo Finance page from tests/sources/yahoo/data."""

    def _read(name: str) -> str:
        return (YAHOO_DATA_DIR / name).read_text(encoding="utf-8")

    return _read


@pytest.fixture
def cfg(monkeypatch: MonkeyPatch) -> DictConfig:
    """Packaged defaults only; ignores any user config on the test machine."""
    monkeypatch.delenv(CONFIG_HOME_ENV, raising=False)
    return load_config()
