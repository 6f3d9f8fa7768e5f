"""
Selector dispatch: run named query patterns against a document.

Given a `Document` and a `SelectorSet` (field name -> pattern), `dispatch`
returns an `ExtractionResult` (field name -> matched text, in document
order). The result is a plain dict of lists so it can be logged, stored as a
fixture or compared in tests directly.

Pattern grammar
---------------
A pattern is a CSS selector as understood by BeautifulSoup/soupsieve, e.g.
``"td.value"`` or ``"li.stream-item h3"``. A trailing ``::attr(name)`` reads
an attribute of each match instead of its text::

    "li.stream-item img::attr(src)"

Matches lacking the attribute are skipped. Text content has every run of
whitespace collapsed to a single space, as a browser would render it.

If the selector set is empty, the whole serialized document is returned
under `RAW_KEY` for callers that want unstructured content.
"""

from __future__ import annotations

import re
from typing import Mapping, Optional, TypeAlias

from bs4 import Tag

from mxm_quotekraken.common.document import Document, DocumentFetcher

SelectorSet: TypeAlias = Mapping[str, str]
ExtractionResult: TypeAlias = dict[str, list[str]]

RAW_KEY = "__raw__"

_ATTR_RE = re.compile(r"^(?P<css>.*?)\s*::attr\((?P<attr>[^)]+)\)\s*$")


def split_pattern(pattern: str) -> tuple[str, Optional[str]]:
    """Split ``"css::attr(name)"`` into ``("css", "name")``; plain CSS gets ``None``."""
    m = _ATTR_RE.match(pattern)
    if not m:
        return pattern.strip(), None
    return m.group("css").strip(), m.group("attr").strip()


def _node_value(node: Tag, attr: Optional[str]) -> Optional[str]:
    if attr is None:
        return " ".join(node.get_text(" ", strip=True).split())
    value = node.get(attr)
    if value is None:
        return None
    if isinstance(value, list):
        # Multi-valued attributes such as class
        return " ".join(value)
    return str(value)


def select_values(document: Document, pattern: str) -> list[str]:
    """All values matched by one pattern, in document order."""
    css, attr = split_pattern(pattern)
    out: list[str] = []
    for node in document.select(css):
        value = _node_value(node, attr)
        if value is not None:
            out.append(value)
    return out


def dispatch(document: Document, selectors: SelectorSet) -> ExtractionResult:
    """
    Run every selector against `document`.

    Args:
        document: Parsed page.
        selectors: Field name -> pattern. May be empty.

    Returns:
        Field name -> matched values in document order. Every selector name is
        present, possibly with an empty list. With no selectors, a single
        `RAW_KEY` entry holding the serialized document.
    """
    if not selectors:
        return {RAW_KEY: [document.serialize()]}

    result: ExtractionResult = {}
    for name, pattern in selectors.items():
        result[name] = select_values(document, pattern)
    return result


def fetch_and_dispatch(
    fetcher: DocumentFetcher,
    url: str,
    selectors: SelectorSet,
    *,
    timeout: Optional[float] = None,
) -> ExtractionResult:
    """Fetch `url` and dispatch `selectors` on it.

    Any `FetchError` from the fetcher propagates unchanged; nothing is
    dispatched in that case.
    """
    document = fetcher.fetch(url, timeout=timeout)
    return dispatch(document, selectors)


__all__ = [
    "SelectorSet",
    "ExtractionResult",
    "RAW_KEY",
    "split_pattern",
    "select_values",
    "dispatch",
    "fetch_and_dispatch",
]
