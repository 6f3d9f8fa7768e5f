"""
Parsed document abstraction.

A `Document` is the in-memory representation of one fetched page. The
extraction core only reads it: it asks for nodes matching a CSS selector and,
for unstructured callers, for the serialized markup.

`DocumentFetcher` is the collaborator protocol the core consumes. The
production implementation is `mxm_quotekraken.common.http_adapter.
HttpDocumentFetcher`; tests substitute in-memory fakes.
"""

from __future__ import annotations

from typing import Optional, Protocol

from bs4 import BeautifulSoup, Tag


class Document:
    """A fetched HTML page, queryable by CSS selector."""

    def __init__(self, html: str, url: str = "") -> None:
        self._html = html
        self.url = url
        self.soup = BeautifulSoup(html, "html.parser")

    def select(self, css: str) -> list[Tag]:
        """All elements matching `css`, in document order."""
        return list(self.soup.select(css))

    def serialize(self) -> str:
        """The markup exactly as it was received."""
        return self._html

    def __repr__(self) -> str:
        return f"Document(url={self.url!r}, size={len(self._html)})"


class DocumentFetcher(Protocol):
    """Anything that can turn a URL into a `Document`.

    Implementations must bound every call by `timeout` (seconds, falling back
    to their own default) and raise a `FetchError` subclass on failure.
    """

    def fetch(self, url: str, *, timeout: Optional[float] = None) -> Document: ...


__all__ = ["Document", "DocumentFetcher"]
