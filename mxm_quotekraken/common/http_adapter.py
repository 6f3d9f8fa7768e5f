"""
HTTP document fetcher for mxm-quotekraken (requests-based).

This module provides `HttpDocumentFetcher`, the production implementation of
the `DocumentFetcher` protocol. It issues a single GET per call with sensible
defaults (User-Agent, Accept headers, timeout) and returns a parsed
`Document`. Higher-level behaviors (section orchestration, deadlines,
cancellation) belong to the record assembler.

Design notes
------------
- Headers are stored and exposed as ``Mapping[str, str]`` (no ``bytes`` values).
- Default headers and timeout are injected at construction time.
- requests exceptions are translated into the `FetchError` taxonomy so that
  callers can tell network, HTTP-status and decode failures apart. The
  original exception is kept as ``__cause__``.

Thread-safety
-------------
``requests.Session`` is not documented as thread-safe. The assembler shares
one fetcher across section workers, so each worker thread lazily gets its own
session carrying the same default headers.
"""

from __future__ import annotations

import logging
import threading
from types import MappingProxyType
from typing import Any, Mapping, Optional

import requests
from requests import Response, Session

from mxm_quotekraken.common.document import Document
from mxm_quotekraken.common.errors import (
    DecodeError,
    FetchTimeout,
    HttpStatusError,
    NetworkError,
)

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)


def _headers_dict(headers: Mapping[str, Any]) -> dict[str, str]:
    """Convert a headers mapping to ``dict[str, str]`` with string values only."""
    return {str(k): str(v) for k, v in headers.items()}


def _decode(resp: Response) -> str:
    """Decode the body using the declared charset, falling back to UTF-8.

    requests reports ISO-8859-1 for any ``text/*`` response without a charset;
    that default is ignored so undeclared UTF-8 pages are not mis-decoded.
    """
    content_type = resp.headers.get("Content-Type", "")
    declared = "charset" in content_type.lower()
    encoding = (resp.encoding if declared else None) or "utf-8"
    try:
        return resp.content.decode(encoding)
    except LookupError:
        # Unknown codec name in Content-Type
        return resp.content.decode("utf-8")


class HttpDocumentFetcher:
    """Requests-based fetcher implementing the `DocumentFetcher` protocol.

    Parameters
    ----------
    user_agent:
        String for the ``User-Agent`` header. Will be inserted into default
        headers if not already present.
    default_timeout:
        Timeout in seconds applied when a per-call timeout is not supplied.
    default_headers:
        Mapping of default headers applied to all requests.
    """

    default_headers: Mapping[str, str]

    def __init__(
        self,
        *,
        user_agent: str = DEFAULT_USER_AGENT,
        default_timeout: float = 15.0,
        default_headers: Optional[Mapping[str, str]] = None,
    ) -> None:
        base: dict[str, str] = {
            "User-Agent": user_agent,
            "Accept": "text/html,application/xhtml+xml",
            "Accept-Encoding": "gzip, deflate",
            "Connection": "keep-alive",
        }
        if default_headers:
            base.update(default_headers)

        self._default_timeout = float(default_timeout)
        self.default_headers = MappingProxyType(_headers_dict(base))

        self._local = threading.local()
        self._sessions: list[Session] = []
        self._sessions_lock = threading.Lock()

    @property
    def default_timeout(self) -> float:
        return self._default_timeout

    @property
    def session(self) -> Session:
        """The calling thread's session (created on first use)."""
        sess: Optional[Session] = getattr(self._local, "session", None)
        if sess is None:
            sess = requests.Session()
            sess.headers.update(self.default_headers)
            self._local.session = sess
            with self._sessions_lock:
                self._sessions.append(sess)
        return sess

    def fetch(self, url: str, *, timeout: Optional[float] = None) -> Document:
        """GET `url` and parse the body into a `Document`.

        Raises
        ------
        ValueError
            If ``url`` is empty.
        FetchTimeout
            If the request did not complete within the timeout.
        NetworkError
            On any other transport-level failure.
        HttpStatusError
            If the response status indicates an HTTP error (4xx/5xx).
        DecodeError
            If the payload cannot be decoded or parsed.
        """
        if not url:
            raise ValueError("HttpDocumentFetcher.fetch: url must be a non-empty string.")

        effective = float(timeout if timeout is not None else self._default_timeout)
        logger.debug("GET %s (timeout=%.1fs)", url, effective)

        try:
            resp: Response = self.session.request(
                method="GET",
                url=url,
                timeout=effective,
                allow_redirects=True,
            )
        except requests.Timeout as exc:
            raise FetchTimeout(url, f"timed out after {effective:.1f}s") from exc
        except requests.RequestException as exc:
            raise NetworkError(url, str(exc) or type(exc).__name__) from exc

        if resp.status_code >= 400:
            raise HttpStatusError(url, resp.status_code, resp.reason)

        try:
            html = _decode(resp)
            document = Document(html, url=resp.url or url)
        except (UnicodeDecodeError, ValueError) as exc:
            raise DecodeError(url, f"could not decode payload: {exc}") from exc

        logger.debug("GET %s -> %s (%d bytes)", url, resp.status_code, len(resp.content))
        return document

    def describe(self) -> str:
        """Human-readable description of this fetcher (for logs and diagnostics)."""
        return f"HTTP document fetcher via 'requests' (timeout={self._default_timeout}s)"

    def close(self) -> None:
        """Close every session opened by this fetcher."""
        with self._sessions_lock:
            sessions, self._sessions = self._sessions, []
        for sess in sessions:
            sess.close()
        self._local = threading.local()

    def __enter__(self) -> "HttpDocumentFetcher":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


__all__ = ["HttpDocumentFetcher", "DEFAULT_USER_AGENT"]
