"""
Exception taxonomy for mxm-quotekraken.

Only *hard* failures are exceptions. Everything that can go wrong while
binding extracted text onto a schema is reported as a
`mxm_quotekraken.extraction.diagnostics.BindingWarning` instead.

Hierarchy
---------
QuoteKrakenError
├── FetchError            one document could not be obtained
│   ├── NetworkError      connection-level failure
│   │   └── FetchTimeout  the per-call timeout elapsed
│   ├── HttpStatusError   the server answered with 4xx/5xx
│   └── DecodeError       the payload could not be decoded/parsed
└── ConfigError           missing or malformed configuration
"""

from __future__ import annotations

from typing import Optional


class QuoteKrakenError(Exception):
    """Base class for all errors raised by mxm-quotekraken."""


class FetchError(QuoteKrakenError):
    """A document for `url` could not be fetched."""

    def __init__(self, url: str, message: str) -> None:
        super().__init__(f"{message} ({url})")
        self.url = url
        self.message = message


class NetworkError(FetchError):
    pass


class FetchTimeout(NetworkError):
    pass


class HttpStatusError(FetchError):
    """The server responded, but with an error status."""

    def __init__(self, url: str, status: int, reason: Optional[str] = None) -> None:
        text = f"HTTP {status}" + (f" {reason}" if reason else "")
        super().__init__(url, text)
        self.status = status


class DecodeError(FetchError):
    pass


class ConfigError(QuoteKrakenError):
    pass


__all__ = [
    "QuoteKrakenError",
    "FetchError",
    "NetworkError",
    "FetchTimeout",
    "HttpStatusError",
    "DecodeError",
    "ConfigError",
]
