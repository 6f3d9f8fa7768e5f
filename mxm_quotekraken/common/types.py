"""
Shared typing utilities for mxm-quotekraken.

`JSONLike` is a recursive alias for any value that `json.dumps` can serialize
without a custom encoder. `to_json` in the source models produces it from a
record tree, and the CLI dumps it.

Examples
--------
Valid:
    {"symbol": "AAPL", "news": [{"title": "..."}], "statistics": {"beta": 1.24}}

Invalid (non-string dict keys, non-JSON types):
    {1: "x"}                 # keys must be str
    {"periods": ("TTM",)}    # tuples must be converted to lists first
"""

from __future__ import annotations

from typing import TypeAlias

JSONScalar: TypeAlias = str | int | float | bool | None
JSONLike: TypeAlias = JSONScalar | list["JSONLike"] | dict[str, "JSONLike"]

__all__ = ["JSONScalar", "JSONLike"]
