"""
Numeric normalisation of scraped display text.

Quote pages print numbers for humans: ``"18.4%"``, ``"3.2B"``, ``"412.50"``.
`normalize` turns such text into a float and never fails: text that does not
parse yields ``0.0`` plus a `NumericParseFailure` warning.

Unit grammar
------------
`BASELINE_RULES` (the default) recognises exactly three trailing units:

    %  -> value / 100
    M  -> value * 1e6
    B  -> value * 1e9

`EXTENDED_RULES` is an opt-in superset for tables that print full figures
(historical prices, financial statements): ``K`` and ``T`` suffixes,
``,`` thousands separators, ``(1.5)`` negatives, and placeholder cells such as
``"--"`` which read as ``0.0`` without a warning.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional

from mxm_quotekraken.extraction.diagnostics import BindingWarning, WarningReason

logger = logging.getLogger(__name__)

# Plain decimal: optional sign, digits with optional fraction, optional exponent.
_DECIMAL_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")


@dataclass(frozen=True)
class UnitRules:
    """Which suffixes and spellings `parse_numeric` accepts."""

    multipliers: Mapping[str, float]
    divisors: Mapping[str, float] = field(
        default_factory=lambda: MappingProxyType({"%": 100.0})
    )
    thousands_separators: bool = False
    paren_negative: bool = False
    blank_tokens: frozenset[str] = frozenset()


BASELINE_RULES = UnitRules(
    multipliers=MappingProxyType({"M": 1e6, "B": 1e9}),
)

EXTENDED_RULES = UnitRules(
    multipliers=MappingProxyType({"K": 1e3, "M": 1e6, "B": 1e9, "T": 1e12}),
    thousands_separators=True,
    paren_negative=True,
    blank_tokens=frozenset({"", "-", "--", "N/A", "n/a"}),
)


@dataclass(frozen=True)
class NumericToken:
    raw: str
    unit: str
    value: float
    ok: bool


def _parse_decimal(text: str) -> Optional[float]:
    if not _DECIMAL_RE.match(text):
        return None
    value = float(text)
    return value if math.isfinite(value) else None


def parse_numeric(raw: str, rules: UnitRules = BASELINE_RULES) -> NumericToken:
    """
    Parse `raw` under `rules`.

    Returns a token with ``ok=False`` and ``value=0.0`` when the text is not a
    recognised number. Never raises.
    """
    text = (raw or "").strip()

    if text in rules.blank_tokens:
        return NumericToken(raw=raw, unit="", value=0.0, ok=True)

    negative = False
    if rules.paren_negative and len(text) > 2 and text[0] == "(" and text[-1] == ")":
        negative = True
        text = text[1:-1].strip()

    unit = ""
    if text and (text[-1] in rules.multipliers or text[-1] in rules.divisors):
        unit = text[-1]
        text = text[:-1]

    if rules.thousands_separators:
        text = text.replace(",", "")

    value = _parse_decimal(text)
    if value is None:
        return NumericToken(raw=raw, unit=unit, value=0.0, ok=False)

    if unit in rules.divisors:
        value /= rules.divisors[unit]
    elif unit:
        value *= rules.multipliers[unit]
    # Scaling can overflow a finite mantissa, e.g. "1e308B".
    if not math.isfinite(value):
        return NumericToken(raw=raw, unit=unit, value=0.0, ok=False)
    if negative:
        value = -value
    return NumericToken(raw=raw, unit=unit, value=value, ok=True)


def normalize(
    raw: str,
    rules: UnitRules = BASELINE_RULES,
    *,
    diagnostics: Optional[list[BindingWarning]] = None,
    field: str = "",
) -> float:
    """
    Normalise display text to a float.

    Args:
        raw: Text as scraped, e.g. ``"12.5%"``.
        rules: Unit grammar (baseline by default).
        diagnostics: If given, a `NumericParseFailure` warning is appended
            here when `raw` does not parse.
        field: Field name used to label the warning.

    Returns:
        The parsed value, or ``0.0`` if `raw` is not numeric.
    """
    token = parse_numeric(raw, rules)
    if not token.ok:
        logger.debug("Error parsing float for %s, input: %r", field or "<value>", raw)
        if diagnostics is not None:
            diagnostics.append(
                BindingWarning(
                    field=field,
                    reason=WarningReason.NUMERIC_PARSE_FAILURE,
                    detail=f"not a number: {raw!r}",
                )
            )
    return token.value


__all__ = [
    "UnitRules",
    "BASELINE_RULES",
    "EXTENDED_RULES",
    "NumericToken",
    "parse_numeric",
    "normalize",
]
