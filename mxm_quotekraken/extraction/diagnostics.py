"""
Structured soft-failure reporting for the binding pipeline.

Binding and numeric normalisation never raise on bad input. They record what
went wrong as `BindingWarning` objects and carry on with zero values, so a
caller (or a test) can assert on layout drift without capturing log output.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, Optional


class WarningReason(str, Enum):
    MISSING_SOURCE = "MissingSource"
    SCHEMA_LENGTH_MISMATCH = "SchemaLengthMismatch"
    NUMERIC_PARSE_FAILURE = "NumericParseFailure"
    LIST_LENGTH_MISMATCH = "ListLengthMismatch"


@dataclass(frozen=True)
class BindingWarning:
    field: str
    reason: WarningReason
    detail: str = ""
    section: Optional[str] = None

    def __str__(self) -> str:
        where = f"{self.section}." if self.section else ""
        tail = f": {self.detail}" if self.detail else ""
        return f"{self.reason.value} [{where}{self.field}]{tail}"


def with_section(
    warnings: Iterable[BindingWarning], section: str
) -> list[BindingWarning]:
    """Tag warnings with the section they were produced in."""
    return [replace(w, section=section) for w in warnings]


def count_by_reason(warnings: Iterable[BindingWarning]) -> dict[WarningReason, int]:
    counts: dict[WarningReason, int] = {}
    for w in warnings:
        counts[w.reason] = counts.get(w.reason, 0) + 1
    return counts


__all__ = ["WarningReason", "BindingWarning", "with_section", "count_by_reason"]
