"""
Positional schemas: how to read flat lists of scraped text into typed records.

A quote page is scraped with a handful of generic selectors (for instance
every ``td.value`` cell on the statistics page), giving long flat lists of
strings. The schema is the *only* place that knows that cell 2 is the profit
margin and that it is a percentage. Keeping that knowledge in named,
version-tagged tables makes layout coupling explicit and auditable.

Three schema shapes are provided:

- `FieldSchema`: named `FieldSpec` entries bound onto one record type, laid
  out as a single record, as fixed-width rows, or as parallel lists zipped by
  index (see `Layout`).
- `TableSchema`: a label x period statement (income statement, balance sheet).
- `CompositeSchema`: a root `FieldSchema` with nested records bound into
  named attributes.

Schemas validate themselves on construction: referencing a field that the
record type does not have, or a position outside a row, raises `ValueError`.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional, TypeAlias

from mxm_quotekraken.extraction.normalize import (
    BASELINE_RULES,
    EXTENDED_RULES,
    UnitRules,
)


class ValueType(str, Enum):
    TEXT = "text"
    CURRENCY_TEXT = "currencyText"
    PERCENT_FLOAT = "percentFloat"
    SCALED_FLOAT = "scaledFloat"
    PLAIN_FLOAT = "plainFloat"
    INTEGER = "integer"
    TEXT_LIST = "textList"

    @property
    def is_numeric(self) -> bool:
        return self in _NUMERIC

    def zero_value(self) -> Any:
        if self in (ValueType.TEXT, ValueType.CURRENCY_TEXT):
            return ""
        if self is ValueType.INTEGER:
            return 0
        if self is ValueType.TEXT_LIST:
            return ()
        return 0.0


_NUMERIC = frozenset(
    {
        ValueType.PERCENT_FLOAT,
        ValueType.SCALED_FLOAT,
        ValueType.PLAIN_FLOAT,
        ValueType.INTEGER,
    }
)


class Layout(str, Enum):
    RECORD = "record"  # one record; positions index into the source buckets
    ROWS = "rows"  # one record per `stride` cells of the source bucket
    ZIPPED = "zipped"  # one record per index i across parallel buckets


@dataclass(frozen=True)
class FieldSpec:
    """
    One schema entry.

    Attributes:
        field: Attribute name on the record type.
        value_type: How the text is converted.
        position: Index into the source bucket (or into the row for `ROWS`).
        source: Selector key to read; defaults to the schema's `source`.
        span: Only for `TEXT_LIST`: number of cells to take from `position`.
            ``None`` means "to the end of the bucket".
    """

    field: str
    value_type: ValueType
    position: int = 0
    source: Optional[str] = None
    span: Optional[int] = None

    @property
    def last_position(self) -> Optional[int]:
        """Highest index read, or ``None`` for open-ended lists."""
        if self.value_type is ValueType.TEXT_LIST:
            if self.span is None:
                return None
            return self.position + self.span - 1
        return self.position


@dataclass(frozen=True)
class FieldSchema:
    """A named, versioned, ordered list of `FieldSpec` for one record type."""

    name: str
    version: str
    record_type: type
    fields: tuple[FieldSpec, ...]
    source: Optional[str] = None
    layout: Layout = Layout.RECORD
    stride: Optional[int] = None
    rules: UnitRules = BASELINE_RULES

    def __post_init__(self) -> None:
        if not dataclasses.is_dataclass(self.record_type):
            raise ValueError(f"{self.name}: record_type must be a dataclass")
        known = {f.name for f in dataclasses.fields(self.record_type)}
        seen: set[str] = set()
        for spec in self.fields:
            if spec.field not in known:
                raise ValueError(
                    f"{self.name}: {self.record_type.__name__} has no field {spec.field!r}"
                )
            if spec.field in seen:
                raise ValueError(f"{self.name}: duplicate field {spec.field!r}")
            seen.add(spec.field)
            if spec.position < 0:
                raise ValueError(f"{self.name}: negative position for {spec.field!r}")
            if self.source_of(spec) is None:
                raise ValueError(f"{self.name}: no source for {spec.field!r}")
        if self.layout is Layout.ROWS:
            if not self.stride or self.stride <= 0:
                raise ValueError(f"{self.name}: ROWS layout needs a positive stride")
            for spec in self.fields:
                last = spec.last_position
                if last is None or last >= self.stride:
                    raise ValueError(
                        f"{self.name}: {spec.field!r} does not fit in a row of {self.stride}"
                    )

    def source_of(self, spec: FieldSpec) -> Optional[str]:
        return spec.source or self.source

    def sources(self) -> list[str]:
        """Selector keys read by this schema, in first-use order."""
        out: list[str] = []
        for spec in self.fields:
            key = self.source_of(spec)
            if key is not None and key not in out:
                out.append(key)
        return out

    def expected_length(self, source: str) -> Optional[int]:
        """
        Bucket length implied by the highest position declared for `source`.

        ``None`` when any field reads an open-ended slice of that bucket (no
        fixed length can be expected).
        """
        highest = -1
        for spec in self.fields:
            if self.source_of(spec) != source:
                continue
            last = spec.last_position
            if last is None:
                return None
            highest = max(highest, last)
        return highest + 1 if highest >= 0 else None

    def zero_values(self) -> dict[str, Any]:
        return {spec.field: spec.value_type.zero_value() for spec in self.fields}


@dataclass(frozen=True)
class TableSchema:
    """
    A label x period statement table.

    `period_source` yields the header row: `header_cells` leading labels
    (e.g. "Breakdown") followed by one cell per period. `label_source` yields
    one label per row and `value_source` the row values, row-major, one cell
    per period.
    """

    name: str
    version: str
    period_source: str
    label_source: str
    value_source: str
    header_cells: int = 1
    value_type: ValueType = ValueType.PLAIN_FLOAT
    rules: UnitRules = EXTENDED_RULES


@dataclass(frozen=True)
class CompositeSchema:
    """A root schema plus nested schemas bound into attributes of the root record."""

    root: FieldSchema
    parts: Mapping[str, FieldSchema] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def __post_init__(self) -> None:
        known = {f.name for f in dataclasses.fields(self.root.record_type)}
        for attr in self.parts:
            if attr not in known:
                raise ValueError(
                    f"{self.root.name}: {self.root.record_type.__name__} has no field {attr!r}"
                )

    @property
    def name(self) -> str:
        return self.root.name

    @property
    def version(self) -> str:
        return self.root.version


Schema: TypeAlias = FieldSchema | TableSchema | CompositeSchema


__all__ = [
    "ValueType",
    "Layout",
    "FieldSpec",
    "FieldSchema",
    "TableSchema",
    "CompositeSchema",
    "Schema",
]
