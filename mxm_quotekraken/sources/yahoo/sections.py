"""
Sections of a Yahoo Finance quote and their binding entry point.

A section is one logical category of data (profile, news, statistics,
history, financial statements), served by its own page and bound
independently. The caller supplies one `SectionConfig` per section: the
`(url, selectors, schema)` triple. `bind_section` picks the binder that
matches the schema shape and tags every warning with the section name.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from mxm_quotekraken.extraction.binder import (
    bind,
    bind_composite,
    bind_rows,
    bind_table,
    bind_zipped,
)
from mxm_quotekraken.extraction.diagnostics import BindingWarning, with_section
from mxm_quotekraken.extraction.dispatch import ExtractionResult, SelectorSet
from mxm_quotekraken.extraction.schema import (
    CompositeSchema,
    FieldSchema,
    Layout,
    Schema,
    TableSchema,
)


class SectionName(str, Enum):
    PROFILE = "profile"
    NEWS = "news"
    STATISTICS = "statistics"
    HISTORY = "history"
    FINANCIAL = "financial"
    BALANCE_SHEET = "balance_sheet"


@dataclass(frozen=True)
class SectionConfig:
    """Where to fetch a section, what to select, and how to bind it."""

    section: SectionName
    url: str
    selectors: SelectorSet
    schema: Schema
    timeout: Optional[float] = None


def bind_section(
    section: SectionName, extraction: ExtractionResult, schema: Schema
) -> tuple[Any, list[BindingWarning]]:
    """Bind one section's extraction with the binder its schema calls for."""
    record: Any
    if isinstance(schema, CompositeSchema):
        record, diagnostics = bind_composite(extraction, schema)
    elif isinstance(schema, TableSchema):
        record, diagnostics = bind_table(extraction, schema)
    elif isinstance(schema, FieldSchema) and schema.layout is Layout.ROWS:
        record, diagnostics = bind_rows(extraction, schema)
    elif isinstance(schema, FieldSchema) and schema.layout is Layout.ZIPPED:
        record, diagnostics = bind_zipped(extraction, schema)
    elif isinstance(schema, FieldSchema):
        record, diagnostics = bind(extraction, schema)
    else:
        raise TypeError(f"Unsupported schema for {section.value}: {type(schema).__name__}")
    return record, with_section(diagnostics, section.value)


__all__ = ["SectionName", "SectionConfig", "bind_section"]
