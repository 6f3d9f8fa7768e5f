"""
Schema binding: ExtractionResult -> typed record(s) + warnings.

Every binder here is deterministic, has no side effects beyond its return
value, and never raises because of extraction content. Missing or
short buckets leave fields at their zero value and produce `BindingWarning`s:

- ``MissingSource``         the key is absent or the position is out of range
- ``SchemaLengthMismatch``  a bucket's length differs from what the schema
                            declares (the usual symptom of page-layout drift)
- ``NumericParseFailure``   a numeric cell did not parse (value 0.0)
- ``ListLengthMismatch``    parallel lists zipped by index differ in length
"""

from __future__ import annotations

import dataclasses
from typing import Any, Mapping, Sequence

from mxm_quotekraken.extraction.diagnostics import BindingWarning, WarningReason
from mxm_quotekraken.extraction.normalize import UnitRules, normalize
from mxm_quotekraken.extraction.schema import (
    CompositeSchema,
    FieldSchema,
    FieldSpec,
    Layout,
    TableSchema,
    ValueType,
)
from mxm_quotekraken.extraction.tables import StatementRow, StatementTable

Extraction = Mapping[str, Sequence[str]]


# ----------------------------------------------------------------------
# Value conversion
# ----------------------------------------------------------------------


def convert(
    raw: str,
    value_type: ValueType,
    rules: UnitRules,
    *,
    field: str,
    diagnostics: list[BindingWarning],
) -> Any:
    """Convert one scraped cell according to `value_type`."""
    if value_type in (ValueType.TEXT, ValueType.CURRENCY_TEXT):
        return raw.strip()
    if value_type is ValueType.INTEGER:
        return int(normalize(raw, rules, diagnostics=diagnostics, field=field))
    if value_type is ValueType.TEXT_LIST:
        return (raw.strip(),)
    return normalize(raw, rules, diagnostics=diagnostics, field=field)


def _missing(field: str, detail: str) -> BindingWarning:
    return BindingWarning(field=field, reason=WarningReason.MISSING_SOURCE, detail=detail)


def _read_spec(
    bucket: Sequence[str] | None,
    spec: FieldSpec,
    source: str,
    rules: UnitRules,
    diagnostics: list[BindingWarning],
) -> Any:
    """Read one field from `bucket`; zero value + warning when unavailable."""
    if bucket is None:
        diagnostics.append(_missing(spec.field, f"no selector result for {source!r}"))
        return spec.value_type.zero_value()

    if spec.value_type is ValueType.TEXT_LIST:
        if spec.position > len(bucket) or (
            spec.span is not None and spec.position + spec.span > len(bucket)
        ):
            diagnostics.append(
                _missing(
                    spec.field,
                    f"{source}[{spec.position}:{spec.last_position}] out of range "
                    f"(len={len(bucket)})",
                )
            )
            return spec.value_type.zero_value()
        end = None if spec.span is None else spec.position + spec.span
        return tuple(v.strip() for v in bucket[spec.position : end])

    if spec.position >= len(bucket):
        diagnostics.append(
            _missing(
                spec.field,
                f"{source}[{spec.position}] out of range (len={len(bucket)})",
            )
        )
        return spec.value_type.zero_value()

    return convert(
        bucket[spec.position],
        spec.value_type,
        rules,
        field=spec.field,
        diagnostics=diagnostics,
    )


def _length_mismatch(source: str, got: int, expected: int) -> BindingWarning:
    return BindingWarning(
        field=source,
        reason=WarningReason.SCHEMA_LENGTH_MISMATCH,
        detail=f"expected {expected} values, got {got}",
    )


# ----------------------------------------------------------------------
# Binders
# ----------------------------------------------------------------------


def bind(extraction: Extraction, schema: FieldSchema) -> tuple[Any, list[BindingWarning]]:
    """
    Bind a single record.

    Returns:
        (record, warnings). The record is a fresh instance of
        ``schema.record_type``; fields not covered by the schema keep the
        record type's own defaults.
    """
    if schema.layout is Layout.ROWS:
        raise ValueError(f"{schema.name}: use bind_rows for ROWS layout")
    if schema.layout is Layout.ZIPPED:
        raise ValueError(f"{schema.name}: use bind_zipped for ZIPPED layout")

    diagnostics: list[BindingWarning] = []

    for source in schema.sources():
        expected = schema.expected_length(source)
        bucket = extraction.get(source)
        if bucket is not None and expected is not None and len(bucket) != expected:
            diagnostics.append(_length_mismatch(source, len(bucket), expected))

    values: dict[str, Any] = {}
    for spec in schema.fields:
        source = schema.source_of(spec) or ""
        values[spec.field] = _read_spec(
            extraction.get(source), spec, source, schema.rules, diagnostics
        )

    return schema.record_type(**values), diagnostics


def bind_rows(
    extraction: Extraction, schema: FieldSchema
) -> tuple[tuple[Any, ...], list[BindingWarning]]:
    """
    Bind one record per ``schema.stride`` cells of the schema's source bucket.

    A trailing partial row is dropped and reported as `SchemaLengthMismatch`.
    """
    if schema.layout is not Layout.ROWS or not schema.stride:
        raise ValueError(f"{schema.name}: bind_rows needs a ROWS layout with a stride")

    diagnostics: list[BindingWarning] = []
    source = schema.source or ""
    bucket = extraction.get(source)
    if bucket is None:
        diagnostics.append(_missing(source, f"no selector result for {source!r}"))
        return (), diagnostics

    stride = schema.stride
    full_rows, leftover = divmod(len(bucket), stride)
    if leftover:
        diagnostics.append(
            _length_mismatch(source, len(bucket), (full_rows + 1) * stride)
        )

    records: list[Any] = []
    for i in range(full_rows):
        row = bucket[i * stride : (i + 1) * stride]
        values: dict[str, Any] = {}
        for spec in schema.fields:
            values[spec.field] = _read_spec(row, spec, source, schema.rules, diagnostics)
        records.append(schema.record_type(**values))

    return tuple(records), diagnostics


def bind_zipped(
    extraction: Extraction, schema: FieldSchema
) -> tuple[tuple[Any, ...], list[BindingWarning]]:
    """
    Zip parallel buckets by index: item ``i`` takes element ``i`` of every
    field's source list.

    Only ``min(lengths)`` items are produced; unequal lengths yield one
    `ListLengthMismatch` warning. A key absent from the extraction does not
    limit the item count: its field keeps the zero value in every item and a
    `MissingSource` warning is recorded once.
    """
    diagnostics: list[BindingWarning] = []

    lengths: dict[str, int] = {}
    for spec in schema.fields:
        key = schema.source_of(spec) or ""
        bucket = extraction.get(key)
        if bucket is None:
            diagnostics.append(_missing(spec.field, f"no selector result for {key!r}"))
            continue
        lengths[key] = len(bucket)

    count = min(lengths.values()) if lengths else 0
    if len(set(lengths.values())) > 1:
        shape = ", ".join(f"{k}={n}" for k, n in lengths.items())
        diagnostics.append(
            BindingWarning(
                field=schema.name,
                reason=WarningReason.LIST_LENGTH_MISMATCH,
                detail=f"truncated to {count} items ({shape})",
            )
        )

    items: list[Any] = []
    for i in range(count):
        values: dict[str, Any] = {}
        for spec in schema.fields:
            key = schema.source_of(spec) or ""
            if key not in lengths:
                values[spec.field] = spec.value_type.zero_value()
                continue
            values[spec.field] = convert(
                extraction[key][i],
                spec.value_type,
                schema.rules,
                field=spec.field,
                diagnostics=diagnostics,
            )
        items.append(schema.record_type(**values))

    return tuple(items), diagnostics


def bind_table(
    extraction: Extraction, schema: TableSchema
) -> tuple[StatementTable, list[BindingWarning]]:
    """
    Bind a label x period statement.

    Values are read row-major, one cell per period. Rows whose cells run past
    the end of the value bucket are zero-filled and reported.
    """
    diagnostics: list[BindingWarning] = []

    header = extraction.get(schema.period_source)
    labels = extraction.get(schema.label_source)
    cells = extraction.get(schema.value_source)

    for key, bucket in (
        (schema.period_source, header),
        (schema.label_source, labels),
        (schema.value_source, cells),
    ):
        if bucket is None:
            diagnostics.append(_missing(key, f"no selector result for {key!r}"))
    if header is None or labels is None or cells is None:
        return StatementTable(), diagnostics

    periods = tuple(p.strip() for p in header[schema.header_cells :])
    width = len(periods)
    expected = width * len(labels)
    if len(cells) != expected:
        diagnostics.append(_length_mismatch(schema.value_source, len(cells), expected))

    zero = schema.value_type.zero_value()
    rows: list[StatementRow] = []
    for r, label in enumerate(labels):
        label = label.strip()
        values: list[Any] = []
        for c in range(width):
            idx = r * width + c
            if idx >= len(cells):
                values.append(zero)
                continue
            values.append(
                convert(
                    cells[idx],
                    schema.value_type,
                    schema.rules,
                    field=f"{label}[{periods[c]}]",
                    diagnostics=diagnostics,
                )
            )
        if r * width + width > len(cells):
            diagnostics.append(_missing(label, "row values out of range"))
        rows.append(StatementRow(label=label, values=tuple(values)))

    return StatementTable(periods=periods, rows=tuple(rows)), diagnostics


def bind_composite(
    extraction: Extraction, schema: CompositeSchema
) -> tuple[Any, list[BindingWarning]]:
    """Bind the root record, then each nested part into its attribute."""
    record, diagnostics = bind(extraction, schema.root)
    nested: dict[str, Any] = {}
    for attr, part in schema.parts.items():
        value, part_diagnostics = bind(extraction, part)
        nested[attr] = value
        diagnostics.extend(part_diagnostics)
    if nested:
        record = dataclasses.replace(record, **nested)
    return record, diagnostics


__all__ = [
    "convert",
    "bind",
    "bind_rows",
    "bind_zipped",
    "bind_table",
    "bind_composite",
]
