"""Generic label x period statement records produced by `bind_table`."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class StatementRow:
    label: str = ""
    values: tuple[float, ...] = ()


@dataclass(frozen=True)
class StatementTable:
    periods: tuple[str, ...] = ()
    rows: tuple[StatementRow, ...] = ()

    def row(self, label: str) -> Optional[StatementRow]:
        """First row whose label matches `label` (case-insensitive)."""
        wanted = label.strip().lower()
        for r in self.rows:
            if r.label.lower() == wanted:
                return r
        return None

    def series(self, label: str) -> dict[str, float]:
        """Period -> value for one row; empty if the row is absent."""
        r = self.row(label)
        if r is None:
            return {}
        return dict(zip(self.periods, r.values))


__all__ = ["StatementRow", "StatementTable"]
