"""
fetch_quote.py

Fetch every enabled section of a Yahoo Finance quote and print a summary.

Usage:
    poetry run python scripts/sources/yahoo/fetch_quote.py AAPL
    poetry run python scripts/sources/yahoo/fetch_quote.py VEDL.NS --section statistics --json out.json
    poetry run python scripts/sources/yahoo/fetch_quote.py MSFT --set sources.yahoo.run.deadline_seconds=20
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from mxm_quotekraken.bootstrap import fetch_stock
from mxm_quotekraken.common.errors import ConfigError
from mxm_quotekraken.config.config import load_config
from mxm_quotekraken.extraction.diagnostics import count_by_reason
from mxm_quotekraken.sources.yahoo.assembler import AssemblyResult, SectionState
from mxm_quotekraken.sources.yahoo.models import to_json
from mxm_quotekraken.sources.yahoo.sections import SectionName

console = Console()

_STATE_STYLE = {
    SectionState.BOUND: "green",
    SectionState.FAILED: "red",
    SectionState.CANCELLED: "yellow",
}


def setup_logging(level: str) -> None:
    """Log to stderr so the rich summary on stdout stays clean."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level.upper())
    # requests/urllib3 are chatty at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Fetch a Yahoo Finance quote into a typed record.")
    p.add_argument("symbol", help="Ticker symbol, e.g. AAPL or VEDL.NS")
    p.add_argument(
        "--section",
        action="append",
        choices=[s.value for s in SectionName],
        help="Only fetch this section (repeatable). Default: all enabled sections.",
    )
    p.add_argument("--config", type=Path, default=None, help="User config YAML.")
    p.add_argument(
        "--set",
        dest="overrides",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Config override in dotlist form (repeatable).",
    )
    p.add_argument("--json", dest="json_out", type=Path, default=None, help="Write the record as JSON.")
    p.add_argument("--show-warnings", type=int, default=10, help="Max warnings to list.")
    p.add_argument("--log-level", default="WARNING")
    return p.parse_args(argv)


def display_summary(symbol: str, result: AssemblyResult, max_warnings: int) -> None:
    """Render section states, errors and warnings with rich."""
    console.rule(f"[bold cyan]Quote {symbol}")

    table = Table(title="Sections")
    table.add_column("Section", style="cyan")
    table.add_column("State", justify="right")
    table.add_column("Warnings", justify="right")
    for section, state in result.states.items():
        n = sum(1 for w in result.warnings if w.section == section.value)
        style = _STATE_STYLE.get(state, "white")
        table.add_row(section.value, f"[{style}]{state.value}[/{style}]", str(n))
    console.print(table)

    stats = result.record.statistics
    profile = result.record.profile
    if profile.name:
        console.print(f"[bold]{escape(profile.name)}[/bold]  {escape(profile.sector)}")
    if result.states.get(SectionName.STATISTICS) is SectionState.BOUND:
        console.print(
            f"Profit margin {stats.profit_margin:.2%}  "
            f"Beta {stats.beta:.2f}  "
            f"Shares outstanding {stats.shares_outstanding:,.0f}"
        )

    if result.errors:
        console.print(f"\n[bold red]Section errors:[/bold red] ({len(result.errors)})")
        for err in result.errors:
            console.print(
                f"- [red]{err.section.value}[/red]: {err.kind.value}: {escape(err.message)}"
            )

    if result.warnings:
        counts = count_by_reason(result.warnings)
        summary = ", ".join(f"{reason.value}={n}" for reason, n in counts.items())
        console.print(f"\n[bold yellow]Binding warnings:[/bold yellow] {summary}")
        for w in result.warnings[:max_warnings]:
            console.print(f"- {escape(str(w))}")
        more = len(result.warnings) - max_warnings
        if more > 0:
            console.print(f"... and {more} more")
    else:
        console.print("\n[green]No binding warnings.[/green]")

    console.rule()


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)

    try:
        cfg = load_config(path=args.config, overrides=args.overrides)
    except ConfigError as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        return 2

    sections = [SectionName(s) for s in args.section] if args.section else None
    result = fetch_stock(cfg, args.symbol, sections=sections)

    display_summary(args.symbol, result, args.show_warnings)

    if args.json_out:
        args.json_out.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "record": to_json(result.record),
            "errors": [str(e) for e in result.errors],
            "warnings": [str(w) for w in result.warnings],
        }
        args.json_out.write_text(
            json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8"
        )
        console.print(f"Wrote {args.json_out}")

    return 0 if result.ok else 1


if __name__ == "__main__":
    sys.exit(main())
