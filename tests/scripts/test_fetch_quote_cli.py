from __future__ import annotations

import importlib.util
import json
import sys
from pathlib import Path
from types import ModuleType
from typing import Any

import pytest
from _pytest.monkeypatch import MonkeyPatch  # type: ignore[import-not-found]

from mxm_quotekraken.common.errors import ConfigError
from mxm_quotekraken.extraction.diagnostics import BindingWarning, WarningReason
from mxm_quotekraken.sources.yahoo.assembler import (
    AssemblyResult,
    SectionError,
    SectionErrorKind,
    SectionState,
)
from mxm_quotekraken.sources.yahoo.models import Profile, StockRecord
from mxm_quotekraken.sources.yahoo.sections import SectionName

SCRIPT = Path(__file__).resolve().parents[2] / "scripts" / "sources" / "yahoo" / "fetch_quote.py"


def _load_script() -> ModuleType:
    name = "fetch_quote_script"
    if name in sys.modules:
        return sys.modules[name]
    spec = importlib.util.spec_from_file_location(name, SCRIPT)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load module from {SCRIPT}")
    module = importlib.util.module_from_spec(spec)
    sys.modules[name] = module
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def cli(monkeypatch: MonkeyPatch) -> ModuleType:
    mod = _load_script()
    # keep the root logger untouched under pytest
    monkeypatch.setattr(mod, "setup_logging", lambda level: None)
    return mod


def _result(*, errors: tuple[SectionError, ...] = ()) -> AssemblyResult:
    return AssemblyResult(
        record=StockRecord(symbol="AAPL", profile=Profile(name="Apple Inc. [AAPL]")),
        errors=errors,
        warnings=(
            BindingWarning(
                field="sector",
                reason=WarningReason.MISSING_SOURCE,
                section="profile",
            ),
        ),
        states={
            SectionName.PROFILE: SectionState.BOUND,
            SectionName.NEWS: SectionState.FAILED if errors else SectionState.BOUND,
        },
    )


def test_parse_args(cli: ModuleType) -> None:
    args = cli.parse_args(
        ["AAPL", "--section", "news", "--section", "profile", "--set", "a.b=1"]
    )
    assert args.symbol == "AAPL"
    assert args.section == ["news", "profile"]
    assert args.overrides == ["a.b=1"]
    assert args.json_out is None
    assert args.show_warnings == 10


def test_parse_args_rejects_unknown_section(cli: ModuleType) -> None:
    with pytest.raises(SystemExit):
        cli.parse_args(["AAPL", "--section", "options"])


def test_config_error_exits_2(cli: ModuleType, monkeypatch: MonkeyPatch) -> None:
    def _boom(**kwargs: Any) -> Any:
        raise ConfigError("Unknown section sources.yahoo.sections.options")

    monkeypatch.setattr(cli, "load_config", _boom)
    assert cli.main(["AAPL"]) == 2


def test_main_writes_json(cli: ModuleType, monkeypatch: MonkeyPatch, tmp_path: Path) -> None:
    seen: dict[str, Any] = {}

    def _fetch(cfg: Any, symbol: str, *, sections: Any = None) -> AssemblyResult:
        seen["symbol"] = symbol
        seen["sections"] = sections
        return _result()

    monkeypatch.setattr(cli, "load_config", lambda **kwargs: object())
    monkeypatch.setattr(cli, "fetch_stock", _fetch)
    out = tmp_path / "nested" / "aapl.json"

    assert cli.main(["AAPL", "--section", "profile", "--json", str(out)]) == 0
    assert seen == {"symbol": "AAPL", "sections": [SectionName.PROFILE]}

    payload = json.loads(out.read_text(encoding="utf-8"))
    assert payload["record"]["profile"]["name"] == "Apple Inc. [AAPL]"
    assert payload["errors"] == []
    assert payload["warnings"] == ["MissingSource [profile.sector]"]


def test_main_exit_1_on_section_errors(cli: ModuleType, monkeypatch: MonkeyPatch) -> None:
    err = SectionError(SectionName.NEWS, SectionErrorKind.FETCH, "HTTP 503 Service Unavailable")
    monkeypatch.setattr(cli, "load_config", lambda **kwargs: object())
    monkeypatch.setattr(cli, "fetch_stock", lambda cfg, symbol, **kw: _result(errors=(err,)))

    assert cli.main(["AAPL"]) == 1
