"""
Config loading and views for mxm-quotekraken.

Composition (later wins):
  1. packaged defaults:    mxm_quotekraken/config/default.yaml
  2. user file (optional): $MXM_CONFIG_HOME/mxm-quotekraken/config.yaml,
                           or an explicit `path`
  3. dotlist overrides:    ["sources.yahoo.run.deadline_seconds=30", ...]

The merged tree is resolved and frozen read-only.

- yahoo_view(cfg):     source-level settings for Yahoo Finance
- http_view(cfg):      HTTP fetcher settings
- run_view(cfg):       deadline / worker settings
- sections_view(cfg):  per-section path + selectors
- section_configs(cfg, symbol): ready-to-run SectionConfig list
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Sequence

import yaml
from omegaconf import DictConfig, OmegaConf
from omegaconf.errors import OmegaConfBaseException

from mxm_quotekraken.common.errors import ConfigError
from mxm_quotekraken.extraction.schema import Schema
from mxm_quotekraken.sources.yahoo.schemas import DEFAULT_SCHEMAS
from mxm_quotekraken.sources.yahoo.sections import SectionConfig, SectionName

APP_ID = "mxm-quotekraken"
SOURCE_YAHOO = "yahoo"
CONFIG_HOME_ENV = "MXM_CONFIG_HOME"

_DEFAULT_YAML = Path(__file__).with_name("default.yaml")


def user_config_path() -> Optional[Path]:
    """`$MXM_CONFIG_HOME/mxm-quotekraken/config.yaml`, if the variable is set."""
    home = os.environ.get(CONFIG_HOME_ENV)
    if not home:
        return None
    return Path(home) / APP_ID / "config.yaml"


def load_config(
    *,
    path: Optional[Path] = None,
    overrides: Sequence[str] = (),
) -> DictConfig:
    """
    Load, merge, resolve and freeze the configuration.

    Args:
        path: Explicit user config file. When omitted, the file under
            `$MXM_CONFIG_HOME` is used if it exists.
        overrides: OmegaConf dotlist entries (``key.sub=value``).

    Raises:
        ConfigError: If a file cannot be read or the merged tree is invalid.
    """
    layers: list[DictConfig] = []
    try:
        layers.append(_as_dict_config(OmegaConf.load(_DEFAULT_YAML)))

        user = path if path is not None else user_config_path()
        if user is not None:
            if user.exists():
                layers.append(_as_dict_config(OmegaConf.load(user)))
            elif path is not None:
                raise ConfigError(f"Config file not found: {user}")

        if overrides:
            layers.append(OmegaConf.from_dotlist(list(overrides)))

        cfg = _as_dict_config(OmegaConf.merge(*layers))
        OmegaConf.resolve(cfg)
    except (OmegaConfBaseException, yaml.YAMLError) as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc

    OmegaConf.set_readonly(cfg, True)
    ensure_quotes_config(cfg)
    return cfg


def _as_dict_config(node: Any) -> DictConfig:
    if not isinstance(node, DictConfig):
        raise ConfigError("Config root must be a mapping")
    return node


def make_view(cfg: DictConfig, dotted: str, *, resolve: bool = True) -> DictConfig:
    """Read-only view of the subtree at `dotted`."""
    node = OmegaConf.select(cfg, dotted, default=None)
    if node is None:
        raise ConfigError(f"Missing config node: {dotted}")
    if not isinstance(node, DictConfig):
        raise ConfigError(f"Config node is not a mapping: {dotted}")
    if resolve:
        node = OmegaConf.create(OmegaConf.to_container(node, resolve=True))
    OmegaConf.set_readonly(node, True)
    return node


def yahoo_view(cfg: DictConfig, *, resolve: bool = True) -> DictConfig:
    """Read-only view rooted at `sources.yahoo`."""
    return make_view(cfg, "sources.yahoo", resolve=resolve)


def http_view(cfg: DictConfig, *, resolve: bool = True) -> DictConfig:
    """Read-only view rooted at `sources.yahoo.http`."""
    return make_view(cfg, "sources.yahoo.http", resolve=resolve)


def run_view(cfg: DictConfig, *, resolve: bool = True) -> DictConfig:
    """Read-only view rooted at `sources.yahoo.run`."""
    return make_view(cfg, "sources.yahoo.run", resolve=resolve)


def sections_view(cfg: DictConfig, *, resolve: bool = True) -> DictConfig:
    """Read-only view rooted at `sources.yahoo.sections`."""
    return make_view(cfg, "sources.yahoo.sections", resolve=resolve)


def _must_have(d: Any, path: str, keys: Iterable[str]) -> None:
    missing = [k for k in keys if k not in d]
    if missing:
        raise ConfigError(f"Missing keys at {path}: {', '.join(missing)}")


def ensure_quotes_config(cfg: DictConfig) -> None:
    """Raise `ConfigError` unless every key the fetch pipeline reads is present."""
    _must_have(yahoo_view(cfg), "sources.yahoo", ("base_url", "http", "run", "sections"))
    _must_have(
        http_view(cfg),
        "sources.yahoo.http",
        ("user_agent", "default_timeout", "default_headers"),
    )
    _must_have(run_view(cfg), "sources.yahoo.run", ("deadline_seconds", "max_workers"))

    known = {s.value for s in SectionName}
    for name, node in sections_view(cfg).items():
        where = f"sources.yahoo.sections.{name}"
        if name not in known:
            raise ConfigError(
                f"Unknown section {where}; expected one of: {', '.join(sorted(known))}"
            )
        if not isinstance(node, DictConfig):
            raise ConfigError(f"Config node is not a mapping: {where}")
        _must_have(node, where, ("enabled", "path", "selectors"))


def section_configs(
    cfg: DictConfig,
    symbol: str,
    *,
    schemas: Mapping[SectionName, Schema] = DEFAULT_SCHEMAS,
    only: Optional[Iterable[SectionName]] = None,
) -> list[SectionConfig]:
    """
    Build one `SectionConfig` per enabled section for `symbol`.

    URL = ``base_url + symbol + "/" + path``. Sections listed in `only` are
    included even if disabled in config.
    """
    if not symbol or not symbol.strip():
        raise ValueError("symbol must be a non-empty string")

    y = yahoo_view(cfg)
    base = str(y.base_url)
    if not base.endswith("/"):
        base += "/"
    timeout = float(y.http.default_timeout)
    wanted = set(only) if only is not None else None

    out: list[SectionConfig] = []
    for section in SectionName:
        node = y.sections.get(section.value)
        if node is None:
            continue
        if wanted is not None:
            if section not in wanted:
                continue
        elif not bool(node.enabled):
            continue
        if section not in schemas:
            raise ConfigError(f"No schema registered for section {section.value}")

        selectors = {str(k): str(v) for k, v in node.selectors.items()}
        out.append(
            SectionConfig(
                section=section,
                url=f"{base}{symbol.strip()}/{str(node.path).lstrip('/')}",
                selectors=selectors,
                schema=schemas[section],
                timeout=float(node.get("timeout", timeout)),
            )
        )
    return out


__all__ = [
    "APP_ID",
    "SOURCE_YAHOO",
    "load_config",
    "make_view",
    "yahoo_view",
    "http_view",
    "run_view",
    "sections_view",
    "ensure_quotes_config",
    "section_configs",
    "user_config_path",
]
