from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd
import requests

from yieldmap.data.sources.usda_nass import clean_county_yield_table
from yieldmap.errors import LoadError


QUICKSTATS_URL = "https://quickstats.nass.usda.gov/api/api_GET/"


@dataclass(frozen=True)
class QuickStatsConfig:
    api_key_env: str = "NASS_QUICKSTATS_KEY"
    raw_dir: Path = Path("data/raw/usda_nass")
    timeout_s: int = 60


def _get_api_key(cfg: QuickStatsConfig) -> str:
    key = os.environ.get(cfg.api_key_env, "").strip()
    if not key:
        raise LoadError(f"Missing USDA NASS QuickStats API key. Set env var {cfg.api_key_env}.")
    return key


def quickstats_get(*, cfg: QuickStatsConfig, params: dict[str, Any]) -> pd.DataFrame:
    api_key = _get_api_key(cfg)
    full_params = {"key": api_key, "format": "JSON", **params}

    r = requests.get(QUICKSTATS_URL, params=full_params, timeout=cfg.timeout_s)

    try:
        r.raise_for_status()
    except requests.HTTPError as e:
        raise LoadError(f"QuickStats HTTP error: {e}\nURL: {r.url}") from e

    payload = r.json()
    if "data" not in payload:
        raise LoadError(f"Unexpected response keys={list(payload.keys())}")

    return pd.DataFrame(payload["data"])


def quickstats_county_yield(
    *,
    cfg: QuickStatsConfig,
    year: int,
    state_fips: int,
    short_desc: str = "CORN, GRAIN - YIELD, MEASURED IN BU / ACRE",
    save_raw_csv: bool = True,
) -> pd.DataFrame:
    """
    County yield estimates for one state and year, straight from the QuickStats API.

    Returns the same table as `load_nass_county_yield`. The combined row is
    named "OTHER (COMBINED) COUNTIES" in API responses, so pass that name as
    the join fallback when using this source.
    """
    params: dict[str, Any] = {
        "source_desc": "SURVEY",
        "short_desc": short_desc,
        "agg_level_desc": "COUNTY",
        "year": str(year),
        "state_fips_code": str(state_fips).zfill(2),
    }
    df_raw = quickstats_get(cfg=cfg, params=params)

    if save_raw_csv:
        cfg.raw_dir.mkdir(parents=True, exist_ok=True)
        out = cfg.raw_dir / f"quickstats_county_yield_{year}_st{str(state_fips).zfill(2)}.csv"
        df_raw.to_csv(out, index=False)

    return clean_county_yield_table(
        df_raw,
        state_col="state_fips_code",
        county_code_col="county_ansi",
        county_name_col="county_name",
        value_col="Value",
        geo_level_col="agg_level_desc",
    )
