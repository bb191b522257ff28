from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

import pandas as pd
import geopandas as gpd

from yieldmap.errors import JoinError


@dataclass(frozen=True)
class JoinConfig:
    """
    Column names on both sides of the county join, and the record used for
    counties the yield table does not list.

    NASS publishes a single combined value for counties with too few reports;
    in spreadsheet exports it is named "OTHER COUNTIES", in API responses
    "OTHER (COMBINED) COUNTIES". Several rows with that name are averaged into
    one fallback value.
    """
    county_col: str = "COUNTYFP"
    record_code_col: str = "county_ansi"
    record_name_col: str = "county_name"
    yield_col: str = "Yield"
    fallback_county_name: str = "OTHER COUNTIES"


@dataclass(frozen=True)
class JoinResult:
    counties: gpd.GeoDataFrame
    backfilled: list[int] = field(default_factory=list)
    fallback_yield: float | None = None


def normalize_county_codes(values: Iterable, name: str = "county code") -> pd.Series:
    """
    Coerce county codes ("001", 1.0, 1, ...) to nullable integers.

    Blank and missing entries become <NA>; anything else that is not a whole
    number raises JoinError instead of turning into a silent null.
    """
    s = values if isinstance(values, pd.Series) else pd.Series(list(values))

    codes: list = []
    bad: list = []
    for v in s.tolist():
        if pd.isna(v):
            codes.append(pd.NA)
            continue
        text = str(v).strip()
        if text == "":
            codes.append(pd.NA)
            continue
        try:
            f = float(text)
        except ValueError:
            bad.append(v)
            continue
        if not f.is_integer():
            bad.append(v)
            continue
        codes.append(int(f))

    if bad:
        raise JoinError(f"Non-numeric {name} values: {bad[:10]}")

    return pd.Series(codes, index=s.index, dtype="Int64", name=s.name)


def _fallback_yield(yields: pd.DataFrame, cfg: JoinConfig) -> float | None:
    names = yields[cfg.record_name_col].astype(str).str.strip().str.upper()
    rows = yields[names == cfg.fallback_county_name.strip().upper()]
    # API pulls carry one combined row per agricultural district; a county missing
    # from the table has no district to pick from, so the combined rows are averaged
    values = pd.to_numeric(rows[cfg.yield_col], errors="coerce").dropna()
    if values.empty:
        return None
    return float(values.mean())


def join_county_yield(
    counties: gpd.GeoDataFrame,
    yields: pd.DataFrame,
    cfg: JoinConfig = JoinConfig(),
) -> JoinResult:
    """
    Left join county polygons to yield records on the county code.

    Counties without a usable record get the fallback record's yield; their
    codes are reported in `JoinResult.backfilled`. Inputs are not modified.
    """
    missing_cols = [
        c for c in (cfg.record_code_col, cfg.record_name_col, cfg.yield_col) if c not in yields.columns
    ]
    if missing_cols:
        raise JoinError(f"Yield table missing columns: {missing_cols}")
    if cfg.county_col not in counties.columns:
        raise JoinError(f"County layer missing column: {cfg.county_col}")

    out = counties.copy()
    if cfg.yield_col in out.columns:
        out = out.drop(columns=[cfg.yield_col])
    out[cfg.county_col] = normalize_county_codes(out[cfg.county_col], name=cfg.county_col)
    if out[cfg.county_col].isna().any():
        raise JoinError(f"{int(out[cfg.county_col].isna().sum())} county polygons have no {cfg.county_col}")

    recs = pd.DataFrame(
        {
            cfg.county_col: normalize_county_codes(yields[cfg.record_code_col], name=cfg.record_code_col),
            cfg.yield_col: pd.to_numeric(yields[cfg.yield_col], errors="coerce").astype(float),
        }
    ).dropna(subset=[cfg.county_col])

    dup = recs[cfg.county_col].duplicated(keep=False)
    if dup.any():
        raise JoinError(f"Duplicate county codes in yield table: {sorted(set(recs.loc[dup, cfg.county_col]))}")

    merged = out.merge(recs, on=cfg.county_col, how="left", validate="many_to_one")

    unmatched = merged[cfg.yield_col].isna()
    backfilled = [int(c) for c in merged.loc[unmatched, cfg.county_col]]
    fallback = _fallback_yield(yields, cfg)

    if unmatched.any():
        if fallback is None:
            raise JoinError(
                f"{len(backfilled)} counties have no yield record and no usable "
                f"'{cfg.fallback_county_name}' row: {backfilled}"
            )
        merged.loc[unmatched, cfg.yield_col] = fallback

    return JoinResult(counties=merged, backfilled=backfilled, fallback_yield=fallback)


def unresolved_counties(joined: pd.DataFrame, yield_col: str = "Yield") -> pd.DataFrame:
    return joined[joined[yield_col].isna()]
