from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import pandas as pd

from yieldmap.errors import LoadError


YIELD_COLUMNS = ["state_ansi", "county_ansi", "county_name", "Yield"]


@dataclass(frozen=True)
class NassCsvConfig:
    """
    USDA NASS county estimates exported from QuickStats as a spreadsheet (CSV).

    The yield value column carries the full data-item description as its header
    (e.g. "CORN, GRAIN - YIELD, MEASURED IN BU / ACRE  -  <b>VALUE</b>"), so it is
    referenced by position rather than by name.
    """
    path: Path = Path("inputs/0E8F68A9-8189-3852-9062-3D693EBA7F9D.csv")
    state_col: str = "State ANSI"
    county_code_col: str = "County ANSI"
    county_name_col: str = "County"
    value_col_index: int = 24
    geo_level_col: str = "Geo Level"
    state_level_marker: str = "STATE"


def clean_county_yield_table(
    df_raw: pd.DataFrame,
    *,
    state_col: str,
    county_code_col: str,
    county_name_col: str,
    value_col: str,
    geo_level_col: str | None = None,
    state_level_marker: str = "STATE",
) -> pd.DataFrame:
    """
    Reduce a NASS county table to the columns used for mapping.

    Returns schema:
      - state_ansi (Int64)
      - county_ansi (str, null for the combined "other counties" row; normalized at join time)
      - county_name (str)
      - Yield (float, bu/acre)
    """
    required = [state_col, county_code_col, county_name_col, value_col]
    if geo_level_col is not None:
        required.append(geo_level_col)
    missing = [c for c in required if c not in df_raw.columns]
    if missing:
        raise LoadError(
            f"NASS table missing expected columns: {missing}. "
            f"Available columns include: {list(df_raw.columns)[:30]} ..."
        )

    df = df_raw
    # The state total row would double count every county
    if geo_level_col is not None:
        level = df[geo_level_col].astype(str).str.strip().str.upper()
        df = df[level != state_level_marker.upper()]

    val = df[value_col].astype(str).str.replace(",", "", regex=False).str.strip()

    county_code = df[county_code_col].astype("string").str.strip()
    county_code = county_code.mask(county_code.isin(["", "nan"]))

    out = pd.DataFrame(
        {
            "state_ansi": pd.to_numeric(df[state_col], errors="coerce").astype("Int64"),
            "county_ansi": county_code,
            "county_name": df[county_name_col].astype(str).str.strip(),
            # "(D)" and friends mark suppressed values
            "Yield": pd.to_numeric(val, errors="coerce"),
        }
    )
    return out.reset_index(drop=True)


def load_nass_county_yield(cfg: NassCsvConfig) -> pd.DataFrame:
    path = Path(cfg.path)
    if not path.exists():
        raise LoadError(f"NASS yield table not found: {path}")

    try:
        df_raw = pd.read_csv(path, dtype=str, keep_default_na=False)
    except (OSError, ValueError) as e:
        raise LoadError(f"Could not read NASS yield table {path}: {e}") from e

    if not 0 <= cfg.value_col_index < len(df_raw.columns):
        raise LoadError(
            f"Value column index {cfg.value_col_index} out of range for {path} "
            f"({len(df_raw.columns)} columns)"
        )
    value_col = df_raw.columns[cfg.value_col_index]

    return clean_county_yield_table(
        df_raw,
        state_col=cfg.state_col,
        county_code_col=cfg.county_code_col,
        county_name_col=cfg.county_name_col,
        value_col=value_col,
        geo_level_col=cfg.geo_level_col,
        state_level_marker=cfg.state_level_marker,
    )
