from __future__ import annotations

import numpy as np
import geopandas as gpd

from yieldmap.data.geo.raster import RasterGrid
from yieldmap.data.geo.zonal import zonal_mean


PCT_CHANGE_COL = "yieldPctChange"
PCT_CHANGE_RAW_COL = "yieldPctChangeRaw"
PROJECTED_COL = "YieldProjected"


def attach_pct_change(
    counties: gpd.GeoDataFrame,
    change: RasterGrid,
    *,
    id_col: str = "COUNTYFP",
) -> gpd.GeoDataFrame:
    """
    Add the county mean of a percentage-change grid.

    Columns added:
      - yieldPctChangeRaw: zonal mean (NaN where no valid cell overlaps)
      - yieldPctChange: the same, rounded to whole percent (half to even)
    """
    stats = zonal_mean(polygons=counties, raster=change, id_col=id_col)

    out = counties.copy()
    raw = stats["raster_mean"].to_numpy(dtype=float)
    out[PCT_CHANGE_RAW_COL] = raw
    out[PCT_CHANGE_COL] = np.round(raw, 0)
    return out


def project_yield(
    counties: gpd.GeoDataFrame,
    *,
    yield_col: str = "Yield",
    pct_col: str = PCT_CHANGE_COL,
) -> gpd.GeoDataFrame:
    """
    YieldProjected = Yield * (1 + pct / 100). A missing change stays missing.
    """
    out = counties.copy()
    base = out[yield_col].to_numpy(dtype=float)
    pct = out[pct_col].to_numpy(dtype=float)
    out[PROJECTED_COL] = base * (1.0 + pct / 100.0)
    return out
