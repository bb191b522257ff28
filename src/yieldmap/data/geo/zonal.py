from __future__ import annotations

from pathlib import Path

import numpy as np
import pandas as pd
import geopandas as gpd
import rasterio
from exactextract import exact_extract

from yieldmap.data.geo.raster import RasterGrid, open_grid
from yieldmap.errors import AggregationError


_ZONE_COL = "_zone"


def zonal_mean(
    *,
    polygons: gpd.GeoDataFrame,
    raster: RasterGrid | str | Path,
    id_col: str,
) -> pd.DataFrame:
    """
    Coverage-weighted mean of raster cells within each polygon, using exactextract.

    Every cell that intersects a polygon contributes, weighted by the fraction
    of the cell the polygon covers. NaN / nodata cells are ignored, and a
    polygon without any valid cell gets NaN. Polygons are reprojected to the
    raster CRS; the raster itself is never resampled.

    Returns one row per polygon, in input order: [id_col, "raster_mean"].
    """
    if polygons.crs is None:
        raise AggregationError("polygons must have a CRS set")
    if id_col not in polygons.columns:
        raise AggregationError(f"ID column '{id_col}' not found in polygons")

    opener = open_grid(raster) if isinstance(raster, RasterGrid) else rasterio.open(raster)

    with opener as src:
        polys = polygons.to_crs(src.crs) if polygons.crs != src.crs else polygons
        # String zone ids survive exactextract's attribute passthrough unchanged
        zones = gpd.GeoDataFrame(
            {_ZONE_COL: [str(i) for i in range(len(polys))]},
            geometry=polys.geometry.values,
            crs=polys.crs,
        )

        stats = exact_extract(
            src,
            zones,
            ["mean"],
            include_cols=[_ZONE_COL],
            output="pandas",
        )

    df = pd.DataFrame(stats)

    # Multi-band sources name the stat per band (e.g. "band_1_mean")
    if "mean" in df.columns:
        mean_col = "mean"
    else:
        mean_candidates = [c for c in df.columns if "mean" in c.lower()]
        if not mean_candidates:
            raise AggregationError(
                f"No mean-like column found in exactextract output. "
                f"Got columns: {list(df.columns)}"
            )
        mean_col = mean_candidates[0]

    means = df.set_index(df[_ZONE_COL].astype(str))[mean_col]
    values = pd.to_numeric(means.reindex(zones[_ZONE_COL]), errors="coerce").to_numpy(dtype=float)

    return pd.DataFrame(
        {
            id_col: polygons[id_col].to_numpy(),
            "raster_mean": np.where(np.isfinite(values), values, np.nan),
        }
    )
