from __future__ import annotations

from dataclasses import dataclass, field

import pandas as pd
import geopandas as gpd

from yieldmap.data.geo.raster import Extent, RasterGrid, crop_grid, pct_change_grid, read_raster_band
from yieldmap.data.sources.agmip import AgmipConfig, band_for_year
from yieldmap.data.sources.census_counties import CountyBoundaryConfig, load_state_counties
from yieldmap.data.sources.usda_nass import NassCsvConfig, load_nass_county_yield
from yieldmap.join import JoinConfig, join_county_yield
from yieldmap.projection import attach_pct_change, project_yield


@dataclass(frozen=True)
class CountyProjectionConfig:
    """
    Defaults: Indiana corn, NASS 2022 county estimates, EPIC / HadGEM2-ES /
    RCP8.5 simulations for 2022 (baseline) and 2050 (future).

    The crop extent is in raster units (degrees) and padded generously around
    the state, since the 0.5 degree cells are coarse relative to counties.
    """
    state_fips: int = 18
    yield_table: NassCsvConfig = field(default_factory=NassCsvConfig)
    counties: CountyBoundaryConfig = field(default_factory=CountyBoundaryConfig)
    join: JoinConfig = field(default_factory=JoinConfig)
    baseline: AgmipConfig = field(default_factory=lambda: AgmipConfig(start_year=2005, end_year=2035))
    future: AgmipConfig = field(default_factory=lambda: AgmipConfig(start_year=2035, end_year=2065))
    baseline_year: int = 2022
    future_year: int = 2050
    extent: Extent = field(default_factory=lambda: Extent(xmin=-88.5, xmax=-84.5, ymin=37.5, ymax=42.0))


@dataclass(frozen=True, eq=False)
class CountyProjectionResult:
    yields: pd.DataFrame
    counties: gpd.GeoDataFrame
    backfilled: list[int]
    baseline: RasterGrid
    future: RasterGrid
    change: RasterGrid


def load_simulated_yield(cfg: AgmipConfig, year: int, extent: Extent) -> RasterGrid:
    grid = read_raster_band(cfg.path, band_for_year(cfg, year))
    return crop_grid(grid, extent)


def run_county_projection(
    cfg: CountyProjectionConfig,
    *,
    yields: pd.DataFrame | None = None,
) -> CountyProjectionResult:
    """
    Observed county yield -> simulated % change by county -> projected yield.

    `yields` replaces the CSV table when given (e.g. a QuickStats API pull).
    """
    if yields is None:
        yields = load_nass_county_yield(cfg.yield_table)
    counties = load_state_counties(cfg.counties, cfg.state_fips)

    joined = join_county_yield(counties, yields, cfg.join)

    baseline = load_simulated_yield(cfg.baseline, cfg.baseline_year, cfg.extent)
    future = load_simulated_yield(cfg.future, cfg.future_year, cfg.extent)
    change = pct_change_grid(baseline, future)

    # Polygons go to the raster CRS, never the other way around
    out = joined.counties.to_crs(change.crs)
    out = attach_pct_change(out, change, id_col=cfg.join.county_col)
    out = project_yield(out, yield_col=cfg.join.yield_col)

    return CountyProjectionResult(
        yields=yields,
        counties=out,
        backfilled=joined.backfilled,
        baseline=baseline,
        future=future,
        change=change,
    )
