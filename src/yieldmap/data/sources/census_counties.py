from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import urllib.request

import geopandas as gpd

from yieldmap.errors import LoadError


@dataclass(frozen=True)
class CountyBoundaryConfig:
    """
    Census cartographic boundary counties for a specific vintage (year).

    If `path` is set it is read as-is (shapefile, zip, GeoPackage, ...);
    otherwise the national zip is downloaded into `raw_dir` on first use.
    """
    year: int = 2018
    resolution: str = "20m"
    raw_dir: Path = Path("inputs")
    path: Path | None = None
    state_col: str = "STATEFP"
    county_col: str = "COUNTYFP"


def county_boundary_url(cfg: CountyBoundaryConfig) -> str:
    return (
        f"https://www2.census.gov/geo/tiger/GENZ{cfg.year}/shp/"
        f"cb_{cfg.year}_us_county_{cfg.resolution}.zip"
    )


def download_county_boundaries(cfg: CountyBoundaryConfig) -> Path:
    """
    Downloads the cartographic boundary ZIP and returns the ZIP path.
    """
    cfg.raw_dir.mkdir(parents=True, exist_ok=True)
    zip_path = cfg.raw_dir / f"cb_{cfg.year}_us_county_{cfg.resolution}.zip"

    if zip_path.exists():
        return zip_path

    # Partial downloads stay under .part so a failed run is retried next time
    part_path = zip_path.with_suffix(".zip.part")
    try:
        urllib.request.urlretrieve(county_boundary_url(cfg), part_path)
    except OSError:
        part_path.unlink(missing_ok=True)
        raise
    part_path.replace(zip_path)
    return zip_path


def load_counties(cfg: CountyBoundaryConfig) -> gpd.GeoDataFrame:
    path = Path(cfg.path) if cfg.path is not None else download_county_boundaries(cfg)
    if not path.exists():
        raise LoadError(f"County boundary file not found: {path}")

    # geopandas can read zipped shapefiles directly
    gdf = gpd.read_file(path)

    missing = [c for c in (cfg.state_col, cfg.county_col) if c not in gdf.columns]
    if missing:
        raise LoadError(f"Expected columns {missing} in county boundaries {path}")
    if gdf.crs is None:
        raise LoadError(f"County boundaries have no CRS: {path}")
    return gdf


def load_state_counties(cfg: CountyBoundaryConfig, state_fips: int) -> gpd.GeoDataFrame:
    """
    Loads counties of one state. STATEFP/COUNTYFP stay as text here; they are
    normalized to integers by the join.
    """
    gdf = load_counties(cfg)

    state = gdf[cfg.state_col].astype(str).str.strip().str.zfill(2)
    out = gdf[state == str(int(state_fips)).zfill(2)].reset_index(drop=True)
    if out.empty:
        raise LoadError(f"No counties with {cfg.state_col}={state_fips} in county boundaries")
    return out
