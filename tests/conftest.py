import geopandas as gpd
import matplotlib
import numpy as np
import pytest
import rasterio
from rasterio.crs import CRS
from rasterio.transform import from_origin
from shapely.geometry import box

matplotlib.use("Agg")

from yieldmap.data.geo.raster import RasterGrid  # noqa: E402


# 10 x 10 half-degree cells covering lon -89..-84, lat 37..42
GRID_TRANSFORM = from_origin(-89.0, 42.0, 0.5, 0.5)


@pytest.fixture
def make_grid():
    def _make(values, transform=GRID_TRANSFORM, crs="EPSG:4326"):
        return RasterGrid(
            values=np.asarray(values, dtype=float),
            transform=transform,
            crs=CRS.from_user_input(crs),
        )

    return _make


@pytest.fixture
def write_raster():
    def _write(path, bands, transform=GRID_TRANSFORM, crs="EPSG:4326", nodata=None):
        bands = [np.asarray(b, dtype="float32") for b in bands]
        height, width = bands[0].shape
        with rasterio.open(
            path,
            "w",
            driver="GTiff",
            height=height,
            width=width,
            count=len(bands),
            dtype="float32",
            crs=crs,
            transform=transform,
            nodata=nodata,
        ) as dst:
            for i, b in enumerate(bands, start=1):
                dst.write(b, i)
        return path

    return _write


@pytest.fixture
def counties():
    """
    Three 1x1 degree counties aligned to the test grid (2x2 cells each).
    Codes are text, as in the census layer.

      001: cols 2-3, rows 2-3
      003: cols 4-5, rows 2-3
      005: cols 6-7, rows 4-5
    """
    return gpd.GeoDataFrame(
        {
            "STATEFP": ["18", "18", "18"],
            "COUNTYFP": ["001", "003", "005"],
            "NAME": ["Adams", "Allen", "Bartholomew"],
        },
        geometry=[box(-88.0, 40.0, -87.0, 41.0), box(-87.0, 40.0, -86.0, 41.0), box(-86.0, 39.0, -85.0, 40.0)],
        crs="EPSG:4326",
    )
