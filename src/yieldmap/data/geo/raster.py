from __future__ import annotations

import math
from contextlib import contextmanager
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Iterator

import numpy as np
import rasterio
from affine import Affine
from rasterio.crs import CRS
from rasterio.errors import RasterioIOError
from rasterio.io import DatasetReader, MemoryFile
from rasterio.windows import Window
from rasterio.windows import transform as window_transform

from yieldmap.errors import AggregationError, LoadError


# Cell edges closer than this (in cell units) count as aligned
_EDGE_TOL = 1e-9


@dataclass(frozen=True)
class Extent:
    """Rectangular window in the raster's native coordinate units."""
    xmin: float
    xmax: float
    ymin: float
    ymax: float

    def __post_init__(self) -> None:
        if not (self.xmin < self.xmax and self.ymin < self.ymax):
            raise AggregationError(
                f"Invalid extent: xmin={self.xmin}, xmax={self.xmax}, ymin={self.ymin}, ymax={self.ymax}"
            )


@dataclass(frozen=True, eq=False)
class RasterGrid:
    """
    Single band of a north-up raster held in memory.

    Missing cells are NaN.
    """
    values: np.ndarray
    transform: Affine
    crs: CRS
    band: int = 1

    @property
    def shape(self) -> tuple[int, int]:
        return self.values.shape

    @property
    def res(self) -> tuple[float, float]:
        return abs(self.transform.a), abs(self.transform.e)

    @property
    def extent(self) -> Extent:
        height, width = self.shape
        xmin, ymax = self.transform * (0, 0)
        xmax, ymin = self.transform * (width, height)
        return Extent(xmin=xmin, xmax=xmax, ymin=ymin, ymax=ymax)


def _north_up(values: np.ndarray, transform: Affine) -> tuple[np.ndarray, Affine]:
    if transform.b != 0 or transform.d != 0:
        raise LoadError("Rotated rasters are not supported")
    if transform.e > 0:
        # south-up grids (common in netCDF) are flipped so row 0 is the northern edge
        height = values.shape[0]
        values = values[::-1, :]
        transform = Affine(transform.a, 0.0, transform.c, 0.0, -transform.e, transform.f + transform.e * height)
    return values, transform


def read_raster_band(
    path: str | Path,
    band: int = 1,
    *,
    default_crs: str = "EPSG:4326",
) -> RasterGrid:
    """
    Read one band of a raster file (GeoTIFF, netCDF, ... anything GDAL opens).

    Masked or fill-value cells become NaN. Files without a coordinate
    reference system (typical for AgMIP netCDF) are taken to be `default_crs`.
    """
    path = Path(path)
    if not path.exists():
        raise LoadError(f"Raster file not found: {path}")

    try:
        with rasterio.open(path) as src:
            if not 1 <= int(band) <= src.count:
                raise LoadError(f"Band {band} out of range for {path} ({src.count} bands)")
            data = src.read(int(band), masked=True).astype("float64").filled(np.nan)
            transform = src.transform
            crs = src.crs if src.crs is not None else CRS.from_user_input(default_crs)
    except RasterioIOError as e:
        raise LoadError(f"Could not read raster {path}: {e}") from e

    data, transform = _north_up(data, transform)
    return RasterGrid(values=data, transform=transform, crs=crs, band=int(band))


def crop_grid(grid: RasterGrid, extent: Extent) -> RasterGrid:
    """
    Keep every cell whose footprint intersects `extent`.

    Cells are never split or resampled; an extent that contains the whole
    grid returns it unchanged.
    """
    bounds = grid.extent
    if (
        extent.xmax <= bounds.xmin
        or extent.xmin >= bounds.xmax
        or extent.ymax <= bounds.ymin
        or extent.ymin >= bounds.ymax
    ):
        raise AggregationError(f"Extent {extent} does not overlap raster extent {bounds}")

    height, width = grid.shape
    xres, yres = grid.res
    x0, y0 = grid.transform.c, grid.transform.f

    col_start = max(0, math.floor((extent.xmin - x0) / xres + _EDGE_TOL))
    col_stop = min(width, math.ceil((extent.xmax - x0) / xres - _EDGE_TOL))
    row_start = max(0, math.floor((y0 - extent.ymax) / yres + _EDGE_TOL))
    row_stop = min(height, math.ceil((y0 - extent.ymin) / yres - _EDGE_TOL))

    window = Window(col_start, row_start, col_stop - col_start, row_stop - row_start)
    values = grid.values[row_start:row_stop, col_start:col_stop].copy()
    return replace(grid, values=values, transform=window_transform(window, grid.transform))


def check_aligned(a: RasterGrid, b: RasterGrid) -> None:
    if a.shape != b.shape:
        raise AggregationError(f"Grid shapes differ: {a.shape} vs {b.shape}")
    if not a.transform.almost_equals(b.transform):
        raise AggregationError(f"Grid transforms differ:\n{a.transform}\nvs\n{b.transform}")
    if a.crs != b.crs:
        raise AggregationError(f"Grid CRS differ: {a.crs} vs {b.crs}")


def pct_change_grid(baseline: RasterGrid, future: RasterGrid) -> RasterGrid:
    """
    Per-cell relative change (future - baseline) / baseline * 100.

    A zero or missing baseline cell gives NaN for that cell.
    """
    check_aligned(baseline, future)

    base = baseline.values.astype("float64")
    fut = future.values.astype("float64")
    with np.errstate(divide="ignore", invalid="ignore"):
        change = (fut - base) / base * 100.0
    change[~np.isfinite(base) | (base == 0)] = np.nan

    return RasterGrid(values=change, transform=baseline.transform, crs=baseline.crs, band=1)


@contextmanager
def open_grid(grid: RasterGrid) -> Iterator[DatasetReader]:
    """
    Expose an in-memory grid as an open rasterio dataset (NaN as nodata).
    """
    height, width = grid.shape
    profile = {
        "driver": "GTiff",
        "height": height,
        "width": width,
        "count": 1,
        "dtype": "float64",
        "crs": grid.crs,
        "transform": grid.transform,
        "nodata": np.nan,
    }
    with MemoryFile() as mem:
        with mem.open(**profile) as dst:
            dst.write(grid.values.astype("float64"), 1)
        with mem.open() as src:
            yield src
