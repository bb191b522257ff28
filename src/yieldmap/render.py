from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np
import geopandas as gpd
import matplotlib
import matplotlib.pyplot as plt
from matplotlib import patheffects
from matplotlib.colors import to_hex
from matplotlib.patches import Patch

from yieldmap.data.geo.raster import RasterGrid
from yieldmap.errors import RenderError


MISSING_COLOR = "#d9d9d9"


@dataclass(frozen=True, eq=False)
class ClassBins:
    """
    Equal-width classification of a numeric series.

    edges has n_classes + 1 entries; class i covers (edges[i], edges[i+1]].
    codes holds the 0-based class of each value, -1 for missing values.
    """
    edges: np.ndarray
    codes: np.ndarray
    labels: list[str]

    @property
    def n_classes(self) -> int:
        return len(self.edges) - 1


def _format_edges(edges: np.ndarray) -> list[str]:
    # Same value printed with more digits until neighbouring edges are distinguishable
    for digits in range(3, 13):
        text = [f"{e:.{digits}g}" for e in edges]
        if all(a != b for a, b in zip(text, text[1:])):
            return text
    return [repr(float(e)) for e in edges]


def equal_width_classes(values: Sequence[float] | np.ndarray, n_classes: int) -> ClassBins:
    """
    Split the range of `values` into `n_classes` equal-width, right-closed classes.

    The outer edges are pushed out by 1/1000 of the range so that the minimum
    and maximum both fall inside a class. A constant series uses |value|
    (or 1 for zero) as its range.

    Example: 5 classes over [0, 100] give edges -0.1, 20, 40, 60, 80, 100.1;
    50 lands in class 2 (40, 60] and 40 in class 1 (20, 40].
    """
    n_classes = int(n_classes)
    if n_classes < 2:
        raise RenderError(f"n_classes must be >= 2, got {n_classes}")

    x = np.asarray(values, dtype=float)
    finite = np.isfinite(x)
    if not finite.any():
        raise RenderError("No finite values to classify")

    lo, hi = float(x[finite].min()), float(x[finite].max())
    dx = hi - lo
    if dx == 0:
        dx = abs(lo) if lo != 0 else 1.0
        edges = np.linspace(lo - dx / 1000.0, hi + dx / 1000.0, n_classes + 1)
    else:
        edges = np.linspace(lo, hi, n_classes + 1)
        edges[0] = lo - dx / 1000.0
        edges[-1] = hi + dx / 1000.0

    codes = np.full(x.shape, -1, dtype=int)
    idx = np.searchsorted(edges, x[finite], side="left") - 1
    codes[finite] = np.clip(idx, 0, n_classes - 1)

    text = _format_edges(edges)
    labels = [f"({text[i]},{text[i + 1]}]" for i in range(n_classes)]
    return ClassBins(edges=edges, codes=codes, labels=labels)


def class_colors(n_classes: int, cmap: str = "Greens", reverse: bool = False) -> list[str]:
    """
    n_classes colours sampled from a sequential matplotlib colormap, light to dark
    (dark to light with reverse=True).
    """
    if n_classes < 2:
        raise RenderError(f"n_classes must be >= 2, got {n_classes}")
    ramp = matplotlib.colormaps[cmap]
    colors = [to_hex(ramp(v)) for v in np.linspace(0.15, 0.9, n_classes)]
    return colors[::-1] if reverse else colors


def _draw_panel(
    ax,
    counties: gpd.GeoDataFrame,
    values: np.ndarray,
    codes: np.ndarray,
    colors: list[str],
    *,
    title: str | None,
    label_fmt: str,
) -> None:
    facecolors = [colors[c] if c >= 0 else MISSING_COLOR for c in codes]
    counties.plot(ax=ax, color=facecolors, edgecolor="black", linewidth=0.4)

    halo = [patheffects.withStroke(linewidth=2.5, foreground="white")]
    for pt, v in zip(counties.geometry.representative_point(), values):
        if not np.isfinite(v):
            continue
        ax.text(pt.x, pt.y, label_fmt.format(v), ha="center", va="center", fontsize=6, path_effects=halo)

    if title:
        ax.set_title(title)
    ax.set_axis_off()


def _legend_handles(bins: ClassBins, colors: list[str]) -> list[Patch]:
    return [Patch(facecolor=c, edgecolor="black", label=lab) for c, lab in zip(colors, bins.labels)]


def plot_choropleth(
    counties: gpd.GeoDataFrame,
    column: str,
    *,
    n_classes: int = 5,
    cmap: str = "Greens",
    reverse: bool = False,
    title: str | None = None,
    legend_title: str | None = None,
    label_fmt: str = "{:g}",
    ax=None,
):
    """
    Map one county attribute: equal-width classes, labels with a white halo,
    and a legend listing each class range.

    Returns (ax, bins).
    """
    values = counties[column].to_numpy(dtype=float)
    bins = equal_width_classes(values, n_classes)
    colors = class_colors(n_classes, cmap=cmap, reverse=reverse)

    if ax is None:
        _, ax = plt.subplots(figsize=(6, 8))

    _draw_panel(ax, counties, values, bins.codes, colors, title=title, label_fmt=label_fmt)
    ax.legend(
        handles=_legend_handles(bins, colors),
        title=legend_title,
        loc="center left",
        bbox_to_anchor=(-0.35, 0.5),
        frameon=False,
    )
    return ax, bins


def plot_side_by_side(
    counties: gpd.GeoDataFrame,
    left_col: str,
    right_col: str,
    *,
    n_classes: int = 9,
    cmap: str = "Greens",
    reverse: bool = False,
    titles: tuple[str, str] = ("", ""),
    legend_title: str | None = None,
    label_fmt: str = "{:.0f}",
    figsize: tuple[float, float] = (11, 7),
):
    """
    Two attributes of the same counties on one colour scale.

    Both columns are classified together so a colour means the same range in
    either panel; the class codes are split back at the county count.

    Returns (fig, bins).
    """
    left = counties[left_col].to_numpy(dtype=float)
    right = counties[right_col].to_numpy(dtype=float)
    bins = equal_width_classes(np.concatenate([left, right]), n_classes)
    colors = class_colors(n_classes, cmap=cmap, reverse=reverse)

    n = len(counties)
    fig, axes = plt.subplots(1, 2, figsize=figsize)
    _draw_panel(axes[0], counties, left, bins.codes[:n], colors, title=titles[0], label_fmt=label_fmt)
    _draw_panel(axes[1], counties, right, bins.codes[n:], colors, title=titles[1], label_fmt=label_fmt)

    fig.legend(
        handles=_legend_handles(bins, colors),
        title=legend_title,
        loc="center left",
        frameon=False,
    )
    fig.subplots_adjust(left=0.15)
    return fig, bins


def plot_grid(
    grid: RasterGrid,
    polygons: gpd.GeoDataFrame | None = None,
    *,
    vmin: float | None = None,
    vmax: float | None = None,
    title: str | None = None,
    cmap: str = "viridis",
    ax=None,
):
    """
    Raster cells with optional polygon outlines on top. Pass the same
    vmin/vmax to make several grids directly comparable.
    """
    if ax is None:
        _, ax = plt.subplots(figsize=(6, 7))

    e = grid.extent
    img = ax.imshow(
        grid.values,
        extent=(e.xmin, e.xmax, e.ymin, e.ymax),
        origin="upper",
        vmin=vmin,
        vmax=vmax,
        cmap=cmap,
    )
    ax.figure.colorbar(img, ax=ax, shrink=0.7)

    if polygons is not None:
        polys = polygons.to_crs(grid.crs) if polygons.crs != grid.crs else polygons
        polys.boundary.plot(ax=ax, color="black", linewidth=0.5)

    if title:
        ax.set_title(title)
    return ax
